"""
Client generator - renders a typed Python client from endpoint descriptors.

Output (one module, stdlib typing + requests only):
- one TypedDict per input / query / output model (from the JSON Schemas)
- CmsClient with one method per endpoint:
      def create_gallery(self, body: GalleryPostBody) -> PostOut
  path params are positional str args, `query` is optional unless the query
  model has required fields.

The generated calls only format the path and send JSON; there is no schema
validation or reflection at call time. Type checking happens in the
caller's type checker against the TypedDicts.
"""

import keyword
import re
from typing import Any, Dict, List, Optional

from .registry import EndpointDescriptor

HEADER = '''"""
Typed client for the CMS API.

Generated by `python cli.py generate-client` from the server route tree.
Do not edit by hand; regenerate after changing any endpoint contract.
"""

from typing import Any, Dict, List, Literal, Optional, TypedDict, Union
from urllib.parse import quote

import requests
'''

RUNTIME = '''

class CmsApiError(Exception):
    """Raised when the API answers with ok=false."""

    def __init__(self, status: int, kind: str, message: str, fields: Optional[List[Dict[str, str]]] = None):
        super().__init__(f"{status} {kind}: {message}")
        self.status = status
        self.kind = kind
        self.message = message
        self.fields = fields or []


def _segment(value: Any) -> str:
    return quote(str(value), safe="")


class _BaseClient:
    def __init__(self, base_url: str, token: Optional[str] = None,
                 session: Optional[requests.Session] = None, timeout: float = 30.0):
        self.base_url = base_url.rstrip("/")
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout
        self.headers: Dict[str, str] = {"Accept": "application/json"}
        if token:
            self.headers["Authorization"] = f"Bearer {token}"

    def _call(self, method: str, path: str, body: Any = None, query: Any = None) -> Any:
        response = self.session.request(
            method,
            self.base_url + path,
            json=body,
            params=query,
            headers=self.headers,
            timeout=self.timeout,
        )
        try:
            payload = response.json()
        except ValueError:
            raise CmsApiError(response.status_code, "InternalError", "Response was not JSON")
        if not isinstance(payload, dict) or not payload.get("ok"):
            error = (payload.get("error") or {}) if isinstance(payload, dict) else {}
            raise CmsApiError(
                response.status_code,
                error.get("kind", "InternalError"),
                error.get("message", ""),
                error.get("fields"),
            )
        return payload.get("data")
'''

_PY_SCALARS = {
    "string": "str",
    "integer": "int",
    "number": "float",
    "boolean": "bool",
    "null": "None",
}

_PARAM_RE = re.compile(r"<(?:[^:<>]+:)?([^<>]+)>")


def _class_name(title: str) -> str:
    cleaned = re.sub(r"[^0-9a-zA-Z_]", "_", title or "Anonymous")
    if cleaned[0].isdigit():
        cleaned = "_" + cleaned
    return cleaned[0].upper() + cleaned[1:]


def _doc(text: str) -> str:
    """First line of `text`, safe to embed in a triple-quoted docstring."""
    first = text.strip().splitlines()[0] if text.strip() else ""
    return first.replace("\\", "\\\\").replace('"', "'")


class _TypeRenderer:
    """Turns JSON Schema fragments into type expressions, emitting TypedDicts as needed."""

    def __init__(self):
        self.blocks: List[str] = []
        self._emitted: Dict[str, str] = {}

    def named(self, schema: Dict[str, Any], fallback: str) -> str:
        """Render a top-level schema; objects become a TypedDict named after the model."""
        return self.expr(schema, schema.get("$defs", {}), fallback)

    def expr(self, schema: Dict[str, Any], defs: Dict[str, Any], fallback: str) -> str:
        if "$ref" in schema:
            ref = schema["$ref"].rsplit("/", 1)[-1]
            return self.expr(defs[ref], defs, ref)
        if "allOf" in schema and len(schema["allOf"]) == 1:
            return self.expr(schema["allOf"][0], defs, fallback)
        if "anyOf" in schema or "oneOf" in schema:
            options = schema.get("anyOf") or schema.get("oneOf")
            rendered = []
            nullable = False
            for option in options:
                if option.get("type") == "null":
                    nullable = True
                    continue
                rendered.append(self.expr(option, defs, fallback))
            if not rendered:
                return "None"
            inner = rendered[0] if len(rendered) == 1 else f"Union[{', '.join(rendered)}]"
            return f"Optional[{inner}]" if nullable else inner
        if "const" in schema:
            return f"Literal[{schema['const']!r}]"
        if "enum" in schema:
            return f"Literal[{', '.join(repr(v) for v in schema['enum'])}]"

        kind = schema.get("type")
        if isinstance(kind, list):
            return self.expr({"anyOf": [{"type": k} for k in kind]}, defs, fallback)
        if kind == "array":
            items = schema.get("items")
            return f"List[{self.expr(items, defs, fallback + 'Item') if items else 'Any'}]"
        if kind == "object" or "properties" in schema:
            if schema.get("properties"):
                return self._typed_dict(_class_name(schema.get("title") or fallback), schema, defs)
            extra = schema.get("additionalProperties")
            value = self.expr(extra, defs, fallback + "Value") if isinstance(extra, dict) else "Any"
            return f"Dict[str, {value}]"
        return _PY_SCALARS.get(kind, "Any")

    def _typed_dict(self, name: str, schema: Dict[str, Any], defs: Dict[str, Any]) -> str:
        if name in self._emitted:
            return name
        self._emitted[name] = name  # reserve before recursing (self-references)

        required = set(schema.get("required", []))
        fields = [
            (key, self.expr(prop, defs, name + _class_name(key)), key in required)
            for key, prop in schema["properties"].items()
        ]
        self.blocks.append(self._render_typed_dict(name, fields, schema.get("description")))
        return name

    @staticmethod
    def _render_typed_dict(name: str, fields, description: Optional[str]) -> str:
        identifiers = all(key.isidentifier() and not keyword.iskeyword(key) for key, _, _ in fields)
        required = [(k, t) for k, t, r in fields if r]
        optional = [(k, t) for k, t, r in fields if not r]

        if not identifiers:
            members = ", ".join(f"{k!r}: {t}" for k, t, _ in fields)
            return f"{name} = TypedDict({name!r}, {{{members}}}, total=False)"

        lines = []
        if required and optional:
            lines.append(f"class _{name}Required(TypedDict):")
            lines.extend(f"    {k}: {t}" for k, t in required)
            lines.append("")
            lines.append("")
            lines.append(f"class {name}(_{name}Required, total=False):")
            if description:
                lines.append(f'    """{_doc(description)}"""')
            lines.extend(f"    {k}: {t}" for k, t in optional)
        else:
            total = "" if required else ", total=False"
            lines.append(f"class {name}(TypedDict{total}):")
            if description:
                lines.append(f'    """{_doc(description)}"""')
            members = required or optional
            lines.extend(f"    {k}: {t}" for k, t in members)
            if not members:
                lines.append("    pass")
        return "\n".join(lines)


def _path_expression(full_path: str) -> str:
    formatted = _PARAM_RE.sub(lambda m: "{_segment(" + m.group(1) + ")}", full_path)
    return f'f"{formatted}"' if formatted != full_path else f'"{full_path}"'


def _render_method(descriptor: EndpointDescriptor, renderer: _TypeRenderer) -> str:
    name = descriptor.name
    if not name.isidentifier() or keyword.iskeyword(name) or name.startswith("_"):
        raise ValueError(f"Endpoint name {name!r} is not a valid client method name")

    params = ["self"]
    call_args = [f'"{descriptor.method}"', _path_expression(descriptor.full_path)]
    for param in descriptor.path_params:
        if param in ("self", "body", "query"):
            raise ValueError(f"Path parameter {param!r} of {name} shadows a client argument")
        params.append(f"{param}: str")

    if descriptor.input_shape is not None:
        body_type = renderer.named(descriptor.input_shape, _class_name(name) + "Body")
        params.append(f"body: {body_type}")
        call_args.append("body=body")
    if descriptor.query_shape is not None:
        query_type = renderer.named(descriptor.query_shape, _class_name(name) + "Query")
        if descriptor.query_required:
            params.append(f"query: {query_type}")
        else:
            params.append(f"query: Optional[{query_type}] = None")
        call_args.append("query=query")

    output_type = renderer.named(descriptor.output_shape, _class_name(name) + "Out")

    route = f"{descriptor.method} {descriptor.full_path}"
    doc = f"{_doc(descriptor.summary)} ({route})" if descriptor.summary else route
    lines = [f"    def {name}({', '.join(params)}) -> {output_type}:"]
    lines.append(f'        """{doc}"""')
    lines.append(f"        return self._call({', '.join(call_args)})")
    return "\n".join(lines)


def render_client_module(descriptors: List[EndpointDescriptor], base_path: str = "") -> str:
    """Render the full client module source."""
    renderer = _TypeRenderer()
    methods = [_render_method(d, renderer) for d in descriptors]

    parts = [HEADER, RUNTIME]
    for block in renderer.blocks:
        parts.append("\n\n" + block + "\n")
    parts.append("\n\nclass CmsClient(_BaseClient):\n")
    parts.append(f'    """One method per API endpoint. Paths are relative to base_url (API prefix {base_path!r})."""\n')
    for method in methods:
        parts.append("\n" + method + "\n")
    return "".join(parts)
