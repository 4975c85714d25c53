"""
Base Pydantic models for all API contract schemas.

Key features:
- frozen=True: Immutable after validation (safe to share via the context)
- str_strip_whitespace=True: Whitespace stripped from strings
- populate_by_name=True: Accept both camelCase alias and snake_case field name
- extra: ALWAYS explicit. The procedure builder refuses a contract model
  without an `extra` policy.
    * bodies  -> 'forbid' (unknown fields are a 400 with a field entry)
    * queries -> 'ignore' (unknown params such as cache busters are dropped)
    * outputs -> 'ignore'
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class BaseBodyModel(BaseModel):
    """Base model for JSON request bodies."""
    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        populate_by_name=True,
        alias_generator=to_camel,
        extra='forbid',  # Reject undeclared fields
    )


class BaseQueryModel(BaseModel):
    """Base model for query string params."""
    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        populate_by_name=True,
        alias_generator=to_camel,
        extra='ignore',  # Strip undeclared params
    )


class BaseOutputModel(BaseModel):
    """Base model for response `data` payloads (serialized by alias)."""
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        from_attributes=True,
        alias_generator=to_camel,
        extra='ignore',
    )
