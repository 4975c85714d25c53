"""
Shared procedure prefixes for the site's endpoints.

    public  -> no stages
    authed  -> public + authenticate
    staff   -> authed + role in {admin, editor}
    admin   -> authed + role == admin

Every endpoint is derived from one of these; the prefixes themselves are
never mutated, so endpoints built from `authed` share its stages.
"""

from dataclasses import dataclass

from api.procedures import AuthenticationStage, Continue, Procedure, stage
from services.container import Services


@stage(provides={"response"})
def expose_response(request, response, context):
    """Hand the response draft to the handler (cookie-setting endpoints)."""
    return Continue({"response": response})


@dataclass(frozen=True)
class SiteProcedures:
    public: Procedure
    authed: Procedure
    staff: Procedure
    admin: Procedure


def build_procedures(services: Services) -> SiteProcedures:
    async def load_principal(user_id):
        record = await services.users.get(user_id)
        return record.to_principal() if record else None

    public = Procedure.base()
    authed = public.extend(AuthenticationStage(
        verify_token=services.tokens.verify,
        load_principal=load_principal,
        cookie_name=services.session_cookie_name,
    ))
    return SiteProcedures(
        public=public,
        authed=authed,
        staff=authed.with_roles("admin", "editor"),
        admin=authed.with_roles("admin"),
    )
