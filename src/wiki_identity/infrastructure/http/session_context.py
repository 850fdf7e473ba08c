"""Bridge between Starlette cookie sessions and the account session context."""

from __future__ import annotations

from uuid import UUID

from starlette.requests import Request

from wiki_identity.domain.auth.session_context import SessionContext

_PRINCIPAL_KEY = "principal_id"


def read_session_context(request: Request) -> SessionContext:
    """Return the principal bound to the request session, or anonymous."""

    raw_principal_id = request.session.get(_PRINCIPAL_KEY)
    if not isinstance(raw_principal_id, str):
        return SessionContext.anonymous()
    try:
        return SessionContext.for_principal(UUID(raw_principal_id))
    except ValueError:
        request.session.pop(_PRINCIPAL_KEY, None)
        return SessionContext.anonymous()


def store_session_context(request: Request, context: SessionContext) -> None:
    """Persist the principal into the signed session cookie, or clear it."""

    if context.principal_id is None:
        request.session.clear()
        return
    request.session[_PRINCIPAL_KEY] = str(context.principal_id)
