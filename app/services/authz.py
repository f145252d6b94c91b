from fastapi import Request

from app.services.errors import InvalidSessionToken
from app.services.sessions import SessionClaims


def get_current_user(req: Request) -> SessionClaims:
    """Dependency for routes that need a logged-in caller (``Authorization: Bearer <token>``)."""
    header = req.headers.get("authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise InvalidSessionToken()

    return req.app.state.sessions.verify(token.strip())
