"""Request identity. The caller is a signed-in customer, a guest session, or both.

The customer comes from an ``Authorization: Bearer <token>`` header checked by
the configured ``TokenVerifier``. The guest session id comes from the
``sessionId`` cookie or the ``x-session-id`` header.
"""

from dataclasses import dataclass

from fastapi import Depends, Header, Request

from storefront.exceptions import AuthenticationRequired
from identity.tokens import get_verifier

SESSION_COOKIE = "sessionId"


@dataclass(frozen=True)
class Identity:
    user_id: str | None = None
    session_id: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None


async def resolve_identity(
    request: Request,
    authorization: str | None = Header(default=None),
    x_session_id: str | None = Header(default=None),
) -> Identity:
    """Resolve the caller. A malformed or unknown token is rejected, not ignored."""
    user_id = None
    if authorization:
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            raise AuthenticationRequired("Malformed authorization header")
        user_id = get_verifier().verify(token.strip())
        if user_id is None:
            raise AuthenticationRequired("Invalid or expired token")

    session_id = request.cookies.get(SESSION_COOKIE) or x_session_id
    return Identity(user_id=user_id, session_id=session_id or None)


async def require_user(identity: Identity = Depends(resolve_identity)) -> Identity:
    if not identity.is_authenticated:
        raise AuthenticationRequired("Authentication required")
    return identity
