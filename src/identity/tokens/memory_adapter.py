"""In-memory token verifier for development and testing.

Tokens are opaque random strings handed out by ``issue``. A production
deployment installs a JWT or session-store backed verifier instead.
"""

import secrets
import threading

from identity.tokens.port import TokenVerifier


class InMemoryTokenVerifier(TokenVerifier):
    def __init__(self) -> None:
        self._tokens: dict[str, str] = {}
        self._lock = threading.Lock()

    def issue(self, user_id) -> str:
        token = secrets.token_urlsafe(24)
        with self._lock:
            self._tokens[token] = str(user_id)
        return token

    def revoke(self, token: str) -> None:
        with self._lock:
            self._tokens.pop(token, None)

    def verify(self, token: str) -> str | None:
        with self._lock:
            return self._tokens.get(token)
