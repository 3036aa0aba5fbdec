"""Token verifier port: turns a bearer token into a customer id."""

from abc import ABC, abstractmethod


class TokenVerifier(ABC):
    @abstractmethod
    def verify(self, token: str) -> str | None:
        """Return the user id the token was issued to, or None when it is not valid."""
        ...
