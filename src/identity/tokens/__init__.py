"""Token verifier factory.

Provides get_verifier() / set_verifier() to swap implementations. The
in-memory verifier is the default.
"""

from identity.tokens.memory_adapter import InMemoryTokenVerifier
from identity.tokens.port import TokenVerifier

_current_verifier: TokenVerifier | None = None


def get_verifier() -> TokenVerifier:
    global _current_verifier
    if _current_verifier is None:
        _current_verifier = InMemoryTokenVerifier()
    return _current_verifier


def set_verifier(verifier: TokenVerifier) -> None:
    global _current_verifier
    _current_verifier = verifier


def reset_verifier() -> None:
    global _current_verifier
    _current_verifier = None
