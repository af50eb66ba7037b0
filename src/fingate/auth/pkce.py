"""PKCE verifier/challenge pairs and anti-CSRF state tokens."""

import base64
import hashlib
import secrets
import uuid
from dataclasses import dataclass

# 32 random bytes encode to a 43-character verifier, the RFC 7636 minimum.
VERIFIER_BYTES = 32


@dataclass(frozen=True)
class PkcePair:
    verifier: str
    challenge: str
    method: str = "S256"


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def code_challenge(verifier: str) -> str:
    """Return the S256 challenge for ``verifier``."""
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return _b64url(digest)


def generate_pkce(num_bytes: int = VERIFIER_BYTES) -> PkcePair:
    """Generate a fresh PKCE verifier and its S256 challenge."""
    if num_bytes < VERIFIER_BYTES:
        raise ValueError(f"PKCE verifier needs at least {VERIFIER_BYTES} random bytes")
    verifier = _b64url(secrets.token_bytes(num_bytes))
    return PkcePair(verifier=verifier, challenge=code_challenge(verifier))


def generate_state() -> str:
    """Generate an unguessable single-use OAuth state value."""
    return str(uuid.UUID(bytes=secrets.token_bytes(16), version=4))
