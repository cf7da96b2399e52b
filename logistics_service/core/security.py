"""
Logistics Service — Security helper (JWT decode only, shared secret)

Tokens are issued by the identity provider; this service only verifies them.
"""
from typing import Any
from jose import jwt


def decode_token(token: str, secret_key: str, algorithm: str) -> dict[str, Any]:
    """Decode and validate a JWT. Raises JWTError on failure."""
    return jwt.decode(token, secret_key, algorithms=[algorithm])


def create_token(claims: dict[str, Any], secret_key: str, algorithm: str) -> str:
    """Sign claims with the shared secret (used by tooling and tests)."""
    return jwt.encode(claims, secret_key, algorithm=algorithm)
