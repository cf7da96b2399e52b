"""
Logistics Service — Bearer token authentication

Tokens are issued elsewhere and signed with the shared secret. Every route
outside PUBLIC_PATHS needs one carrying at least `sub` and `role`; the decoded
claims are left on request.state.user for the principal dependency.
"""
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
from jose import JWTError

from logistics_service.core.errors import error_response
from logistics_service.core.security import decode_token

PUBLIC_PATHS = frozenset({"/", "/health", "/docs", "/openapi.json"})
REQUIRED_CLAIMS = ("sub", "role")


def is_public(request: Request) -> bool:
    path = request.url.path
    return request.method == "OPTIONS" or path in PUBLIC_PATHS or path.startswith("/metrics")


def bearer_token(request: Request) -> str | None:
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        return None
    return token


class JWTAuthMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, secret_key: str, algorithm: str):
        super().__init__(app)
        self.secret_key = secret_key
        self.algorithm = algorithm

    async def dispatch(self, request: Request, call_next) -> Response:
        if is_public(request):
            return await call_next(request)

        token = bearer_token(request)
        if token is None:
            return self._reject("Missing or invalid Authorization header. Expected: Bearer <token>")

        try:
            claims = decode_token(token, self.secret_key, self.algorithm)
        except JWTError as exc:
            return self._reject(f"Invalid or expired JWT: {exc}")

        missing = [claim for claim in REQUIRED_CLAIMS if not claims.get(claim)]
        if missing:
            return self._reject(f"Token is missing required claim(s): {', '.join(missing)}.")

        request.state.user = claims
        return await call_next(request)

    @staticmethod
    def _reject(message: str) -> Response:
        return error_response(401, message, headers={"WWW-Authenticate": "Bearer"})
