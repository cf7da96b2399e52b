"""
Logistics Service — Request-scoped dependencies
"""
from fastapi import Depends, Request

from logistics_service.core.config import Settings
from logistics_service.core.exceptions import ForbiddenError
from logistics_service.core.policy import Principal, Role
from logistics_service.core.redis_client import InventoryCache


def get_principal(request: Request) -> Principal:
    """Resolve the caller once per request from the claims set by JWTAuthMiddleware."""
    claims = getattr(request.state, "user", None)
    if not claims:
        raise ForbiddenError("Not authenticated.")
    return Principal.from_claims(claims)


def require_roles(*roles: Role):
    allowed = frozenset(roles)

    def guard(principal: Principal = Depends(get_principal)) -> Principal:
        if not principal.has_role(allowed):
            raise ForbiddenError("Forbidden - your role cannot access this resource.")
        return principal

    return guard


def get_cache(request: Request) -> InventoryCache:
    return request.app.state.cache


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings
