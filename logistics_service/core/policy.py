"""
Logistics Service — Principal and capability policy

The authenticated principal is resolved once per request from the JWT claims
and consulted by route guards and by every workflow precondition check.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any

from logistics_service.core.exceptions import ForbiddenError


class Role(str, Enum):
    ADMIN = "admin"
    COMMANDER = "commander"
    BRIGADE_ASSISTANT = "brigadeAssistant"
    UNIT_ASSISTANT = "unitAssistant"
    STATION_MANAGER = "stationManager"


SUPPLY_CREATORS = frozenset({Role.UNIT_ASSISTANT})
SUPPLY_APPROVERS = frozenset({Role.BRIGADE_ASSISTANT, Role.ADMIN})
SUPPLY_RECEIVERS = frozenset({Role.STATION_MANAGER, Role.ADMIN})
OUTPUT_MANAGERS = frozenset({Role.ADMIN, Role.STATION_MANAGER})


@dataclass(frozen=True)
class Principal:
    id: str
    name: str
    role: Role | None
    unit_id: str | None = None

    @classmethod
    def from_claims(cls, claims: dict[str, Any]) -> "Principal":
        try:
            role = Role(claims.get("role"))
        except ValueError:
            role = None
        return cls(
            id=str(claims.get("sub", "")),
            name=claims.get("name") or "Unknown",
            role=role,
            unit_id=claims.get("unit"),
        )

    def has_role(self, roles: frozenset[Role]) -> bool:
        return self.role in roles

    def require(self, roles: frozenset[Role], action: str) -> None:
        if not self.has_role(roles):
            raise ForbiddenError(f"Your role is not allowed to {action}.")

    @property
    def is_unit_scoped(self) -> bool:
        """Unit assistants only ever see their own unit's records."""
        return self.role == Role.UNIT_ASSISTANT

    def owns_unit(self, unit_id: str) -> bool:
        return self.unit_id is not None and self.unit_id == unit_id

    def require_owner(self, unit_id: str, action: str) -> None:
        if not self.has_role(SUPPLY_CREATORS) or not self.owns_unit(unit_id):
            raise ForbiddenError(f"Only the owning unit assistant can {action} this supply.")
