"""
Logistics Service — Shared Pydantic schema pieces
"""
from typing import Any
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """JSON uses camelCase keys; Python code uses snake_case."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class UserRef(CamelModel):
    id: str
    name: str


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str
    dependencies: dict[str, str]


def ok(data: Any = None, message: str | None = None, **extra: Any) -> dict[str, Any]:
    """Success envelope: {"success": true, "message"?, "data"?}."""
    body: dict[str, Any] = {"success": True}
    if message is not None:
        body["message"] = message
    if data is not None:
        body["data"] = data
    body.update(extra)
    return body
