"""Venture record schema: pipeline enums and pydantic request/response models."""
from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel


class Stage(str, Enum):
    INTAKE = "INTAKE"
    DIAGNOSTICS = "DIAGNOSTICS"
    READINESS = "READINESS"
    CAPITAL_FACILITATION = "CAPITAL_FACILITATION"


class CapitalStatus(str, Enum):
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    FACILITATED = "FACILITATED"


STAGES = frozenset(s.value for s in Stage)
CAPITAL_STATUSES = frozenset(c.value for c in CapitalStatus)

# Wire (camelCase) name -> ORM attribute. ``id`` and ``lastUpdated`` are
# owned by the store and never written from a payload.
WRITABLE_FIELDS: dict[str, str] = {
    "code": "code",
    "name": "name",
    "sector": "sector",
    "country": "country",
    "stage": "stage",
    "readinessScore": "readiness_score",
    "capitalStatus": "capital_status",
    "capitalFacilitatedUsd": "capital_facilitated_usd",
}

REQUIRED_FIELDS = ("code", "name", "sector", "country", "stage", "capitalStatus")

_ATTR_TO_WIRE = {attr: wire for wire, attr in WRITABLE_FIELDS.items()}


def normalize_payload(data: Mapping[str, Any]) -> dict[str, Any]:
    """Key *data* by wire names, accepting snake_case too. Unknown and read-only keys are dropped."""
    out: dict[str, Any] = {}
    for key, value in data.items():
        wire = key if key in WRITABLE_FIELDS else _ATTR_TO_WIRE.get(key)
        if wire is not None:
            out[wire] = value
    return out


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class VentureOut(_CamelModel):
    id: int
    code: str
    name: str
    sector: str
    country: str
    stage: Stage
    readiness_score: float | None = None
    capital_status: CapitalStatus
    capital_facilitated_usd: float = 0
    last_updated: datetime

    @field_validator("last_updated")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        # SQLite hands back naive datetimes; everything is stored in UTC.
        return v if v.tzinfo is not None else v.replace(tzinfo=UTC)


class MetricsOut(_CamelModel):
    total_ventures: int
    average_readiness: float
    capital_facilitated_usd: float


class DeleteResult(BaseModel):
    ok: bool = True
    id: int


class ServiceInfo(BaseModel):
    ok: bool = True
    service: str
