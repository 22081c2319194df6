"""Business-rule validation for venture payloads.

Checks run in a fixed order and only the first failure is reported:

1. required fields present and non-empty
2. ``stage`` in the pipeline stages
3. ``capitalStatus`` in the capital statuses
4. ``readinessScore`` within [0, 100] when given
5. ``capitalFacilitatedUsd`` >= 0 when given
"""
from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

from vpms.errors import ValidationError
from vpms.schemas import (
    CAPITAL_STATUSES,
    REQUIRED_FIELDS,
    STAGES,
    CapitalStatus,
    Stage,
    normalize_payload,
)


def as_number(value: Any) -> float | None:
    """Coerce ints, floats and numeric strings to a finite float.

    Returns None for anything else, including NaN, infinities and ints too
    large to represent.
    """
    if isinstance(value, bool):
        return None
    if not isinstance(value, (int, float, str)):
        return None
    try:
        number = float(value.strip() if isinstance(value, str) else value)
    except (ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def _enum_value(value: Any) -> Any:
    return value.value if isinstance(value, (Stage, CapitalStatus)) else value


def _is_member(value: Any, allowed: frozenset[str]) -> bool:
    value = _enum_value(value)
    return isinstance(value, str) and value in allowed


def _check_fields(data: Mapping[str, Any]) -> str | None:
    if "stage" in data and not _is_member(data["stage"], STAGES):
        return "invalid stage"
    if "capitalStatus" in data and not _is_member(data["capitalStatus"], CAPITAL_STATUSES):
        return "invalid capitalStatus"
    score = data.get("readinessScore")
    if score is not None:
        number = as_number(score)
        if number is None or not 0 <= number <= 100:
            return "invalid readinessScore"
    usd = data.get("capitalFacilitatedUsd")
    if usd is not None:
        number = as_number(usd)
        if number is None or number < 0:
            return "invalid capitalFacilitatedUsd"
    return None


def validate_venture(candidate: Mapping[str, Any]) -> str | None:
    """Validate a full creation payload. Returns the first error message or None."""
    data = normalize_payload(candidate)
    for field in REQUIRED_FIELDS:
        if not data.get(field):
            return f"{field} is required"
    return _check_fields(data)


def validate_update(patch: Mapping[str, Any]) -> str | None:
    """Validate a partial update: only the supplied fields are checked."""
    data = normalize_payload(patch)
    for field in REQUIRED_FIELDS:
        if field in data and not data[field]:
            return f"{field} is required"
    return _check_fields(data)


def require_valid(candidate: Mapping[str, Any], *, partial: bool = False) -> dict[str, Any]:
    """Validate and clean *candidate*, raising ValidationError on the first failing rule.

    Returns the payload keyed by wire names with enums resolved and numbers
    coerced to float.
    """
    error = validate_update(candidate) if partial else validate_venture(candidate)
    if error:
        raise ValidationError(error)
    data = normalize_payload(candidate)
    if "stage" in data:
        data["stage"] = Stage(_enum_value(data["stage"]))
    if "capitalStatus" in data:
        data["capitalStatus"] = CapitalStatus(_enum_value(data["capitalStatus"]))
    for field in ("readinessScore", "capitalFacilitatedUsd"):
        if data.get(field) is not None:
            data[field] = as_number(data[field])
    if data.get("capitalFacilitatedUsd", 0) is None:
        # An explicit null falls back to the column default.
        data["capitalFacilitatedUsd"] = 0.0
    return data
