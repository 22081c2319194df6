"""Sample portfolio used for demos and local development."""
from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.orm import Session

from vpms import repository
from vpms.models import Venture

log = logging.getLogger(__name__)

SAMPLE_VENTURES: list[dict[str, Any]] = [
    {
        "code": "VEN-2025-101",
        "name": "AgriTech Phnom Penh",
        "sector": "Agriculture",
        "country": "Cambodia",
        "stage": "READINESS",
        "readinessScore": 78,
        "capitalStatus": "IN_PROGRESS",
        "capitalFacilitatedUsd": 150000,
    },
    {
        "code": "VEN-2025-102",
        "name": "Clean Energy Laos",
        "sector": "Clean Energy",
        "country": "Laos",
        "stage": "DIAGNOSTICS",
        "readinessScore": 45,
        "capitalStatus": "NOT_STARTED",
        "capitalFacilitatedUsd": 0,
    },
    {
        "code": "VEN-2025-103",
        "name": "FinTech Thailand",
        "sector": "Technology",
        "country": "Thailand",
        "stage": "READINESS",
        "readinessScore": 69,
        "capitalStatus": "FACILITATED",
        "capitalFacilitatedUsd": 250000,
    },
]


def seed_ventures(session: Session, ventures: list[dict[str, Any]] | None = None) -> list[Venture]:
    """Replace every venture in the store with *ventures* (the sample set by default)."""
    removed = repository.delete_all(session)
    created = [repository.create_venture(session, v) for v in (ventures or SAMPLE_VENTURES)]
    log.info("Seeded %d ventures (removed %d)", len(created), removed)
    return created
