"""Portfolio-level statistics, recomputed from a full scan on every call."""
from __future__ import annotations

import math

from sqlalchemy import select
from sqlalchemy.orm import Session

from vpms.models import Venture
from vpms.repository import store_errors


def round_half_up(value: float, digits: int = 1) -> float:
    """Round like a spreadsheet would: 0.05 -> 0.1, never to the even neighbour."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def compute_metrics(session: Session) -> dict:
    """Return ``totalVentures``, ``averageReadiness`` and ``capitalFacilitatedUsd``.

    Ventures without a readiness score count as 0 towards the average, and
    an empty portfolio divides by 1 so the average is simply 0.
    """
    with store_errors(session):
        rows = session.execute(
            select(Venture.readiness_score, Venture.capital_facilitated_usd)
        ).all()
    total = len(rows)
    readiness_sum = sum(score or 0 for score, _ in rows)
    capital_sum = sum(usd or 0 for _, usd in rows)
    return {
        "totalVentures": total,
        "averageReadiness": round_half_up(readiness_sum / (total or 1)),
        "capitalFacilitatedUsd": capital_sum,
    }
