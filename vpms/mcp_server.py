from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from mcp.server.fastmcp import FastMCP

from vpms import repository
from vpms.db import init_db, session_scope
from vpms.errors import VentureError
from vpms.metrics import compute_metrics
from vpms.schemas import CapitalStatus, Stage, VentureOut

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def vpms_lifespan(server: FastMCP) -> AsyncIterator[None]:
    init_db()
    yield


mcp = FastMCP(
    "VPMS",
    instructions=(
        "VPMS tracks ventures through a four-stage pipeline: intake, diagnostics, "
        "readiness and capital facilitation. Start with get_metrics() for an overview, "
        "then list_ventures() to browse and get_venture(id) for a single record."
    ),
    lifespan=vpms_lifespan,
    json_response=True,
)


def _dump(venture) -> dict:
    return VentureOut.model_validate(venture).model_dump(mode="json", by_alias=True)


def _error(exc: VentureError) -> dict:
    return {"error": exc.message}


# ---------------------------------------------------------------------------
# Resource
# ---------------------------------------------------------------------------


@mcp.resource("vpms://overview")
def vpms_overview() -> str:
    """Overview of VPMS: data model, pipeline stages and capital statuses."""
    return json.dumps({
        "system": "VPMS: Venture Pipeline Management",
        "data_model": {
            "venture": (
                "A tracked portfolio company with a unique code (e.g. VEN-2025-101), name, "
                "sector, country, pipeline stage, readiness score (0-100), capital status "
                "and capital facilitated in USD."
            ),
        },
        "stages": [s.value for s in Stage],
        "capital_statuses": [c.value for c in CapitalStatus],
        "workflow": [
            "1. get_metrics(): portfolio totals.",
            "2. list_ventures(): every venture, most recently updated first.",
            "3. create_venture(...) / update_venture(id, ...): record progress.",
            "4. delete_venture(id): remove a venture permanently.",
        ],
    }, indent=2)


# ---------------------------------------------------------------------------
# Tools: Ventures
# ---------------------------------------------------------------------------


@mcp.tool()
def list_ventures() -> list[dict]:
    """List all ventures, most recently updated first."""
    with session_scope() as session:
        return [_dump(v) for v in repository.list_ventures(session)]


@mcp.tool()
def get_venture(venture_id: int) -> dict:
    """Get a single venture by id."""
    with session_scope() as session:
        try:
            return _dump(repository.get_venture(session, venture_id))
        except VentureError as exc:
            return _error(exc)


@mcp.tool()
def create_venture(
    code: str, name: str, sector: str, country: str, stage: str, capital_status: str,
    readiness_score: float | None = None, capital_facilitated_usd: float | None = None,
) -> dict:
    """Create a venture.

    Args:
        code: Unique business key, e.g. "VEN-2025-101".
        stage: One of INTAKE, DIAGNOSTICS, READINESS, CAPITAL_FACILITATION.
        capital_status: One of NOT_STARTED, IN_PROGRESS, FACILITATED.
        readiness_score: Optional score between 0 and 100.
        capital_facilitated_usd: Capital facilitated so far, defaults to 0.
    """
    payload: dict[str, Any] = {
        "code": code, "name": name, "sector": sector, "country": country,
        "stage": stage, "capitalStatus": capital_status,
    }
    if readiness_score is not None:
        payload["readinessScore"] = readiness_score
    if capital_facilitated_usd is not None:
        payload["capitalFacilitatedUsd"] = capital_facilitated_usd
    with session_scope() as session:
        try:
            return _dump(repository.create_venture(session, payload))
        except VentureError as exc:
            return _error(exc)


@mcp.tool()
def update_venture(
    venture_id: int,
    code: str | None = None, name: str | None = None, sector: str | None = None,
    country: str | None = None, stage: str | None = None, capital_status: str | None = None,
    readiness_score: float | None = None, capital_facilitated_usd: float | None = None,
) -> dict:
    """Update fields on a venture. Only provided (non-null) arguments are applied."""
    updates = {k: v for k, v in {
        "code": code, "name": name, "sector": sector, "country": country,
        "stage": stage, "capitalStatus": capital_status,
        "readinessScore": readiness_score, "capitalFacilitatedUsd": capital_facilitated_usd,
    }.items() if v is not None}
    with session_scope() as session:
        try:
            return _dump(repository.update_venture(session, venture_id, updates))
        except VentureError as exc:
            return _error(exc)


@mcp.tool()
def delete_venture(venture_id: int) -> dict:
    """Permanently delete a venture."""
    with session_scope() as session:
        try:
            return {"ok": True, "id": repository.delete_venture(session, venture_id)}
        except VentureError as exc:
            return _error(exc)


# ---------------------------------------------------------------------------
# Tools: Metrics
# ---------------------------------------------------------------------------


@mcp.tool()
def get_metrics() -> dict:
    """Portfolio totals: venture count, average readiness and capital facilitated (USD)."""
    with session_scope() as session:
        return compute_metrics(session)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main():
    """Run the VPMS MCP server over stdio."""
    mcp.run()


if __name__ == "__main__":
    main()
