"""Venture persistence shared by the API, MCP server and CLI.

Every function takes the caller's session and commits its own write; a
failed write is rolled back before the domain error propagates.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from contextlib import contextmanager
from datetime import UTC, timedelta
from typing import Any, Generator

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from vpms.errors import ConflictError, NotFoundError, StoreError
from vpms.models import Venture, utc_now
from vpms.schemas import WRITABLE_FIELDS
from vpms.validation import require_valid

log = logging.getLogger(__name__)


@contextmanager
def store_errors(session: Session, code: str | None = None) -> Generator[None, None, None]:
    """Roll back and translate SQLAlchemy failures into ConflictError / StoreError."""
    try:
        yield
    except IntegrityError as exc:
        session.rollback()
        raise ConflictError(_duplicate_message(code)) from exc
    except SQLAlchemyError as exc:
        session.rollback()
        log.error("Store operation failed: %s", exc)
        raise StoreError(str(exc)) from exc


def _duplicate_message(code: str | None) -> str:
    return f"code {code!r} already exists" if code else "code already exists"


def _ensure_code_available(session: Session, code: str, exclude_id: int | None = None) -> None:
    query = select(Venture.id).where(Venture.code == code)
    if exclude_id is not None:
        query = query.where(Venture.id != exclude_id)
    if session.execute(query).first() is not None:
        raise ConflictError(_duplicate_message(code))


def _touch(venture: Venture) -> None:
    """Refresh last_updated, strictly later than the previous value."""
    now = utc_now()
    previous = venture.last_updated
    if previous is not None:
        if previous.tzinfo is None:
            previous = previous.replace(tzinfo=UTC)
        if now <= previous:
            now = previous + timedelta(microseconds=1)
    venture.last_updated = now


def _apply(venture: Venture, data: Mapping[str, Any]) -> None:
    for wire, value in data.items():
        setattr(venture, WRITABLE_FIELDS[wire], value)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


def list_ventures(session: Session) -> list[Venture]:
    """All ventures, most recently updated first."""
    with store_errors(session):
        rows = session.execute(
            select(Venture).order_by(Venture.last_updated.desc(), Venture.id.desc())
        ).scalars().all()
    return list(rows)


def get_venture(session: Session, venture_id: int) -> Venture:
    with store_errors(session):
        venture = session.get(Venture, venture_id)
    if venture is None:
        raise NotFoundError()
    return venture


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


def create_venture(session: Session, data: Mapping[str, Any]) -> Venture:
    """Validate and insert a venture. Raises ValidationError or ConflictError."""
    clean = require_valid(data)
    code = clean["code"]
    with store_errors(session, code):
        _ensure_code_available(session, code)
        venture = Venture()
        _apply(venture, clean)
        if venture.capital_facilitated_usd is None:
            venture.capital_facilitated_usd = 0.0
        _touch(venture)
        session.add(venture)
        session.commit()
        session.refresh(venture)
    log.info("Created venture %s (%s)", venture.id, venture.code)
    return venture


def update_venture(session: Session, venture_id: int, patch: Mapping[str, Any]) -> Venture:
    """Merge *patch* onto an existing venture. Raises NotFoundError if it does not exist."""
    venture = get_venture(session, venture_id)
    clean = require_valid(patch, partial=True)
    code = clean.get("code")
    with store_errors(session, code):
        if code is not None and code != venture.code:
            _ensure_code_available(session, code, exclude_id=venture.id)
        _apply(venture, clean)
        _touch(venture)
        session.commit()
        session.refresh(venture)
    log.info("Updated venture %s fields=%s", venture.id, sorted(clean))
    return venture


def delete_venture(session: Session, venture_id: int) -> int:
    """Hard-delete a venture and return its id."""
    venture = get_venture(session, venture_id)
    with store_errors(session):
        session.delete(venture)
        session.commit()
    log.info("Deleted venture %s", venture_id)
    return venture_id


def delete_all(session: Session) -> int:
    with store_errors(session):
        result = session.execute(delete(Venture))
        session.commit()
    return result.rowcount or 0
