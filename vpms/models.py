from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import DateTime, Enum, Float, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from vpms.schemas import CapitalStatus, Stage


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


class Base(DeclarativeBase):
    pass


class Venture(Base):
    __tablename__ = "ventures"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(300), nullable=False)
    sector: Mapped[str] = mapped_column(String(200), nullable=False)  # e.g. "Agriculture"
    country: Mapped[str] = mapped_column(String(200), nullable=False)  # e.g. "Cambodia"
    stage: Mapped[Stage] = mapped_column(
        Enum(Stage, native_enum=False, validate_strings=True, length=32), nullable=False,
    )
    readiness_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    capital_status: Mapped[CapitalStatus] = mapped_column(
        Enum(CapitalStatus, native_enum=False, validate_strings=True, length=32), nullable=False,
    )
    capital_facilitated_usd: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    last_updated: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, nullable=False)

    def __repr__(self) -> str:
        return f"<Venture {self.id} {self.code!r} {self.stage.value if self.stage else None}>"
