"""Relational layout of the facility store.

The document store embeds each facility's history as an array; here it
is a one-to-many relation, and operators are a table of their own.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from facility_history.models.utils import generate_id


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Declarative base for all facility_history tables."""

    pass


class TimeStampMixin:
    """Mixin that adds created_at / updated_at columns."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        nullable=False,
    )


class FacilityRow(TimeStampMixin, Base):
    __tablename__ = "facilities"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=generate_id)
    name: Mapped[str] = mapped_column(String, nullable=False)
    code: Mapped[str | None] = mapped_column(String, nullable=True)
    area_type: Mapped[str | None] = mapped_column(String, nullable=True)

    history: Mapped[list[HistoryEntryRow]] = relationship(
        "HistoryEntryRow",
        back_populates="facility",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index(
            "ix_facilities_name_trgm",
            "name",
            postgresql_using="gin",
            postgresql_ops={"name": "gin_trgm_ops"},
        ),
    )

    def to_document(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "area_type": self.area_type,
        }


class HistoryEntryRow(Base):
    __tablename__ = "history_entries"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=generate_id)
    facility_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("facilities.id", ondelete="CASCADE"),
        nullable=False,
    )
    recorded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    start_time: Mapped[str | None] = mapped_column(String, nullable=True)
    end_time: Mapped[str | None] = mapped_column(String, nullable=True)
    paper_towel: Mapped[bool] = mapped_column(Boolean, default=False)
    toilet_paper: Mapped[bool] = mapped_column(Boolean, default=False)
    soap: Mapped[bool] = mapped_column(Boolean, default=False)
    hand_sanitizer: Mapped[bool] = mapped_column(Boolean, default=False)
    concurrent: Mapped[bool] = mapped_column(Boolean, default=False)
    terminal: Mapped[bool] = mapped_column(Boolean, default=False)
    observations: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    started_photo: Mapped[str | None] = mapped_column(String, nullable=True)
    finished_photo: Mapped[str | None] = mapped_column(String, nullable=True)

    facility: Mapped[FacilityRow] = relationship(
        "FacilityRow", back_populates="history"
    )

    __table_args__ = (
        Index("ix_history_facility_recorded", "facility_id", "recorded_at"),
    )

    def to_document(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "facility_id": self.facility_id,
            "recorded_at": self.recorded_at,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "paper_towel": self.paper_towel,
            "toilet_paper": self.toilet_paper,
            "soap": self.soap,
            "hand_sanitizer": self.hand_sanitizer,
            "concurrent": self.concurrent,
            "terminal": self.terminal,
            "observations": self.observations,
            "created_by": self.created_by,
            "started_photo": self.started_photo,
            "finished_photo": self.finished_photo,
        }


class OperatorRow(TimeStampMixin, Base):
    __tablename__ = "operators"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=generate_id)
    email: Mapped[str] = mapped_column(String, nullable=False)
