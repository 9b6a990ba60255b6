from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class AreaType(StrEnum):
    CRITICAL = "critica"
    SEMI_CRITICAL = "semicritica"
    NON_CRITICAL = "naocritica"
    UNSPECIFIED = "naoespecificada"


def _alias(*names: str) -> AliasChoices:
    return AliasChoices(*names)


class RecordModel(BaseModel):
    """Base for records read from the facility store.

    Store documents are loosely typed (camelCase keys, ObjectId-like
    identifiers, missing flags).  Subclasses accept both the document
    keys and the snake_case column names, and ignore anything else.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)


class Facility(RecordModel):
    """A tracked location with a cleaning history."""

    id: str = Field(validation_alias=_alias("_id", "id"))
    name: str
    code: str | None = None
    area_type: AreaType = Field(
        default=AreaType.UNSPECIFIED,
        validation_alias=_alias("areaType", "area_type"),
    )

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> Any:
        return value if value is None else str(value)

    @field_validator("code", mode="before")
    @classmethod
    def _blank_code(cls, value: Any) -> Any:
        if value is None:
            return None
        value = str(value).strip()
        return value or None

    @field_validator("area_type", mode="before")
    @classmethod
    def _unknown_area(cls, value: Any) -> AreaType:
        try:
            return AreaType(value)
        except ValueError:
            return AreaType.UNSPECIFIED


class HistoryEntry(RecordModel):
    """One recorded cleaning event for a facility."""

    id: str = Field(validation_alias=_alias("_id", "id"))
    facility_id: str | None = Field(
        default=None, validation_alias=_alias("facilityId", "facility_id")
    )
    recorded_at: datetime = Field(
        validation_alias=_alias("date", "recorded_at", "timestamp")
    )
    start_time: str | None = Field(
        default=None, validation_alias=_alias("startTime", "start_time")
    )
    end_time: str | None = Field(
        default=None, validation_alias=_alias("endTime", "end_time")
    )
    paper_towel: bool = Field(
        default=False, validation_alias=_alias("paperTowel", "paper_towel")
    )
    toilet_paper: bool = Field(
        default=False, validation_alias=_alias("toiletPaper", "toilet_paper")
    )
    soap: bool = False
    hand_sanitizer: bool = Field(
        default=False, validation_alias=_alias("handSanitizer", "hand_sanitizer")
    )
    concurrent: bool = False
    terminal: bool = False
    observations: str | None = None
    operator_ref: str | None = Field(
        default=None,
        validation_alias=_alias("createdBy", "created_by", "operator_ref"),
    )
    operator_label: str | None = None
    started_photo: str | None = Field(
        default=None, validation_alias=_alias("startedPhoto", "started_photo")
    )
    finished_photo: str | None = Field(
        default=None, validation_alias=_alias("finishedPhoto", "finished_photo")
    )

    @field_validator("id", "facility_id", "operator_ref", mode="before")
    @classmethod
    def _stringify_ref(cls, value: Any) -> Any:
        return value if value is None else str(value)

    @field_validator(
        "paper_towel",
        "toilet_paper",
        "soap",
        "hand_sanitizer",
        "concurrent",
        "terminal",
        mode="before",
    )
    @classmethod
    def _missing_flag(cls, value: Any) -> Any:
        return False if value is None else value

    @field_validator("recorded_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # The document store keeps naive UTC instants.
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value


@dataclass(frozen=True)
class FacilityMatch:
    """A facility paired with the relevance score that selected it."""

    facility: Facility
    score: float
