"""Data models for remembered facts and the user's locale context."""

import uuid
from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def utc_timestamp() -> str:
    """UTC ISO-8601 with millisecond precision and a ``Z`` suffix."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class MemoryCategory(StrEnum):
    PERSONAL = "personal"
    AGRICULTURAL = "agricultural"
    FINANCIAL = "financial"
    FAMILY = "family"
    PREFERENCES = "preferences"
    OTHER = "other"


class Season(StrEnum):
    SUMMER = "Summer"
    MONSOON = "Monsoon"
    WINTER = "Winter"
    SPRING = "Spring"


class MemoryRecord(BaseModel):
    """A fact the assistant was asked to remember. Immutable once saved."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    content: str
    category: MemoryCategory = MemoryCategory.OTHER
    created_at: str = Field(default_factory=utc_timestamp)


class ContextRecord(BaseModel):
    """Season, location and farming context for the single local user."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    season: Season | None = None
    location: str = ""
    crop_cycle: str = ""
    festival: str = ""

    @field_validator("season", mode="before")
    @classmethod
    def _blank_season_is_unset(cls, value: object) -> object:
        return None if value == "" else value

    def labeled_lines(self) -> list[str]:
        """``Label: value`` for every non-empty field, in a fixed order."""
        fields = [
            ("Season", self.season.value if self.season else ""),
            ("Location", self.location),
            ("Crop Cycle", self.crop_cycle),
            ("Festival", self.festival),
        ]
        return [f"{label}: {value}" for label, value in fields if value.strip()]
