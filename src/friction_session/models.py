"""Pydantic models for the Friction Log backend contract.

Field names match the backend's snake_case JSON exactly, so responses
validate directly and request bodies serialize with ``model_dump``.
"""
from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Category(str, Enum):
    """Where a friction item lives."""

    HOME = "home"
    WORK = "work"
    DIGITAL = "digital"
    HEALTH = "health"
    OTHER = "other"

    @property
    def display_name(self) -> str:
        return self.value.title()


class Status(str, Enum):
    """Fix status of a friction item."""

    NOT_FIXED = "not_fixed"
    IN_PROGRESS = "in_progress"
    FIXED = "fixed"

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()

    @property
    def is_active(self) -> bool:
        """Fixed items no longer count toward the score or take encounters."""
        return self is not Status.FIXED


class FrictionItem(BaseModel):
    """A tracked annoyance as reported by the backend."""

    id: int
    title: str
    description: Optional[str] = None
    annoyance_level: int = Field(ge=1, le=5)
    category: Category
    status: Status
    created_at: datetime
    updated_at: datetime
    fixed_at: Optional[datetime] = None
    encounter_count: int = Field(default=0, ge=0)
    encounter_limit: Optional[int] = Field(default=None, gt=0)
    last_encounter_date: Optional[date] = None
    is_limit_exceeded: bool = False

    @property
    def impact(self) -> int:
        return self.annoyance_level * self.encounter_count

    @property
    def is_active(self) -> bool:
        return self.status.is_active


class FrictionItemCreate(BaseModel):
    """Request body for creating a friction item."""

    title: str = Field(min_length=1)
    description: Optional[str] = None
    annoyance_level: int = Field(ge=1, le=5)
    category: Category
    encounter_limit: Optional[int] = Field(default=None, gt=0)

    @field_validator("description")
    @classmethod
    def blank_description_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            return None
        return value


class FrictionItemUpdate(BaseModel):
    """Partial update body.

    Only fields that were explicitly passed are sent; use
    ``to_payload()`` rather than ``model_dump()`` directly.
    """

    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    annoyance_level: Optional[int] = Field(default=None, ge=1, le=5)
    category: Optional[Category] = None
    status: Optional[Status] = None
    encounter_limit: Optional[int] = Field(default=None, gt=0)

    @field_validator("description")
    @classmethod
    def blank_description_is_none(cls, value: Optional[str]) -> Optional[str]:
        # Sent as an explicit null, which clears the field
        if value is not None and not value.strip():
            return None
        return value

    def to_payload(self) -> dict:
        return self.model_dump(mode="json", exclude_unset=True)


class AggregateScore(BaseModel):
    """Snapshot of today's overall friction standing."""

    current_score: int
    active_count: int
    items_over_limit: int = 0
    total_encounters_today: int = 0
    weighted_encounters_today: int = 0
    global_limit: Optional[int] = None
    limit_percentage: Optional[int] = None

    @property
    def has_limit(self) -> bool:
        return self.global_limit is not None and self.limit_percentage is not None


class TrendDataPoint(BaseModel):
    """One day of the score history."""

    date: date
    score: int


class CategoryBreakdown(BaseModel):
    """Score totals per category."""

    home: int = 0
    work: int = 0
    digital: int = 0
    health: int = 0
    other: int = 0

    @property
    def total(self) -> int:
        return self.home + self.work + self.digital + self.health + self.other

    def score_for(self, category: Category) -> int:
        return getattr(self, category.value)


class MostAnnoyingItem(BaseModel):
    """Entry of the ranked most-annoying list."""

    id: int
    title: str
    annoyance_level: int
    encounter_count: int
    impact: int
    category: Category


class GlobalLimit(BaseModel):
    """Global daily limit as read from or acknowledged by the backend."""

    global_limit: Optional[int] = Field(default=None, gt=0)
