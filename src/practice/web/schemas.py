"""Pydantic schemas for the Web API.

Request bodies keep skill area and exercise type as plain strings: the
catalog check lives in the selector, so unknown values are reported as
400 rather than as a validation error.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

from practice.core.catalog import Band
from practice.core.leveling import LevelAdjustment, UserSkillLevel
from practice.core.selector import SelectionResult, SkillSummary
from practice.core.stores import ContentItem


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    timestamp: str


# =============================================================================
# LEVEL SCHEMAS
# =============================================================================


class UserLevelResponse(BaseModel):
    """A learner's level for one exercise type."""

    skill_area: str
    exercise_type: str
    numeric_level: float
    band_level: str
    attempts_at_band: int
    correct_streak: int
    failure_streak: int
    updated_at: str

    @classmethod
    def from_level(cls, level: UserSkillLevel) -> UserLevelResponse:
        return cls(
            skill_area=level.skill_area,
            exercise_type=level.exercise_type,
            numeric_level=level.numeric_level,
            band_level=level.band_level,
            attempts_at_band=level.attempts_at_band,
            correct_streak=level.correct_streak,
            failure_streak=level.failure_streak,
            updated_at=level.updated_at,
        )


class SkillLevelsResponse(BaseModel):
    """Aggregate level for one skill area."""

    skill_area: str
    band_level: str
    numeric_level: float
    levels: list[UserLevelResponse]

    @classmethod
    def from_summary(cls, summary: SkillSummary) -> SkillLevelsResponse:
        return cls(
            skill_area=summary.skill_area,
            band_level=summary.band_level,
            numeric_level=summary.numeric_level,
            levels=[UserLevelResponse.from_level(lvl) for lvl in summary.levels],
        )


class UserLevelsResponse(BaseModel):
    """All levels for a learner."""

    user_id: str
    skills: list[SkillLevelsResponse]


# =============================================================================
# PRACTICE SCHEMAS
# =============================================================================


class SelectRequest(BaseModel):
    """Request body for picking the next exercise."""

    user_id: str = Field(..., min_length=1, max_length=200)
    skill_area: str
    exercise_type: str


class ContentItemResponse(BaseModel):
    """A cached exercise as served to the client."""

    id: str
    skill_area: str
    exercise_type: str
    band_level: str
    payload: dict[str, Any]
    metadata: dict[str, Any]
    times_used: int
    created_at: str

    @classmethod
    def from_item(cls, item: ContentItem) -> ContentItemResponse:
        data = item.to_dict()
        return cls(
            id=data["id"],
            skill_area=data["skill_area"],
            exercise_type=data["exercise_type"],
            band_level=data["band_level"],
            payload=data["payload"],
            metadata=data["metadata"],
            times_used=data["times_used"],
            created_at=data["created_at"],
        )


class SelectResponse(BaseModel):
    """Selected exercise and the level it was chosen for."""

    item: ContentItemResponse
    source: Literal["cache", "generated", "fallback"]
    user_level: UserLevelResponse

    @classmethod
    def from_result(cls, result: SelectionResult) -> SelectResponse:
        return cls(
            item=ContentItemResponse.from_item(result.item),
            source=result.source.value,
            user_level=UserLevelResponse.from_level(result.user_level),
        )


class ScoreRequest(BaseModel):
    """Request body for reporting a graded attempt."""

    user_id: str = Field(..., min_length=1, max_length=200)
    skill_area: str
    exercise_type: str
    score: float
    content_item_id: str | None = None


class ScoreResponse(BaseModel):
    """Level before and after the score."""

    previous: UserLevelResponse
    current: UserLevelResponse
    delta: float
    band_changed: bool

    @classmethod
    def from_adjustment(cls, adjustment: LevelAdjustment) -> ScoreResponse:
        return cls(
            previous=UserLevelResponse.from_level(adjustment.previous),
            current=UserLevelResponse.from_level(adjustment.current),
            delta=adjustment.delta,
            band_changed=adjustment.band_changed,
        )


# =============================================================================
# CONTENT SCHEMAS
# =============================================================================


class InventoryEntryResponse(BaseModel):
    """Active item count for one pool."""

    skill_area: str
    exercise_type: str
    band_level: str
    count: int


class InventoryResponse(BaseModel):
    """Active item counts for every pool."""

    entries: list[InventoryEntryResponse]
    total: int


class PregenerateRequest(BaseModel):
    """Request body for topping up a cache pool."""

    skill_area: str
    exercise_type: str
    band: Band
    target_count: int | None = Field(default=None, ge=0, le=100)


class PregenerateResponse(BaseModel):
    """Outcome of a pre-generation run."""

    generated: int
    errors: list[str]


class RetireResponse(BaseModel):
    """Retired content item."""

    id: str
    is_active: bool
