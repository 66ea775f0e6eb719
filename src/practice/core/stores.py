"""Store contracts for the selector.

The selector talks to persistence only through the two protocols below,
so a backing store is one class per storage technology (see practice.db
for the SQLite implementations). Records crossing the boundary are plain
frozen dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

from practice.core.leveling import LevelAdjustment, UserSkillLevel
from practice.core.payloads import ContentPayload, payload_to_dict

# =============================================================================
# ERRORS
# =============================================================================


class StoreError(Exception):
    """Error raised by a backing store."""

    pass


class ConcurrencyConflictError(StoreError):
    """Concurrent writers kept colliding on the same key."""

    pass


class ContentItemNotFoundError(StoreError, LookupError):
    """No content item with the given id."""

    pass


# =============================================================================
# RECORDS
# =============================================================================


@dataclass(frozen=True)
class GenerationMetadata:
    """Which backend produced a content item, and how."""

    provider: str
    model: str
    schema_id: str
    generated_at: str
    topics: tuple[str, ...] = ()
    latency_ms: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "provider": self.provider,
            "model": self.model,
            "schema_id": self.schema_id,
            "generated_at": self.generated_at,
            "topics": list(self.topics),
            "latency_ms": self.latency_ms,
        }


@dataclass(frozen=True)
class ContentItem:
    """One cached, schema-valid exercise instance."""

    id: str
    skill_area: str
    exercise_type: str
    band_level: str
    payload: ContentPayload
    metadata: GenerationMetadata
    times_used: int = 0
    is_active: bool = True
    created_at: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "skill_area": self.skill_area,
            "exercise_type": self.exercise_type,
            "band_level": self.band_level,
            "payload": payload_to_dict(self.payload),
            "metadata": self.metadata.to_dict(),
            "times_used": self.times_used,
            "is_active": self.is_active,
            "created_at": self.created_at,
        }


@dataclass(frozen=True)
class UsageRecord:
    """A user consumed a content item."""

    user_id: str
    content_item_id: str
    used_at: str
    score: float | None = None


@dataclass(frozen=True)
class InventoryEntry:
    """Active item count for one (skill area, exercise type, band)."""

    skill_area: str
    exercise_type: str
    band_level: str
    count: int


@dataclass
class PreGenerationReport:
    """Outcome of topping up a cache pool."""

    generated: int = 0
    errors: list[str] = field(default_factory=list)


# =============================================================================
# PROTOCOLS
# =============================================================================


class LevelStore(Protocol):
    """Persists each user's proficiency per (skill area, exercise type)."""

    def get_or_create(
        self, user_id: str, skill_area: str, exercise_type: str
    ) -> UserSkillLevel:
        """Return the current level, creating the default row if absent."""
        ...

    def update_on_score(
        self, user_id: str, skill_area: str, exercise_type: str, score: float
    ) -> UserSkillLevel:
        """Apply one scored attempt atomically and return the new level."""
        ...

    def adjust_on_score(
        self, user_id: str, skill_area: str, exercise_type: str, score: float
    ) -> LevelAdjustment:
        """Like update_on_score, but return the levels on both sides of the write.

        Both levels come from the transaction that applied the score.
        """
        ...

    def list_for_user(self, user_id: str) -> list[UserSkillLevel]:
        """All levels recorded for a user."""
        ...


class ContentCache(Protocol):
    """Shared pool of generated content and per-user usage history."""

    def find_unused(
        self, user_id: str, skill_area: str, exercise_type: str, band: str
    ) -> ContentItem | None:
        """Least-used active item at a band that the user has not seen."""
        ...

    def find_any_fallback(
        self, skill_area: str, exercise_type: str, band: str
    ) -> ContentItem | None:
        """Least-used active item at the band, else at any band."""
        ...

    def store(
        self,
        skill_area: str,
        exercise_type: str,
        band: str,
        payload: ContentPayload,
        metadata: GenerationMetadata,
    ) -> ContentItem:
        """Insert a new active item."""
        ...

    def mark_used(self, user_id: str, content_item_id: str) -> bool:
        """Record usage and bump times_used; True if the record is new."""
        ...

    def latest_usage(
        self, user_id: str, skill_area: str, exercise_type: str
    ) -> UsageRecord | None:
        """Most recent usage by a user for a skill area and exercise type."""
        ...

    def record_score(self, user_id: str, content_item_id: str, score: float) -> bool:
        """Back-fill the score on a usage record."""
        ...

    def count_active(self, skill_area: str, exercise_type: str, band: str) -> int:
        """Number of active items in one pool."""
        ...

    def inventory(self) -> list[InventoryEntry]:
        """Active item counts for every pool."""
        ...

    def retire(self, content_item_id: str) -> None:
        """Exclude an item from selection, keeping the row."""
        ...
