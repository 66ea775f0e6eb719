"""Content selection.

The selector is the entry point the web layer and the CLI call. For each
practice attempt it reads the learner's level and walks the tiers:

1. Unused cached item at the learner's band
2. Unused cached item at an adjacent band (easier first)
3. Freshly generated item, stored in the cache for everyone
4. Any cached item for the exercise type, even one the learner has seen

Only when every tier comes up empty does it raise NoContentAvailableError.
The selector holds no mutable state; stores are the synchronization point.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path

import structlog

from practice.config.app_config import AppConfig, load_app_config
from practice.core.catalog import SKILL_AREAS, validate_exercise_type
from practice.core.content_generator import ContentGenerator, GenerationError
from practice.core.leveling import (
    LevelAdjustment,
    UserSkillLevel,
    adjacent_bands,
    overall_level,
    validate_score,
)
from practice.core.stores import (
    ContentCache,
    ContentItem,
    InventoryEntry,
    LevelStore,
    PreGenerationReport,
    StoreError,
)

logger = structlog.get_logger(__name__)


class Source(str, Enum):
    """Which tier produced a selection."""

    CACHE = "cache"
    GENERATED = "generated"
    FALLBACK = "fallback"


class NoContentAvailableError(Exception):
    """Every tier failed: nothing cached and generation did not succeed."""

    pass


@dataclass(frozen=True)
class SelectionResult:
    """Item served to the learner."""

    item: ContentItem
    source: Source
    user_level: UserSkillLevel


@dataclass(frozen=True)
class SkillSummary:
    """Per-skill aggregate of a learner's exercise-type levels."""

    skill_area: str
    band_level: str
    numeric_level: float
    levels: list[UserSkillLevel]


class Selector:
    """Chooses content for learners and applies their scores."""

    def __init__(
        self,
        level_store: LevelStore,
        content_cache: ContentCache,
        generator: ContentGenerator,
        pregenerate_target: int = 10,
    ):
        self.level_store = level_store
        self.content_cache = content_cache
        self.generator = generator
        self.pregenerate_target = pregenerate_target

    def select_for(self, user_id: str, skill_area: str, exercise_type: str) -> SelectionResult:
        """Pick the next content item for a learner.

        Raises:
            UnknownExerciseTypeError: If the pair is not in the catalog.
            NoContentAvailableError: If no tier produced an item.
        """
        validate_exercise_type(skill_area, exercise_type)
        level = self.level_store.get_or_create(user_id, skill_area, exercise_type)
        band = level.band_level

        for candidate_band in [band, *adjacent_bands(band)]:
            item = self.content_cache.find_unused(user_id, skill_area, exercise_type, candidate_band)
            if item is not None:
                return self._serve(user_id, item, Source.CACHE, level)

        try:
            generated = self.generator.generate(skill_area, exercise_type, band)
        except GenerationError as e:
            logger.warning(
                "generation_failed",
                user_id=user_id,
                skill_area=skill_area,
                exercise_type=exercise_type,
                band=band,
                error_type=type(e).__name__,
                error=str(e),
            )
        else:
            item = self.content_cache.store(
                skill_area, exercise_type, band, generated.payload, generated.metadata
            )
            return self._serve(user_id, item, Source.GENERATED, level)

        item = self.content_cache.find_any_fallback(skill_area, exercise_type, band)
        if item is not None:
            return self._serve(user_id, item, Source.FALLBACK, level)

        logger.error(
            "no_content_available",
            user_id=user_id,
            skill_area=skill_area,
            exercise_type=exercise_type,
            band=band,
        )
        raise NoContentAvailableError(
            f"No content available for {skill_area}/{exercise_type} at {band}"
        )

    def report_score(
        self,
        user_id: str,
        skill_area: str,
        exercise_type: str,
        score: float,
        content_item_id: str | None = None,
    ) -> LevelAdjustment:
        """Apply a scored attempt to the learner's level.

        The score is also written to the matching usage record when one can
        be found; that part never fails the report.

        Args:
            content_item_id: Item the score belongs to; defaults to the
                learner's most recently served item of this exercise type.

        Raises:
            InvalidScoreError: If score is outside 0..100.
            UnknownExerciseTypeError: If the pair is not in the catalog.
            ConcurrencyConflictError: If the level update kept conflicting.
        """
        validate_exercise_type(skill_area, exercise_type)
        score = validate_score(score)

        adjustment = self.level_store.adjust_on_score(user_id, skill_area, exercise_type, score)
        current = adjustment.current

        self._backfill_score(user_id, skill_area, exercise_type, score, content_item_id)

        logger.info(
            "score_reported",
            user_id=user_id,
            skill_area=skill_area,
            exercise_type=exercise_type,
            score=score,
            numeric_level=current.numeric_level,
            band=current.band_level,
            band_changed=adjustment.band_changed,
        )
        return adjustment

    def levels_for_user(self, user_id: str) -> list[SkillSummary]:
        """Levels grouped by skill area, with the per-skill aggregate."""
        by_skill: dict[str, list[UserSkillLevel]] = {skill: [] for skill in SKILL_AREAS}
        for level in self.level_store.list_for_user(user_id):
            by_skill.setdefault(level.skill_area, []).append(level)

        summaries = []
        for skill_area, levels in by_skill.items():
            band, numeric = overall_level(levels)
            summaries.append(
                SkillSummary(
                    skill_area=skill_area,
                    band_level=band,
                    numeric_level=numeric,
                    levels=levels,
                )
            )
        return summaries

    def pre_generate(
        self,
        skill_area: str,
        exercise_type: str,
        band: str,
        target_count: int | None = None,
    ) -> PreGenerationReport:
        """Top up one cache pool to target_count active items.

        Generation failures are collected in the report, not raised.
        """
        validate_exercise_type(skill_area, exercise_type)
        target = self.pregenerate_target if target_count is None else target_count
        missing = max(0, target - self.content_cache.count_active(skill_area, exercise_type, band))

        report = PreGenerationReport()
        for i in range(missing):
            try:
                generated = self.generator.generate(skill_area, exercise_type, band)
            except GenerationError as e:
                report.errors.append(f"Item {i + 1}: {type(e).__name__}: {e}")
                continue
            self.content_cache.store(
                skill_area, exercise_type, band, generated.payload, generated.metadata
            )
            report.generated += 1

        logger.info(
            "pregeneration_complete",
            skill_area=skill_area,
            exercise_type=exercise_type,
            band=band,
            target=target,
            generated=report.generated,
            errors=len(report.errors),
        )
        return report

    def inventory(self) -> list[InventoryEntry]:
        return self.content_cache.inventory()

    def retire(self, content_item_id: str) -> None:
        self.content_cache.retire(content_item_id)

    def _serve(
        self, user_id: str, item: ContentItem, source: Source, level: UserSkillLevel
    ) -> SelectionResult:
        self.content_cache.mark_used(user_id, item.id)
        # Reflect the serve just recorded
        item = replace(item, times_used=item.times_used + 1)
        logger.info(
            "content_selected",
            user_id=user_id,
            content_item_id=item.id,
            skill_area=item.skill_area,
            exercise_type=item.exercise_type,
            item_band=item.band_level,
            user_band=level.band_level,
            source=source.value,
        )
        return SelectionResult(item=item, source=source, user_level=level)

    def _backfill_score(
        self,
        user_id: str,
        skill_area: str,
        exercise_type: str,
        score: float,
        content_item_id: str | None,
    ) -> None:
        try:
            if content_item_id is None:
                usage = self.content_cache.latest_usage(user_id, skill_area, exercise_type)
                if usage is None:
                    return
                content_item_id = usage.content_item_id
            updated = self.content_cache.record_score(user_id, content_item_id, score)
        except (sqlite3.Error, StoreError) as e:
            logger.warning(
                "score_backfill_failed",
                user_id=user_id,
                content_item_id=content_item_id,
                error=str(e),
            )
            return

        if not updated:
            logger.debug(
                "score_backfill_no_usage",
                user_id=user_id,
                content_item_id=content_item_id,
            )


def build_selector(
    config: AppConfig | None = None,
    db_path: Path | None = None,
    generator: ContentGenerator | None = None,
) -> Selector:
    """Wire a selector over the SQLite stores."""
    from practice.db.content_repository import SQLiteContentCache
    from practice.db.level_repository import SQLiteLevelStore

    config = config or load_app_config()
    db_path = db_path or config.db_path

    return Selector(
        level_store=SQLiteLevelStore(
            db_path=db_path,
            policy=config.leveling,
            max_retries=config.max_update_retries,
        ),
        content_cache=SQLiteContentCache(db_path=db_path),
        generator=generator or ContentGenerator(config=config),
        pregenerate_target=config.cache.pregenerate_target,
    )
