"""SQLite level store.

Rows in user_skill_levels are created lazily and only ever changed by
adjust_on_score (update_on_score wraps it). Score updates are a
compare-and-set on the row version inside an IMMEDIATE transaction,
retried a bounded number of times when another writer wins. The level
the update replaced is returned from that same transaction.
"""

from __future__ import annotations

import random
import sqlite3
import time
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path

import structlog

from practice.config.app_config import LevelingPolicy
from practice.core.leveling import (
    LevelAdjustment,
    UserSkillLevel,
    apply_score,
    band_for_level,
    validate_score,
)
from practice.core.stores import ConcurrencyConflictError
from practice.db.database import get_db, is_lock_error

logger = structlog.get_logger(__name__)

DEFAULT_MAX_RETRIES = 5

# Base backoff between conflicting update attempts (seconds)
RETRY_BACKOFF_SECONDS = 0.01


class _VersionMismatch(Exception):
    """Row changed between read and write."""

    pass


class SQLiteLevelStore:
    """Level store backed by the user_skill_levels table."""

    def __init__(
        self,
        db_path: Path | None = None,
        policy: LevelingPolicy | None = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
    ):
        """Initialize store.

        Args:
            db_path: Database file (defaults to the init_db path)
            policy: Leveling thresholds
            max_retries: Attempts before a conflicting update gives up
        """
        self.db_path = db_path
        self.policy = policy or LevelingPolicy()
        self.max_retries = max(1, max_retries)

    def get_or_create(
        self, user_id: str, skill_area: str, exercise_type: str
    ) -> UserSkillLevel:
        """Get a user's level, creating the default row on first access.

        Concurrent first access is resolved by the primary key: every caller
        inserts-if-absent and then reads whichever row won.
        """
        now = datetime.now(timezone.utc).isoformat()
        default = self.policy.default_level

        with get_db(self.db_path) as conn:
            cursor = conn.execute(
                """
                INSERT OR IGNORE INTO user_skill_levels (
                    user_id, skill_area, exercise_type,
                    numeric_level, band_level, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    user_id,
                    skill_area,
                    exercise_type,
                    default,
                    band_for_level(default),
                    now,
                    now,
                ),
            )
            row = self._select(conn, user_id, skill_area, exercise_type)

        if cursor.rowcount:
            logger.info(
                "level_created",
                user_id=user_id,
                skill_area=skill_area,
                exercise_type=exercise_type,
                band=band_for_level(default),
            )

        return _row_to_level(row)

    def update_on_score(
        self, user_id: str, skill_area: str, exercise_type: str, score: float
    ) -> UserSkillLevel:
        """Apply one scored attempt and persist the result.

        Returns:
            The level after the update.

        Raises:
            InvalidScoreError: If score is out of range.
            ConcurrencyConflictError: If every retry lost to another writer.
        """
        return self.adjust_on_score(user_id, skill_area, exercise_type, score).current

    def adjust_on_score(
        self, user_id: str, skill_area: str, exercise_type: str, score: float
    ) -> LevelAdjustment:
        """Apply one scored attempt and return the level before and after it.

        The previous level is the row the update was computed from, read in
        the same write transaction, so concurrent reports never share one.

        Args:
            user_id: Learner
            skill_area: Skill area
            exercise_type: Exercise type
            score: Attempt score, 0..100

        Raises:
            InvalidScoreError: If score is out of range.
            ConcurrencyConflictError: If every retry lost to another writer.
        """
        score = validate_score(score)
        self.get_or_create(user_id, skill_area, exercise_type)

        for attempt in range(1, self.max_retries + 1):
            try:
                adjustment = self._try_update(user_id, skill_area, exercise_type, score)
            except _VersionMismatch:
                reason = "version_mismatch"
            except sqlite3.OperationalError as e:
                if not is_lock_error(e):
                    raise
                reason = "database_locked"
            else:
                logger.debug(
                    "level_updated",
                    user_id=user_id,
                    skill_area=skill_area,
                    exercise_type=exercise_type,
                    score=score,
                    numeric_level=adjustment.current.numeric_level,
                    band=adjustment.current.band_level,
                    attempt=attempt,
                )
                return adjustment

            logger.debug(
                "level_update_conflict",
                user_id=user_id,
                skill_area=skill_area,
                exercise_type=exercise_type,
                attempt=attempt,
                reason=reason,
            )
            time.sleep(RETRY_BACKOFF_SECONDS * attempt * (1 + random.random()))

        logger.error(
            "level_update_conflict_exhausted",
            user_id=user_id,
            skill_area=skill_area,
            exercise_type=exercise_type,
            retries=self.max_retries,
        )
        raise ConcurrencyConflictError(
            f"Level update for {user_id}/{skill_area}/{exercise_type} "
            f"conflicted {self.max_retries} times"
        )

    def list_for_user(self, user_id: str) -> list[UserSkillLevel]:
        """All levels for a user, ordered by skill area and exercise type."""
        with get_db(self.db_path) as conn:
            rows = conn.execute(
                """
                SELECT * FROM user_skill_levels
                WHERE user_id = ?
                ORDER BY skill_area, exercise_type
                """,
                (user_id,),
            ).fetchall()

        return [_row_to_level(row) for row in rows]

    def _try_update(
        self, user_id: str, skill_area: str, exercise_type: str, score: float
    ) -> LevelAdjustment:
        """One read-modify-write attempt."""
        with get_db(self.db_path, immediate=True) as conn:
            current = _row_to_level(self._select(conn, user_id, skill_area, exercise_type))
            new = apply_score(current, score, self.policy)

            cursor = conn.execute(
                """
                UPDATE user_skill_levels
                SET numeric_level = ?,
                    band_level = ?,
                    attempts_at_band = ?,
                    correct_streak = ?,
                    failure_streak = ?,
                    version = version + 1,
                    updated_at = ?
                WHERE user_id = ? AND skill_area = ? AND exercise_type = ?
                  AND version = ?
                """,
                (
                    new.numeric_level,
                    new.band_level,
                    new.attempts_at_band,
                    new.correct_streak,
                    new.failure_streak,
                    new.updated_at,
                    user_id,
                    skill_area,
                    exercise_type,
                    current.version,
                ),
            )
            if cursor.rowcount != 1:
                raise _VersionMismatch()

        return LevelAdjustment(
            previous=current, current=replace(new, version=current.version + 1)
        )

    @staticmethod
    def _select(
        conn: sqlite3.Connection, user_id: str, skill_area: str, exercise_type: str
    ) -> sqlite3.Row:
        return conn.execute(
            """
            SELECT * FROM user_skill_levels
            WHERE user_id = ? AND skill_area = ? AND exercise_type = ?
            """,
            (user_id, skill_area, exercise_type),
        ).fetchone()


def _row_to_level(row: sqlite3.Row) -> UserSkillLevel:
    """Convert database row to UserSkillLevel.

    band_level is not read back: it is always derived from numeric_level.
    """
    return UserSkillLevel(
        user_id=row["user_id"],
        skill_area=row["skill_area"],
        exercise_type=row["exercise_type"],
        numeric_level=float(row["numeric_level"]),
        attempts_at_band=row["attempts_at_band"],
        correct_streak=row["correct_streak"],
        failure_streak=row["failure_streak"],
        version=row["version"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )
