"""SQLite content cache.

Stores generated content items and who has seen them. Lookups prefer the
least-used item, then the oldest, then insertion order, so results are
deterministic and popularity spreads across the pool.
"""

from __future__ import annotations

import json
import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

import structlog

from practice.core.payloads import (
    ContentPayload,
    PayloadValidationError,
    parse_payload,
    payload_to_dict,
)
from practice.core.stores import (
    ContentItem,
    ContentItemNotFoundError,
    GenerationMetadata,
    InventoryEntry,
    UsageRecord,
)
from practice.db.database import get_db

logger = structlog.get_logger(__name__)

# Least used first, then oldest; rowid breaks ties between equal timestamps
_PREFERENCE_ORDER = "ORDER BY c.times_used ASC, c.created_at ASC, c.rowid ASC"


class SQLiteContentCache:
    """Content cache backed by content_items and usage_records."""

    def __init__(self, db_path: Path | None = None):
        """Initialize cache.

        Args:
            db_path: Database file (defaults to the init_db path)
        """
        self.db_path = db_path

    def find_unused(
        self, user_id: str, skill_area: str, exercise_type: str, band: str
    ) -> ContentItem | None:
        """Find an active item at a band that the user has never used.

        Returns:
            The preferred item, or None on a miss.
        """
        with get_db(self.db_path) as conn:
            rows = conn.execute(
                f"""
                SELECT c.* FROM content_items c
                WHERE c.skill_area = ? AND c.exercise_type = ? AND c.band_level = ?
                  AND c.is_active = 1
                  AND NOT EXISTS (
                      SELECT 1 FROM usage_records u
                      WHERE u.content_item_id = c.id AND u.user_id = ?
                  )
                {_PREFERENCE_ORDER}
                """,
                (skill_area, exercise_type, band, user_id),
            )
            item = _first_valid(rows)

        if item is None:
            logger.debug(
                "cache_miss",
                user_id=user_id,
                skill_area=skill_area,
                exercise_type=exercise_type,
                band=band,
            )

        return item

    def find_any_fallback(
        self, skill_area: str, exercise_type: str, band: str
    ) -> ContentItem | None:
        """Find any active item, ignoring who has used it.

        Tries the exact band first, then every band for the skill area and
        exercise type.
        """
        with get_db(self.db_path) as conn:
            item = _first_valid(
                conn.execute(
                    f"""
                    SELECT c.* FROM content_items c
                    WHERE c.skill_area = ? AND c.exercise_type = ? AND c.band_level = ?
                      AND c.is_active = 1
                    {_PREFERENCE_ORDER}
                    """,
                    (skill_area, exercise_type, band),
                )
            )

            if item is None:
                item = _first_valid(
                    conn.execute(
                        f"""
                        SELECT c.* FROM content_items c
                        WHERE c.skill_area = ? AND c.exercise_type = ? AND c.is_active = 1
                        {_PREFERENCE_ORDER}
                        """,
                        (skill_area, exercise_type),
                    )
                )

        return item

    def store(
        self,
        skill_area: str,
        exercise_type: str,
        band: str,
        payload: ContentPayload,
        metadata: GenerationMetadata,
    ) -> ContentItem:
        """Insert a new active item with times_used = 0."""
        item = ContentItem(
            id=uuid.uuid4().hex,
            skill_area=skill_area,
            exercise_type=exercise_type,
            band_level=band,
            payload=payload,
            metadata=metadata,
            times_used=0,
            is_active=True,
            created_at=_now(),
        )

        with get_db(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO content_items (
                    id, skill_area, exercise_type, band_level, schema_id,
                    payload, times_used, is_active, created_at,
                    gen_provider, gen_model, gen_generated_at, gen_topics, gen_latency_ms
                ) VALUES (?, ?, ?, ?, ?, ?, 0, 1, ?, ?, ?, ?, ?, ?)
                """,
                (
                    item.id,
                    skill_area,
                    exercise_type,
                    band,
                    metadata.schema_id,
                    json.dumps(payload_to_dict(payload), ensure_ascii=False),
                    item.created_at,
                    metadata.provider,
                    metadata.model,
                    metadata.generated_at,
                    json.dumps(list(metadata.topics), ensure_ascii=False),
                    metadata.latency_ms,
                ),
            )

        logger.info(
            "content_stored",
            content_item_id=item.id,
            skill_area=skill_area,
            exercise_type=exercise_type,
            band=band,
        )
        return item

    def mark_used(self, user_id: str, content_item_id: str) -> bool:
        """Record that a user consumed an item.

        The usage insert is idempotent; times_used is incremented on every
        call so popularity ordering reflects repeat fallback serves too.

        Returns:
            True if a new usage record was created.

        Raises:
            ContentItemNotFoundError: If the item does not exist.
        """
        with get_db(self.db_path) as conn:
            bumped = conn.execute(
                "UPDATE content_items SET times_used = times_used + 1 WHERE id = ?",
                (content_item_id,),
            )
            if bumped.rowcount == 0:
                raise ContentItemNotFoundError(f"Content item not found: {content_item_id}")

            inserted = conn.execute(
                """
                INSERT OR IGNORE INTO usage_records (user_id, content_item_id, used_at)
                VALUES (?, ?, ?)
                """,
                (user_id, content_item_id, _now()),
            )

        created = inserted.rowcount == 1
        logger.debug(
            "content_marked_used",
            user_id=user_id,
            content_item_id=content_item_id,
            new_record=created,
        )
        return created

    def latest_usage(
        self, user_id: str, skill_area: str, exercise_type: str
    ) -> UsageRecord | None:
        """Most recent usage record for a user within one exercise type."""
        with get_db(self.db_path) as conn:
            row = conn.execute(
                """
                SELECT u.* FROM usage_records u
                JOIN content_items c ON c.id = u.content_item_id
                WHERE u.user_id = ? AND c.skill_area = ? AND c.exercise_type = ?
                ORDER BY u.used_at DESC, u.rowid DESC
                LIMIT 1
                """,
                (user_id, skill_area, exercise_type),
            ).fetchone()

        if row is None:
            return None

        return UsageRecord(
            user_id=row["user_id"],
            content_item_id=row["content_item_id"],
            used_at=row["used_at"],
            score=row["score"],
        )

    def record_score(self, user_id: str, content_item_id: str, score: float) -> bool:
        """Back-fill the score on a usage record.

        Returns:
            True if a record was updated.
        """
        with get_db(self.db_path) as conn:
            cursor = conn.execute(
                """
                UPDATE usage_records SET score = ?
                WHERE user_id = ? AND content_item_id = ?
                """,
                (score, user_id, content_item_id),
            )
        return cursor.rowcount == 1

    def get(self, content_item_id: str) -> ContentItem | None:
        """Load an item by id, active or not."""
        with get_db(self.db_path) as conn:
            row = conn.execute(
                "SELECT * FROM content_items WHERE id = ?", (content_item_id,)
            ).fetchone()

        if row is None:
            return None

        return _row_to_item(row)

    def count_active(self, skill_area: str, exercise_type: str, band: str) -> int:
        """Number of active items in one (skill area, exercise type, band) pool."""
        with get_db(self.db_path) as conn:
            row = conn.execute(
                """
                SELECT COUNT(*) AS n FROM content_items
                WHERE skill_area = ? AND exercise_type = ? AND band_level = ?
                  AND is_active = 1
                """,
                (skill_area, exercise_type, band),
            ).fetchone()
        return row["n"]

    def inventory(self) -> list[InventoryEntry]:
        """Active item counts grouped by pool."""
        with get_db(self.db_path) as conn:
            rows = conn.execute(
                """
                SELECT skill_area, exercise_type, band_level, COUNT(*) AS n
                FROM content_items
                WHERE is_active = 1
                GROUP BY skill_area, exercise_type, band_level
                ORDER BY skill_area, exercise_type, band_level
                """
            ).fetchall()

        return [
            InventoryEntry(
                skill_area=row["skill_area"],
                exercise_type=row["exercise_type"],
                band_level=row["band_level"],
                count=row["n"],
            )
            for row in rows
        ]

    def retire(self, content_item_id: str) -> None:
        """Soft-delete an item so selection skips it.

        Raises:
            ContentItemNotFoundError: If the item does not exist.
        """
        with get_db(self.db_path) as conn:
            cursor = conn.execute(
                "UPDATE content_items SET is_active = 0 WHERE id = ?",
                (content_item_id,),
            )
            if cursor.rowcount == 0:
                raise ContentItemNotFoundError(f"Content item not found: {content_item_id}")

        logger.info("content_retired", content_item_id=content_item_id)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _first_valid(rows: Iterable[sqlite3.Row]) -> ContentItem | None:
    """First row whose stored payload still parses; broken rows are skipped."""
    for row in rows:
        try:
            return _row_to_item(row)
        except (PayloadValidationError, ValueError) as e:
            logger.warning(
                "cached_payload_invalid",
                content_item_id=row["id"],
                schema_id=row["schema_id"],
                error=str(e),
            )
    return None


def _row_to_item(row: sqlite3.Row) -> ContentItem:
    """Convert database row to ContentItem."""
    return ContentItem(
        id=row["id"],
        skill_area=row["skill_area"],
        exercise_type=row["exercise_type"],
        band_level=row["band_level"],
        payload=parse_payload(row["schema_id"], json.loads(row["payload"])),
        metadata=GenerationMetadata(
            provider=row["gen_provider"] or "",
            model=row["gen_model"] or "",
            schema_id=row["schema_id"],
            generated_at=row["gen_generated_at"] or row["created_at"],
            topics=tuple(json.loads(row["gen_topics"] or "[]")),
            latency_ms=row["gen_latency_ms"],
        ),
        times_used=row["times_used"],
        is_active=bool(row["is_active"]),
        created_at=row["created_at"],
    )
