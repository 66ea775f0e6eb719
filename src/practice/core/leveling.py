"""Proficiency levels and the score-driven leveling rule.

A learner's proficiency per (skill area, exercise type) is a continuous
numeric level in [1.0, 6.0]. The CEFR band is always derived from it by
truncation: 1.x -> A1, 2.x -> A2, ... 5.x -> C1, 6.0 -> C2.

Movement needs a streak: two qualifying successes raise the level by one
step, two consecutive failures lower it by one step. Since a step is half
a band, crossing a band takes two qualifying moves, which keeps a single
lucky or unlucky attempt from flipping the band.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Literal

from practice.config.app_config import LevelingPolicy

# =============================================================================
# BANDS
# =============================================================================

BANDS: tuple[str, ...] = ("A1", "A2", "B1", "B2", "C1", "C2")

Outcome = Literal["success", "failure", "neutral"]


class InvalidScoreError(ValueError):
    """Score outside the 0..100 range."""

    pass


def band_for_level(numeric_level: float) -> str:
    """Derive the CEFR band from a numeric level.

    Truncates toward the lower band and clamps to A1..C2, so the function
    is total over all floats.

    >>> band_for_level(5.999)
    'C1'
    >>> band_for_level(6.0)
    'C2'
    """
    index = math.floor(numeric_level) - 1
    index = max(0, min(index, len(BANDS) - 1))
    return BANDS[index]


def band_index(band: str) -> int:
    """Position of a band in BANDS (A1=0)."""
    try:
        return BANDS.index(band)
    except ValueError:
        raise ValueError(f"Unknown CEFR band: {band}") from None


def adjacent_bands(band: str) -> list[str]:
    """Neighbouring bands, easier first.

    Out-of-range neighbours are skipped, so A1 and C2 have one neighbour.
    """
    index = band_index(band)
    adjacent = []
    if index > 0:
        adjacent.append(BANDS[index - 1])
    if index < len(BANDS) - 1:
        adjacent.append(BANDS[index + 1])
    return adjacent


def band_floor(band: str) -> float:
    """Lowest numeric level that maps to a band."""
    return float(band_index(band) + 1)


# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass(frozen=True)
class UserSkillLevel:
    """Current proficiency of one user for one (skill area, exercise type)."""

    user_id: str
    skill_area: str
    exercise_type: str
    numeric_level: float
    attempts_at_band: int = 0
    correct_streak: int = 0
    failure_streak: int = 0
    version: int = 0
    created_at: str = ""
    updated_at: str = ""

    @property
    def band_level(self) -> str:
        """CEFR band, derived on every access."""
        return band_for_level(self.numeric_level)

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary for JSON serialization."""
        return {
            "user_id": self.user_id,
            "skill_area": self.skill_area,
            "exercise_type": self.exercise_type,
            "numeric_level": self.numeric_level,
            "band_level": self.band_level,
            "attempts_at_band": self.attempts_at_band,
            "correct_streak": self.correct_streak,
            "failure_streak": self.failure_streak,
            "updated_at": self.updated_at,
        }


@dataclass(frozen=True)
class LevelAdjustment:
    """Level before and after a score report."""

    previous: UserSkillLevel
    current: UserSkillLevel

    @property
    def delta(self) -> float:
        """Change in numeric level."""
        return round(self.current.numeric_level - self.previous.numeric_level, 2)

    @property
    def band_changed(self) -> bool:
        """Whether the report moved the learner to another band."""
        return self.current.band_level != self.previous.band_level


# =============================================================================
# LEVELING RULE
# =============================================================================


def default_level(
    user_id: str,
    skill_area: str,
    exercise_type: str,
    policy: LevelingPolicy | None = None,
) -> UserSkillLevel:
    """Starting level for a learner with no history."""
    policy = policy or LevelingPolicy()
    now = datetime.now(timezone.utc).isoformat()
    return UserSkillLevel(
        user_id=user_id,
        skill_area=skill_area,
        exercise_type=exercise_type,
        numeric_level=policy.default_level,
        created_at=now,
        updated_at=now,
    )


def validate_score(score: float) -> float:
    """Check that a score is a number within 0..100.

    The value is returned unrounded: thresholds compare the raw score.

    Raises:
        InvalidScoreError: If the score is outside 0..100 or not a number.
    """
    if isinstance(score, bool) or not isinstance(score, (int, float)) or math.isnan(score):
        raise InvalidScoreError(f"Score must be a number, got {score!r}")
    if score < 0 or score > 100:
        raise InvalidScoreError(f"Score must be within 0..100, got {score}")
    return float(score)


def classify_score(score: float, policy: LevelingPolicy | None = None) -> Outcome:
    """Classify an attempt as success, failure or neutral."""
    policy = policy or LevelingPolicy()
    if score >= policy.success_threshold:
        return "success"
    if score < policy.failure_threshold:
        return "failure"
    return "neutral"


def apply_score(
    level: UserSkillLevel,
    score: float,
    policy: LevelingPolicy | None = None,
) -> UserSkillLevel:
    """Compute the level that results from one scored attempt.

    Pure function: the caller persists the result. The returned level keeps
    the input's version; the store bumps it on write.

    Args:
        level: Current level
        score: Attempt score, 0..100
        policy: Thresholds and step size (defaults when omitted)

    Returns:
        The updated level.

    Raises:
        InvalidScoreError: If score is out of range.
    """
    policy = policy or LevelingPolicy()
    outcome = classify_score(validate_score(score), policy)

    numeric = level.numeric_level
    attempts = level.attempts_at_band
    correct_streak = level.correct_streak
    failure_streak = level.failure_streak

    if outcome == "success":
        correct_streak += 1
        failure_streak = 0
        if (
            correct_streak >= policy.promote_streak
            and attempts >= policy.promote_min_attempts
        ):
            numeric = min(policy.max_level, numeric + policy.step)
            correct_streak = 0
            attempts = 0
        else:
            attempts += 1

    elif outcome == "failure":
        correct_streak = 0
        failure_streak += 1
        if failure_streak >= policy.demote_failures:
            numeric = max(policy.min_level, numeric - policy.step)
            failure_streak = 0
            attempts = 0
        else:
            attempts += 1

    else:
        attempts += 1

    return replace(
        level,
        numeric_level=round(numeric, 2),
        attempts_at_band=attempts,
        correct_streak=correct_streak,
        failure_streak=failure_streak,
        updated_at=datetime.now(timezone.utc).isoformat(),
    )


def overall_level(levels: list[UserSkillLevel]) -> tuple[str, float]:
    """Aggregate level across the exercise types of a skill area.

    Returns:
        (band, numeric level) where numeric is the mean rounded to 2 decimals.
        A learner with no levels yet gets the default A2 / 2.0.
    """
    if not levels:
        default = LevelingPolicy().default_level
        return band_for_level(default), default

    mean = sum(lvl.numeric_level for lvl in levels) / len(levels)
    numeric = round(mean, 2)
    return band_for_level(numeric), numeric
