"""Multi-objective target difficulty.

Combines the profile's skill level with engagement and recent performance,
then applies the cap chain: inferred cap, global cap, early-stage caps.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from puzzlecoach.config.settings import Settings
from puzzlecoach.engine.detector import DevelopmentStage, UserCharacteristics, detect
from puzzlecoach.state.profile import UserProfile

logger = logging.getLogger(__name__)


@dataclass
class DifficultyBreakdown:
    rule: str  # "new_user", "struggling", "weighted"
    base: float
    engagement_adjustment: float = 0.0
    performance_adjustment: float = 0.0
    capability_weight: float = 0.0
    engagement_weight: float = 0.0
    performance_weight: float = 0.0
    inferred_cap: float = 1.0
    final: float = 0.0


def _weighted_base(profile: UserProfile, stage: DevelopmentStage, settings: Settings) -> DifficultyBreakdown:
    tuning = settings.difficulty
    recent = profile.recent_success_rate
    if recent is None:
        recent = tuning.default_recent_rate
    engagement = profile.avg_engagement_score

    engagement_adjustment = 0.0
    if engagement < tuning.low_engagement:
        engagement_adjustment = -tuning.engagement_penalty
    elif engagement > tuning.high_engagement and recent > tuning.bonus_recent_rate:
        engagement_adjustment = tuning.engagement_bonus

    performance_adjustment = 0.0
    if recent > tuning.high_recent_rate:
        performance_adjustment = tuning.performance_step
    elif recent < tuning.low_recent_rate:
        performance_adjustment = -tuning.performance_step

    if stage is DevelopmentStage.EARLY:
        capability_weight = tuning.early_capability_weight
        engagement_weight = tuning.early_engagement_weight
    else:
        capability_weight = tuning.capability_weight
        engagement_weight = tuning.engagement_weight
    performance_weight = 1 - capability_weight - engagement_weight

    weighted = engagement_adjustment * engagement_weight + performance_adjustment * performance_weight
    return DifficultyBreakdown(
        rule="weighted",
        base=profile.current_skill_level + weighted,
        engagement_adjustment=engagement_adjustment,
        performance_adjustment=performance_adjustment,
        capability_weight=capability_weight,
        engagement_weight=engagement_weight,
        performance_weight=performance_weight,
    )


def explain_difficulty(
    profile: UserProfile,
    characteristics: Optional[UserCharacteristics] = None,
    settings: Optional[Settings] = None,
) -> DifficultyBreakdown:
    settings = settings or Settings()
    tuning = settings.difficulty
    if characteristics is None:
        characteristics = detect(profile, settings.catalog(), settings.detector)

    skill = profile.current_skill_level
    if settings.new_user.enabled and profile.total_puzzles_solved <= settings.new_user.puzzle_count_threshold:
        breakdown = DifficultyBreakdown(rule="new_user", base=min(settings.new_user.max_difficulty, skill))
    elif settings.struggling.enabled and profile.overall_accuracy < settings.struggling.accuracy_threshold:
        breakdown = DifficultyBreakdown(rule="struggling", base=min(settings.struggling.max_difficulty, skill))
    else:
        breakdown = _weighted_base(profile, characteristics.development_stage, settings)

    value = max(tuning.min_difficulty, min(tuning.max_difficulty, breakdown.base))
    value = min(value, characteristics.inferred_max_difficulty)

    global_cap = settings.global_caps.get_max_difficulty()
    if global_cap is not None:
        value = min(value, global_cap)

    if characteristics.development_stage is DevelopmentStage.EARLY:
        value = min(value, tuning.early_stage_cap)
        if profile.total_puzzles_solved < tuning.very_new_puzzles:
            value = min(value, tuning.very_new_cap)

    breakdown.inferred_cap = characteristics.inferred_max_difficulty
    breakdown.final = max(tuning.min_difficulty, min(tuning.max_difficulty, value))
    return breakdown


def calculate_difficulty(
    profile: UserProfile,
    characteristics: Optional[UserCharacteristics] = None,
    settings: Optional[Settings] = None,
) -> float:
    """Target difficulty in [0.1, 0.9] for the next puzzle."""
    breakdown = explain_difficulty(profile, characteristics, settings)
    logger.debug(
        "Difficulty %s: base=%.2f adj(engagement=%.2f, performance=%.2f) "
        "weights(capability=%.0f%%, engagement=%.0f%%, performance=%.0f%%) cap=%.2f final=%.2f",
        breakdown.rule, breakdown.base, breakdown.engagement_adjustment, breakdown.performance_adjustment,
        breakdown.capability_weight * 100, breakdown.engagement_weight * 100,
        breakdown.performance_weight * 100, breakdown.inferred_cap, breakdown.final,
    )
    return breakdown.final
