"""User characteristic detection: development stage and learning style.

Raw capability alone under-serves users who can solve hard puzzles but
disengage when pushed, so preference signals outrank skill. Genuine struggle
signals cap difficulty regardless of isolated successes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from puzzlecoach.config.settings import DetectorTuning
from puzzlecoach.engine.catalog import PuzzleCatalog, PuzzleCategory
from puzzlecoach.state.profile import UserProfile

logger = logging.getLogger(__name__)


class LearningStyle(str, Enum):
    VISUAL = "visual"
    LOGICAL = "logical"
    MIXED = "mixed"


class DevelopmentStage(str, Enum):
    EARLY = "early"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


@dataclass(frozen=True)
class UserCharacteristics:
    inferred_max_difficulty: float
    learning_style: LearningStyle
    development_stage: DevelopmentStage


@dataclass(frozen=True)
class CategorySignals:
    visual_success: float
    abstract_success: float
    math_success: float


def type_success_proxy(
    profile: UserProfile, catalog: PuzzleCatalog, tuning: DetectorTuning,
) -> dict[str, float]:
    """Approximate per-type success from preferences and overall accuracy.

    Only enabled types in the visual, logical, mathematical and spatial
    categories are scored.
    """
    scored = catalog.types_in(
        PuzzleCategory.VISUAL, PuzzleCategory.LOGICAL,
        PuzzleCategory.MATHEMATICAL, PuzzleCategory.SPATIAL,
    )
    preferred = set(profile.preferred_puzzle_types)
    return {
        t: tuning.preferred_type_success if t in preferred
        else profile.overall_accuracy * tuning.non_preferred_factor
        for t in scored
    }


def category_signals(
    profile: UserProfile, catalog: PuzzleCatalog, tuning: DetectorTuning,
) -> CategorySignals:
    success = type_success_proxy(profile, catalog, tuning)

    def _mean(category: PuzzleCategory, missing: float) -> float:
        types = catalog.types_in(category)
        if not types:
            return missing
        return sum(success.get(t, missing) for t in types) / len(types)

    return CategorySignals(
        visual_success=_mean(PuzzleCategory.VISUAL, 0.5),
        abstract_success=_mean(PuzzleCategory.LOGICAL, 0.0),
        math_success=_mean(PuzzleCategory.MATHEMATICAL, 0.0),
    )


def bootstrap(profile: UserProfile, tuning: DetectorTuning) -> UserCharacteristics:
    """Smooth cap progression over the first puzzles, before signals are reliable."""
    progress = profile.total_puzzles_solved / tuning.bootstrap_puzzles
    span = tuning.bootstrap_max_cap - tuning.bootstrap_min_cap
    base = tuning.bootstrap_min_cap + progress * span

    recent = profile.recent_success_rate
    if recent is None:
        recent = tuning.bootstrap_default_rate
    adjustment = (recent - tuning.bootstrap_target_rate) * tuning.bootstrap_rate_scale
    cap = max(tuning.bootstrap_min_cap, min(tuning.bootstrap_max_cap, base + adjustment))

    if progress < tuning.bootstrap_early_ratio:
        stage = DevelopmentStage.EARLY
    elif progress < tuning.bootstrap_intermediate_ratio:
        stage = DevelopmentStage.INTERMEDIATE
    else:
        stage = DevelopmentStage.ADVANCED

    logger.debug(
        "Bootstrap progression %d/%d: cap=%.2f stage=%s",
        profile.total_puzzles_solved, tuning.bootstrap_puzzles, cap, stage.value,
    )
    return UserCharacteristics(cap, LearningStyle.MIXED, stage)


def classify(
    signals: CategorySignals, profile: UserProfile, tuning: Optional[DetectorTuning] = None,
) -> UserCharacteristics:
    """Pick stage, style and cap from category signals, in priority order."""
    tuning = tuning or DetectorTuning()
    ceiling = profile.current_max_difficulty
    accuracy = profile.overall_accuracy
    engagement = profile.avg_engagement_score

    low_skill_ceiling = ceiling < tuning.low_ceiling
    quick_give_ups = profile.recent_performance[-10:].count(False) > tuning.give_up_failures
    low_overall_accuracy = accuracy < tuning.low_accuracy
    consistent_high = accuracy > tuning.consistent_accuracy
    prefers_consistent_success = consistent_high and engagement > tuning.consistent_engagement
    challenge_seeker = accuracy < tuning.challenge_accuracy and engagement > tuning.challenge_engagement
    frustrated = ceiling > tuning.frustrated_ceiling and engagement < tuning.frustrated_engagement

    visual, abstract, math = signals.visual_success, signals.abstract_success, signals.math_success

    struggling = (
        (visual > 0.6 and abstract < 0.25 and math < 0.35)
        or (low_skill_ceiling and (quick_give_ups or low_overall_accuracy))
        or (math < 0.3 and abstract < 0.2)
        or (accuracy < 0.4 and ceiling < 0.45)
    )
    if struggling:
        return UserCharacteristics(
            min(tuning.early_cap, ceiling + tuning.early_headroom),
            LearningStyle.VISUAL,
            DevelopmentStage.EARLY,
        )

    if prefers_consistent_success and not challenge_seeker:
        # engagement outweighs capability for users who like to succeed
        weight = (
            tuning.strong_engagement_weight if engagement > tuning.strong_engagement
            else tuning.weak_engagement_weight
        )
        return UserCharacteristics(
            min(tuning.preference_cap, ceiling * (1 - weight) + tuning.preference_floor),
            LearningStyle.MIXED,
            DevelopmentStage.INTERMEDIATE,
        )

    if challenge_seeker or (math > 0.65 and consistent_high and ceiling > 0.6 and not frustrated):
        return UserCharacteristics(
            min(tuning.advanced_cap, ceiling + tuning.advanced_headroom),
            LearningStyle.LOGICAL,
            DevelopmentStage.ADVANCED,
        )

    return UserCharacteristics(
        min(tuning.balanced_cap, ceiling + tuning.balanced_headroom),
        LearningStyle.MIXED,
        DevelopmentStage.INTERMEDIATE,
    )


def detect(
    profile: UserProfile,
    catalog: Optional[PuzzleCatalog] = None,
    tuning: Optional[DetectorTuning] = None,
) -> UserCharacteristics:
    """Infer development stage, learning style and a difficulty cap."""
    tuning = tuning or DetectorTuning()
    if profile.total_puzzles_solved < tuning.bootstrap_puzzles:
        return bootstrap(profile, tuning)

    catalog = catalog or PuzzleCatalog()
    return classify(category_signals(profile, catalog, tuning), profile, tuning)
