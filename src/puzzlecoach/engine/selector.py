"""Candidate generation and selection."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Optional, Sequence

from puzzlecoach.config.settings import SelectionTuning, Settings
from puzzlecoach.engine.catalog import PuzzleCatalog, PuzzleCategory
from puzzlecoach.engine.detector import DevelopmentStage, LearningStyle, UserCharacteristics
from puzzlecoach.engine.dna import PuzzleDNA, PuzzleDNAAnalyzer
from puzzlecoach.engine.puzzles import Puzzle
from puzzlecoach.engine.sources import PuzzleSource
from puzzlecoach.state.profile import UserProfile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PuzzleRecommendation:
    puzzle: Puzzle
    dna: PuzzleDNA
    selection_reason: str
    confidence_score: float


def pattern_preference(
    recent_types: Sequence[str],
    characteristics: UserCharacteristics,
    catalog: PuzzleCatalog,
) -> list[str]:
    """Reorder the type history so the generator leans toward the user's style."""
    patterns = list(recent_types)

    if characteristics.development_stage is DevelopmentStage.EARLY:
        visual = catalog.types_in(PuzzleCategory.VISUAL)
        allowed = set(catalog.types_in(PuzzleCategory.VISUAL, PuzzleCategory.MATHEMATICAL))
        # visual types count double for early learners
        return [t for t in visual + visual + patterns if t in allowed]

    if characteristics.learning_style is LearningStyle.VISUAL:
        patterns = catalog.types_in(PuzzleCategory.VISUAL) + catalog.types_in(PuzzleCategory.SPATIAL) + patterns
    elif characteristics.learning_style is LearningStyle.LOGICAL:
        patterns = catalog.types_in(PuzzleCategory.LOGICAL) + catalog.types_in(PuzzleCategory.MATHEMATICAL) + patterns

    return catalog.only_enabled(patterns)


def provisional_score(dna: PuzzleDNA, target: float, tuning: Optional[SelectionTuning] = None) -> float:
    tuning = tuning or SelectionTuning()
    match = 1 - abs(dna.difficulty - target)
    return (
        match * tuning.match_weight
        + dna.user_engagement * tuning.engagement_weight
        + dna.success_rate * tuning.provisional_success_weight
    )


def score_candidate(
    candidate: PuzzleRecommendation, profile: UserProfile, tuning: Optional[SelectionTuning] = None,
) -> float:
    """How well a candidate fits the live profile, in [0, 1]."""
    tuning = tuning or SelectionTuning()
    fit = max(0.0, 1 - abs(candidate.dna.difficulty - profile.current_skill_level))
    preferred = 1.0 if candidate.dna.puzzle_type in profile.preferred_puzzle_types else 0.0
    return (
        tuning.difficulty_weight * fit
        + tuning.preference_weight * preferred
        + tuning.success_weight * candidate.dna.success_rate
    )


def select_best(
    candidates: Sequence[PuzzleRecommendation],
    profile: UserProfile,
    tuning: Optional[SelectionTuning] = None,
) -> PuzzleRecommendation:
    """Highest-scoring candidate; ties go to the earliest one."""
    if not candidates:
        raise ValueError("No candidates available for selection")

    best = candidates[0]
    best_score = score_candidate(best, profile, tuning)
    for candidate in candidates[1:]:
        score = score_candidate(candidate, profile, tuning)
        if score > best_score:
            best, best_score = candidate, score

    return replace(best, selection_reason=f"Best match (score: {best_score:.2f})", confidence_score=best_score)


class CandidateGenerator:
    def __init__(
        self,
        source: PuzzleSource,
        analyzer: PuzzleDNAAnalyzer,
        settings: Optional[Settings] = None,
    ):
        self.source = source
        self.analyzer = analyzer
        self.settings = settings or Settings()
        self.catalog = self.settings.catalog()

    def generate(
        self,
        target: float,
        profile: UserProfile,
        characteristics: UserCharacteristics,
        force_type: Optional[str] = None,
    ) -> list[PuzzleRecommendation]:
        """Request a handful of puzzles near ``target``; failures are skipped."""
        tuning = self.settings.selection
        recent = profile.preferred_puzzle_types[-tuning.recent_preference_count:]
        preferences = pattern_preference(recent, characteristics, self.catalog)
        candidates: list[PuzzleRecommendation] = []

        for i in range(tuning.candidate_count):
            try:
                if force_type:
                    puzzle = self.source.generate_specific_type(force_type)
                else:
                    puzzle = self.source.generate(None, target, preferences)
                if puzzle is None:
                    continue
                dna = self.analyzer.analyze(puzzle)
                candidates.append(PuzzleRecommendation(
                    puzzle=puzzle,
                    dna=dna,
                    selection_reason=f"Generated for difficulty {target:.2f}",
                    confidence_score=provisional_score(dna, target, tuning),
                ))
            except Exception as e:
                logger.warning("Failed to generate candidate %d: %s", i, e)

        return candidates
