"""Adaptive puzzle engine: profile -> target difficulty -> candidates -> pick.

Selection never surfaces an error to the player. If anything in the pipeline
fails, a puzzle at a safe difficulty is served instead; only when even the
simplest puzzle type cannot be produced is ``PuzzleExhaustedError`` raised.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from puzzlecoach.config.settings import Settings
from puzzlecoach.engine.detector import detect
from puzzlecoach.engine.difficulty import calculate_difficulty
from puzzlecoach.engine.dna import PuzzleDNAAnalyzer
from puzzlecoach.engine.selector import CandidateGenerator, PuzzleRecommendation, select_best
from puzzlecoach.engine.sources import PuzzleSource
from puzzlecoach.state.profile import UserProfileStore

logger = logging.getLogger(__name__)

FALLBACK_REASON = "Fallback generation (adaptive selection failed)"
FINAL_FALLBACK_REASON = "Fallback puzzle"


class PuzzleExhaustedError(RuntimeError):
    """The content generator could not produce any puzzle at all."""


@dataclass
class SessionContext:
    session_id: str
    puzzles_solved: int = 0
    current_accuracy: float = 0.0
    engagement_level: float = 0.7

    def record(self, success: bool, engagement_score: float) -> None:
        self.puzzles_solved += 1
        n = self.puzzles_solved
        self.current_accuracy = (self.current_accuracy * (n - 1) + (1.0 if success else 0.0)) / n
        self.engagement_level = self.engagement_level * 0.8 + engagement_score * 0.2


class AdaptivePuzzleEngine:
    """Drives puzzle selection and closes the loop on recorded outcomes."""

    def __init__(
        self,
        store: UserProfileStore,
        source: PuzzleSource,
        analyzer: Optional[PuzzleDNAAnalyzer] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or store.settings
        self.store = store
        self.source = source
        self.analyzer = analyzer or PuzzleDNAAnalyzer()
        self.catalog = self.settings.catalog()
        self.generator = CandidateGenerator(source, self.analyzer, self.settings)
        self._session: Optional[SessionContext] = None

    @property
    def current_session(self) -> Optional[SessionContext]:
        return self._session

    async def start_session(self) -> str:
        session_id = await self.store.start_session()
        self._session = SessionContext(session_id=session_id)
        logger.info("Started %s", session_id)
        return session_id

    async def get_next_puzzle(self, force_type: Optional[str] = None) -> PuzzleRecommendation:
        try:
            profile = await self.store.get_profile()
            characteristics = detect(profile, self.catalog, self.settings.detector)
            target = calculate_difficulty(profile, characteristics, self.settings)

            candidates = self.generator.generate(target, profile, characteristics, force_type)
            if candidates:
                selected = select_best(candidates, profile, self.settings.selection)
                if self.settings.log_selection:
                    logger.info(
                        "Selected %s (difficulty %.2f, target %.2f, stage %s, style %s): %s",
                        selected.dna.puzzle_type, selected.dna.difficulty, target,
                        characteristics.development_stage.value, characteristics.learning_style.value,
                        selected.selection_reason,
                    )
                return selected
            logger.warning("No candidates generated for difficulty %.2f, using fallback", target)
        except Exception as e:
            logger.warning("Error in adaptive selection, falling back: %s", e)

        # outside the try: fallback failures propagate as-is
        return self._fallback(force_type)

    async def record_completion(
        self,
        puzzle_id: str,
        success: bool,
        solve_time_ms: float,
        engagement_score: float = 0.7,
    ) -> None:
        try:
            await self.store.record_completion(puzzle_id, success, solve_time_ms, engagement_score)
            if self._session is not None:
                self._session.record(success, engagement_score)
            self.analyzer.update(puzzle_id, success=success, engagement=engagement_score)
        except Exception as e:
            logger.warning("Error recording completion for %s: %s", puzzle_id, e)

    async def update_type_preference(self, puzzle_type: str, liked: bool) -> list[str]:
        return await self.store.update_type_preference(puzzle_type, liked)

    async def system_metrics(self) -> dict:
        try:
            profile = await self.store.get_profile()
            storage = await self.store.storage_metrics()
            return {
                "user": {
                    "total_sessions": profile.total_sessions,
                    "total_puzzles_solved": profile.total_puzzles_solved,
                    "overall_accuracy": profile.overall_accuracy,
                    "current_skill_level": profile.current_skill_level,
                },
                "system": {
                    "storage_size": storage["total_size"],
                    "indexed_puzzles": len(self.analyzer),
                },
            }
        except Exception as e:
            logger.error("Failed to collect system metrics: %s", e)
            return {
                "user": {
                    "total_sessions": 0,
                    "total_puzzles_solved": 0,
                    "overall_accuracy": 0.0,
                    "current_skill_level": 0.5,
                },
                "system": {"storage_size": 0, "indexed_puzzles": 0},
            }

    def reset(self) -> None:
        """Forget the current session; the stored profile is untouched."""
        self._session = None

    async def clear_all(self) -> None:
        await self.store.clear_all()
        self.analyzer.clear()
        self.reset()

    async def aclose(self) -> None:
        await self.store.aclose()

    # --- Fallback ---

    def _fallback(self, force_type: Optional[str] = None) -> PuzzleRecommendation:
        tuning = self.settings.selection
        try:
            if force_type:
                puzzle = self.source.generate_specific_type(force_type)
            else:
                puzzle = self.source.generate(None, tuning.fallback_difficulty, [])
        except Exception as e:
            logger.warning("Fallback generation failed: %s", e)
            puzzle = None

        reason = FALLBACK_REASON
        if puzzle is None:
            reason = FINAL_FALLBACK_REASON
            try:
                puzzle = self.source.generate_specific_type(tuning.simplest_type)
            except Exception as e:
                raise PuzzleExhaustedError(f"Failed to generate any puzzle: {e}") from e
            if puzzle is None:
                raise PuzzleExhaustedError("Failed to generate any puzzle")

        return PuzzleRecommendation(
            puzzle=puzzle,
            dna=self.analyzer.analyze(puzzle),
            selection_reason=reason,
            confidence_score=tuning.fallback_confidence,
        )
