"""Puzzle DNA: a normalized characterization of one generated puzzle.

The analyzer keeps an in-memory index keyed by puzzle id. Records are
created on first analysis, refined as outcomes are recorded, and are not
expected to survive a restart.
"""

from __future__ import annotations

import hashlib
import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from puzzlecoach.engine.puzzles import (
    DirectionsPuzzle,
    FigurePuzzle,
    GridPuzzle,
    NumberPuzzle,
    Puzzle,
)

logger = logging.getLogger(__name__)

NEUTRAL_DIFFICULTY = 0.5
NEUTRAL_COMPLEXITY = 0.5
DEFAULT_SUCCESS_RATE = 0.6
DEFAULT_ENGAGEMENT = 0.7

LEVEL_DIFFICULTY = {"easy": 0.3, "medium": 0.6, "hard": 0.9}

TYPE_BASELINE = {
    "pattern": 0.3,
    "number-series": 0.4,
    "analogy": 0.5,
    "number-analogy": 0.5,
    "number-grid": 0.6,
    "serial-reasoning": 0.7,
    "algebraic-reasoning": 0.8,
    "transformation": 0.9,
}


def _now_ms() -> int:
    return int(time.time() * 1000)


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


@dataclass
class PuzzleDNA:
    puzzle_id: str
    puzzle_type: str
    difficulty: float
    complexity: float = NEUTRAL_COMPLEXITY
    subtype: Optional[str] = None
    success_rate: float = DEFAULT_SUCCESS_RATE
    user_engagement: float = DEFAULT_ENGAGEMENT
    generated_at: int = field(default_factory=_now_ms)
    observations: int = 0


# --- Difficulty estimation (one estimator per puzzle variant) ---


def _option_pressure(puzzle: Puzzle) -> float:
    """Up to +0.1 for answer sets larger than four options."""
    return min(0.1, max(0, len(puzzle.options) - 4) * 0.02)


def _baseline(puzzle: Puzzle) -> float:
    return TYPE_BASELINE.get(str(puzzle.puzzle_type or "").lower(), NEUTRAL_DIFFICULTY)


def _estimate_generic(puzzle: Puzzle) -> float:
    return _clamp(_baseline(puzzle) + _option_pressure(puzzle))


def _estimate_grid(puzzle: GridPuzzle) -> float:
    # 3x3 is the reference size; each extra cell adds a little load
    extra_cells = max(0, puzzle.cell_count - 9)
    return _clamp(_baseline(puzzle) + min(0.15, extra_cells * 0.01) + _option_pressure(puzzle))


def _estimate_number(puzzle: NumberPuzzle) -> float:
    step_load = min(0.2, max(0, puzzle.rule_steps - 1) * 0.08)
    magnitude = max((abs(t) for t in puzzle.terms), default=0)
    magnitude_load = 0.05 if magnitude >= 100 else 0.0
    return _clamp(_baseline(puzzle) + step_load + magnitude_load + _option_pressure(puzzle))


def _estimate_figure(puzzle: FigurePuzzle) -> float:
    step_load = min(0.2, max(0, puzzle.transform_steps - 1) * 0.07)
    figure_load = min(0.1, max(0, len(puzzle.figures) - 4) * 0.02)
    return _clamp(_baseline(puzzle) + step_load + figure_load + _option_pressure(puzzle))


def _estimate_directions(puzzle: DirectionsPuzzle) -> float:
    memory_load = min(0.3, max(0, len(puzzle.instructions) - 2) * 0.06)
    return _clamp(_baseline(puzzle) + memory_load + _option_pressure(puzzle))


DIFFICULTY_ESTIMATORS: dict[type, Callable[[Any], float]] = {
    GridPuzzle: _estimate_grid,
    NumberPuzzle: _estimate_number,
    FigurePuzzle: _estimate_figure,
    DirectionsPuzzle: _estimate_directions,
    Puzzle: _estimate_generic,
}


def estimate_difficulty(puzzle: Puzzle) -> float:
    """Estimate difficulty in [0, 1] for any puzzle variant.

    A generator-declared value wins, then the coarse difficulty level, then
    the structural estimator registered for the puzzle's variant.
    """
    if puzzle.declared_difficulty is not None:
        return _clamp(float(puzzle.declared_difficulty))
    if puzzle.difficulty_level in LEVEL_DIFFICULTY:
        return LEVEL_DIFFICULTY[puzzle.difficulty_level]
    for cls in type(puzzle).__mro__:
        estimator = DIFFICULTY_ESTIMATORS.get(cls)
        if estimator is not None:
            return estimator(puzzle)
    return NEUTRAL_DIFFICULTY


def estimate_complexity(puzzle: Puzzle) -> float:
    """Structural size of the puzzle in [0, 1], independent of its type."""
    parts = [min(1.0, len(puzzle.options) / 8)]
    if isinstance(puzzle, GridPuzzle):
        parts.append(min(1.0, puzzle.cell_count / 25))
    elif isinstance(puzzle, NumberPuzzle):
        parts.append(min(1.0, len(puzzle.terms) / 10))
        parts.append(min(1.0, puzzle.rule_steps / 4))
    elif isinstance(puzzle, FigurePuzzle):
        parts.append(min(1.0, len(puzzle.figures) / 8))
        parts.append(min(1.0, puzzle.transform_steps / 4))
    elif isinstance(puzzle, DirectionsPuzzle):
        parts.append(min(1.0, len(puzzle.instructions) / 8))
    return round(sum(parts) / len(parts), 4)


class PuzzleDNAAnalyzer:
    """Builds and maintains DNA records for generated puzzles."""

    def __init__(self) -> None:
        self._index: dict[str, PuzzleDNA] = {}

    def __len__(self) -> int:
        return len(self._index)

    def get(self, puzzle_id: str) -> Optional[PuzzleDNA]:
        return self._index.get(puzzle_id)

    def clear(self) -> None:
        self._index.clear()

    def analyze(self, puzzle: Any) -> PuzzleDNA:
        """Return the DNA for ``puzzle``, creating and indexing it if new."""
        puzzle_id = self.puzzle_id(puzzle)
        existing = self._index.get(puzzle_id)
        if existing is not None:
            return existing

        if isinstance(puzzle, Puzzle):
            try:
                difficulty = estimate_difficulty(puzzle)
                complexity = estimate_complexity(puzzle)
            except (AttributeError, TypeError, ValueError) as e:
                logger.debug("Malformed puzzle %s, using neutral DNA: %s", puzzle_id, e)
                difficulty, complexity = NEUTRAL_DIFFICULTY, NEUTRAL_COMPLEXITY
            dna = PuzzleDNA(
                puzzle_id=puzzle_id,
                puzzle_type=str(puzzle.puzzle_type or "unknown"),
                subtype=puzzle.subtype,
                difficulty=difficulty,
                complexity=complexity,
            )
        else:
            dna = PuzzleDNA(
                puzzle_id=puzzle_id,
                puzzle_type=str(getattr(puzzle, "puzzle_type", None) or "unknown"),
                difficulty=NEUTRAL_DIFFICULTY,
            )

        self._index[puzzle_id] = dna
        return dna

    def update(
        self,
        puzzle_id: str,
        success: Optional[bool] = None,
        engagement: Optional[float] = None,
    ) -> PuzzleDNA:
        """Merge an observed outcome into the record, creating it if absent.

        The neutral starting estimate counts as one prior observation.
        """
        dna = self._index.get(puzzle_id)
        if dna is None:
            dna = PuzzleDNA(puzzle_id=puzzle_id, puzzle_type="unknown", difficulty=NEUTRAL_DIFFICULTY)
            self._index[puzzle_id] = dna

        weight = dna.observations + 1
        if success is not None:
            dna.success_rate = (dna.success_rate * weight + (1.0 if success else 0.0)) / (weight + 1)
        if engagement is not None:
            dna.user_engagement = (dna.user_engagement * weight + _clamp(engagement)) / (weight + 1)
        if success is not None or engagement is not None:
            dna.observations += 1
        return dna

    @staticmethod
    def puzzle_id(puzzle: Any) -> str:
        semantic_id = getattr(puzzle, "semantic_id", None)
        if semantic_id:
            return str(semantic_id)
        content = json.dumps(
            {
                "question": getattr(puzzle, "question", None),
                "options": getattr(puzzle, "options", None),
                "type": getattr(puzzle, "puzzle_type", None),
            },
            sort_keys=True,
            default=str,
        )
        if content == json.dumps({"options": None, "question": None, "type": None}, sort_keys=True):
            content = repr(puzzle)
        return "puzzle_" + hashlib.sha1(content.encode("utf-8")).hexdigest()[:12]
