"""Puzzle content generator interface and a synthetic reference source."""

from __future__ import annotations

import random
from itertools import count
from typing import Optional, Protocol, Sequence

from puzzlecoach.engine.catalog import PuzzleCatalog, PuzzleCategory
from puzzlecoach.engine.puzzles import (
    DirectionsPuzzle,
    FigurePuzzle,
    GridPuzzle,
    NumberPuzzle,
    Puzzle,
)


class PuzzleSource(Protocol):
    def generate(
        self,
        puzzle_type: Optional[str] = None,
        difficulty: Optional[float] = None,
        recent_types: Optional[Sequence[str]] = None,
    ) -> Optional[Puzzle]: ...

    def generate_specific_type(self, puzzle_type: str) -> Optional[Puzzle]: ...


SYMBOLS = ["circle", "square", "triangle", "star", "diamond", "hexagon"]


def difficulty_level(difficulty: float) -> str:
    if difficulty < 0.45:
        return "easy"
    if difficulty < 0.75:
        return "medium"
    return "hard"


class SyntheticPuzzleSource:
    """Seeded generator producing structurally plausible puzzles.

    Good enough to drive the engine in simulations and tests; the content is
    not meant to be played. The requested difficulty is declared on the
    puzzle verbatim.
    """

    def __init__(self, catalog: Optional[PuzzleCatalog] = None, seed: Optional[int] = None):
        self.catalog = catalog or PuzzleCatalog()
        self._rng = random.Random(seed)
        self._serial = count(1)
        self._rotation = 0

    def generate(
        self,
        puzzle_type: Optional[str] = None,
        difficulty: Optional[float] = None,
        recent_types: Optional[Sequence[str]] = None,
    ) -> Optional[Puzzle]:
        if puzzle_type is None:
            puzzle_type = self._next_type(recent_types)
            if puzzle_type is None:
                return None
        elif not self.catalog.is_enabled(puzzle_type):
            return None
        if difficulty is None:
            difficulty = 0.5
        return self._build(puzzle_type, max(0.0, min(1.0, difficulty)))

    def generate_specific_type(self, puzzle_type: str) -> Optional[Puzzle]:
        if not self.catalog.is_enabled(puzzle_type):
            return None
        return self._build(puzzle_type, self._rng.uniform(0.2, 0.6))

    def _next_type(self, recent_types: Optional[Sequence[str]]) -> Optional[str]:
        pool = self.catalog.only_enabled(recent_types or []) or self.catalog.enabled_types()
        if not pool:
            return None
        choice = pool[self._rotation % len(pool)]
        self._rotation += 1
        return choice

    def _build(self, puzzle_type: str, difficulty: float) -> Puzzle:
        level = difficulty_level(difficulty)
        serial = next(self._serial)
        common = dict(
            puzzle_type=puzzle_type,
            question=f"{puzzle_type} #{serial}: what comes next?",
            options=[f"option {i}" for i in range(4 if level == "easy" else 5)],
            correct_answer_index=self._rng.randrange(4),
            difficulty_level=level,
            declared_difficulty=round(difficulty, 3),
            semantic_id=f"{puzzle_type}-{level}-{serial}",
        )
        size = {"easy": 3, "medium": 3, "hard": 4}[level]
        steps = {"easy": 1, "medium": 2, "hard": 3}[level]
        category = self.catalog.category_of(puzzle_type)

        if category in (PuzzleCategory.VISUAL, PuzzleCategory.LOGICAL) and puzzle_type != "figure-classification":
            grid = [[self._rng.choice(SYMBOLS) for _ in range(size)] for _ in range(size)]
            return GridPuzzle(grid=grid, subtype="matrix" if category is PuzzleCategory.LOGICAL else "mirror", **common)
        if category is PuzzleCategory.MATHEMATICAL:
            start = self._rng.randint(1, 9)
            step = self._rng.randint(2, 3 + steps)
            terms = [float(start + step * i) for i in range(4 + steps)]
            return NumberPuzzle(terms=terms, rule_steps=steps, subtype="arithmetic", **common)
        if category is PuzzleCategory.MEMORY:
            instructions = [f"move {self._rng.choice(SYMBOLS)}" for _ in range(2 + steps)]
            return DirectionsPuzzle(instructions=instructions, **common)
        figures = [self._rng.choice(SYMBOLS) for _ in range(3 + steps)]
        return FigurePuzzle(figures=figures, transform_steps=steps, **common)
