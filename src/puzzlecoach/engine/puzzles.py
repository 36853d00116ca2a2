"""Puzzle instances handed to the engine by a content generator.

Each variant carries the structure its difficulty heuristics need; the
concrete content (symbols, numbers, wording) is opaque to the engine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Union


@dataclass
class Puzzle:
    puzzle_type: str
    question: str = ""
    options: list[str] = field(default_factory=list)
    correct_answer_index: int = 0
    explanation: str = ""
    subtype: Optional[str] = None
    difficulty_level: Optional[str] = None  # "easy", "medium", "hard"
    declared_difficulty: Optional[float] = None  # set by generators that know it
    semantic_id: Optional[str] = None


@dataclass
class GridPuzzle(Puzzle):
    """Pattern, matrix-completion and transformation grids."""
    grid: list[list[str]] = field(default_factory=list)

    @property
    def cell_count(self) -> int:
        return sum(len(row) for row in self.grid)


@dataclass
class NumberPuzzle(Puzzle):
    """Number series, number grids, numeric analogies and equations."""
    terms: list[float] = field(default_factory=list)
    rule_steps: int = 1


@dataclass
class FigurePuzzle(Puzzle):
    """Figure sequences, classification sets and paper folding."""
    figures: list[str] = field(default_factory=list)
    transform_steps: int = 1


@dataclass
class DirectionsPuzzle(Puzzle):
    """Sequential instructions to hold in working memory."""
    instructions: list[str] = field(default_factory=list)


AnyPuzzle = Union[GridPuzzle, NumberPuzzle, FigurePuzzle, DirectionsPuzzle, Puzzle]
