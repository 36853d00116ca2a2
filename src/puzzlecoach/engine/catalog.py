"""Puzzle type catalog: categories and enabled status for every known type."""

from __future__ import annotations

from enum import Enum
from typing import Iterable, Optional

from pydantic import BaseModel


class PuzzleCategory(str, Enum):
    VISUAL = "visual"
    LOGICAL = "logical"
    MATHEMATICAL = "mathematical"
    SPATIAL = "spatial"
    MEMORY = "memory"


class PuzzleTypeConfig(BaseModel):
    category: PuzzleCategory
    enabled: bool = True
    name: str = ""
    description: str = ""
    weight: float = 1.0


def default_puzzle_types() -> dict[str, PuzzleTypeConfig]:
    """Return the stock catalog. Disabled types are known but never requested."""
    return {
        "pattern": PuzzleTypeConfig(
            category=PuzzleCategory.VISUAL, name="Pattern Recognition",
            description="Visual grid patterns with symbols",
        ),
        "serial-reasoning": PuzzleTypeConfig(
            category=PuzzleCategory.LOGICAL, name="Serial Reasoning",
            description="Matrix completion puzzles",
        ),
        "number-series": PuzzleTypeConfig(
            category=PuzzleCategory.MATHEMATICAL, name="Number Series",
            description="Number sequence patterns (2, 4, 8, 16...)",
        ),
        "algebraic-reasoning": PuzzleTypeConfig(
            category=PuzzleCategory.MATHEMATICAL, enabled=False, weight=0,
            name="Algebraic Reasoning", description="Equation solving (x + 5 = 12)",
        ),
        "number-grid": PuzzleTypeConfig(
            category=PuzzleCategory.MATHEMATICAL, name="Number Grid",
            description="3x3 arithmetic grid patterns",
        ),
        "number-analogy": PuzzleTypeConfig(
            category=PuzzleCategory.MATHEMATICAL, name="Number Analogy",
            description="Numerical relationships (5:8::7:?)",
        ),
        "transformation": PuzzleTypeConfig(
            category=PuzzleCategory.VISUAL, enabled=False, weight=0,
            name="Transformation", description="Shape grids with properties",
        ),
        "figure-classification": PuzzleTypeConfig(
            category=PuzzleCategory.LOGICAL, enabled=False, weight=0,
            name="Figure Classification", description="Odd-one-out figure sets",
        ),
        "paper-folding": PuzzleTypeConfig(
            category=PuzzleCategory.SPATIAL, enabled=False, weight=0,
            name="Paper Folding", description="Spatial visualization puzzles",
        ),
        "following-directions": PuzzleTypeConfig(
            category=PuzzleCategory.MEMORY, enabled=False, weight=0,
            name="Following Directions", description="Sequential instruction puzzles",
        ),
        "picture-series": PuzzleTypeConfig(
            category=PuzzleCategory.VISUAL, enabled=False, weight=0,
            name="Picture Series", description="'What comes next' figural series",
        ),
    }


class PuzzleCatalog:
    """Read-only view over the configured puzzle types."""

    def __init__(self, types: Optional[dict[str, PuzzleTypeConfig]] = None):
        self._types = dict(types) if types is not None else default_puzzle_types()

    def __contains__(self, puzzle_type: str) -> bool:
        return puzzle_type in self._types

    def get(self, puzzle_type: str) -> Optional[PuzzleTypeConfig]:
        return self._types.get(puzzle_type)

    def all_types(self) -> list[str]:
        return list(self._types)

    def enabled_types(self) -> list[str]:
        return [name for name, cfg in self._types.items() if cfg.enabled]

    def is_enabled(self, puzzle_type: str) -> bool:
        cfg = self._types.get(puzzle_type)
        return cfg is not None and cfg.enabled

    def category_of(self, puzzle_type: str) -> Optional[PuzzleCategory]:
        cfg = self._types.get(puzzle_type)
        return cfg.category if cfg else None

    def types_in(self, *categories: PuzzleCategory, enabled_only: bool = True) -> list[str]:
        """Types belonging to any of ``categories``, in catalog order."""
        wanted = set(categories)
        return [
            name for name, cfg in self._types.items()
            if cfg.category in wanted and (cfg.enabled or not enabled_only)
        ]

    def only_enabled(self, types: Iterable[str]) -> list[str]:
        return [t for t in types if self.is_enabled(t)]

    def active_categories(self) -> list[PuzzleCategory]:
        seen: list[PuzzleCategory] = []
        for cfg in self._types.values():
            if cfg.enabled and cfg.category not in seen:
                seen.append(cfg.category)
        return seen
