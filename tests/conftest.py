"""Shared fixtures for puzzlecoach tests."""

from __future__ import annotations

from typing import Optional

import pytest

from puzzlecoach.config.settings import Settings
from puzzlecoach.engine.adaptive import AdaptivePuzzleEngine
from puzzlecoach.engine.puzzles import GridPuzzle, NumberPuzzle, Puzzle
from puzzlecoach.engine.sources import SyntheticPuzzleSource
from puzzlecoach.state.profile import UserProfile, UserProfileStore
from puzzlecoach.state.storage import MemoryKeyValueStore


def make_puzzle(
    puzzle_type: str = "pattern",
    difficulty: Optional[float] = 0.3,
    semantic_id: Optional[str] = None,
) -> Puzzle:
    if puzzle_type.startswith("number"):
        return NumberPuzzle(
            puzzle_type=puzzle_type,
            question=f"{puzzle_type} question",
            options=["1", "2", "3", "4"],
            terms=[2, 4, 6, 8],
            declared_difficulty=difficulty,
            semantic_id=semantic_id,
        )
    return GridPuzzle(
        puzzle_type=puzzle_type,
        question=f"{puzzle_type} question",
        options=["a", "b", "c", "d"],
        grid=[["x", "o", "x"], ["o", "x", "o"], ["x", "o", "?"]],
        declared_difficulty=difficulty,
        semantic_id=semantic_id,
    )


def make_profile(**overrides) -> UserProfile:
    return UserProfile.default().model_copy(update=overrides)


class ScriptedSource:
    """Content generator double: replays queued results and records calls.

    Queue items are a puzzle, None, or an exception instance to raise.
    """

    def __init__(self, generate=None, specific: Optional[dict] = None):
        self._generate = list(generate or [])
        self._specific = dict(specific or {})
        self.calls: list[tuple] = []

    def generate(self, puzzle_type=None, difficulty=None, recent_types=None):
        self.calls.append(("generate", difficulty, list(recent_types or [])))
        if not self._generate:
            return None
        item = self._generate.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def generate_specific_type(self, puzzle_type):
        self.calls.append(("specific", puzzle_type))
        item = self._specific.get(puzzle_type)
        if isinstance(item, Exception):
            raise item
        return item


class FailingBackend:
    """Storage backend whose every operation fails."""

    def get(self, key):
        raise OSError("disk unavailable")

    def set(self, key, value):
        raise OSError("disk unavailable")

    def remove(self, key):
        raise OSError("disk unavailable")


@pytest.fixture
def settings(tmp_path):
    return Settings(data_dir=tmp_path / "data")


@pytest.fixture
def backend():
    return MemoryKeyValueStore()


@pytest.fixture
def store(backend, settings):
    return UserProfileStore(backend, settings)


@pytest.fixture
def engine(store, settings):
    return AdaptivePuzzleEngine(store, SyntheticPuzzleSource(settings.catalog(), seed=3))
