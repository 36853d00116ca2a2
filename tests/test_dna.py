"""Tests for puzzle DNA analysis."""

import pytest

from puzzlecoach.engine.dna import PuzzleDNAAnalyzer, estimate_difficulty
from puzzlecoach.engine.puzzles import DirectionsPuzzle, FigurePuzzle, GridPuzzle, NumberPuzzle, Puzzle

from conftest import make_puzzle


@pytest.fixture
def analyzer():
    return PuzzleDNAAnalyzer()


def _grid(size: int, **kwargs) -> GridPuzzle:
    return GridPuzzle(
        puzzle_type="pattern",
        question="Which tile completes the grid?",
        options=["a", "b", "c", "d"],
        grid=[["x"] * size for _ in range(size)],
        **kwargs,
    )


class TestEstimateDifficulty:
    def test_declared_difficulty_wins(self):
        assert estimate_difficulty(_grid(3, declared_difficulty=0.72, difficulty_level="easy")) == 0.72

    def test_declared_difficulty_is_clamped(self):
        assert estimate_difficulty(_grid(3, declared_difficulty=1.4)) == 1.0

    @pytest.mark.parametrize("level,expected", [("easy", 0.3), ("medium", 0.6), ("hard", 0.9)])
    def test_level_mapping(self, level, expected):
        assert estimate_difficulty(_grid(5, difficulty_level=level)) == expected

    def test_reference_grid_uses_type_baseline(self):
        assert estimate_difficulty(_grid(3)) == pytest.approx(0.3)

    def test_larger_grid_is_harder(self):
        assert estimate_difficulty(_grid(5)) == pytest.approx(0.45)

    def test_number_rules_and_magnitude(self):
        simple = NumberPuzzle(puzzle_type="number-series", options=["1", "2", "3", "4"], terms=[1, 2, 3])
        layered = NumberPuzzle(
            puzzle_type="number-series", options=["1", "2", "3", "4"], terms=[120, 240, 480], rule_steps=3,
        )
        assert estimate_difficulty(simple) == pytest.approx(0.4)
        assert estimate_difficulty(layered) == pytest.approx(0.61)

    def test_figure_and_directions_variants(self):
        figures = FigurePuzzle(puzzle_type="transformation", options=["a", "b", "c", "d"], transform_steps=2)
        directions = DirectionsPuzzle(
            puzzle_type="following-directions", options=["a", "b", "c", "d"], instructions=["up", "left", "down", "up"],
        )
        assert estimate_difficulty(figures) == pytest.approx(0.97)
        assert estimate_difficulty(directions) == pytest.approx(0.62)

    def test_unknown_type_is_neutral(self):
        assert estimate_difficulty(Puzzle(puzzle_type="mystery", options=["a", "b", "c", "d"])) == 0.5

    def test_extra_options_add_pressure(self):
        assert estimate_difficulty(Puzzle(puzzle_type="mystery", options=list("abcdef"))) == pytest.approx(0.54)


class TestAnalyzer:
    def test_analyze_indexes_once(self, analyzer):
        puzzle = make_puzzle("pattern", 0.35, semantic_id="pattern-easy-1")
        first = analyzer.analyze(puzzle)
        assert analyzer.analyze(puzzle) is first
        assert len(analyzer) == 1
        assert first.puzzle_id == "pattern-easy-1"
        assert first.difficulty == 0.35
        assert first.success_rate == 0.6
        assert first.user_engagement == 0.7
        assert 0.0 <= first.complexity <= 1.0

    def test_content_hash_id_is_stable(self, analyzer):
        a = make_puzzle("pattern", None)
        b = make_puzzle("pattern", None)
        assert analyzer.puzzle_id(a) == analyzer.puzzle_id(b)
        assert analyzer.puzzle_id(a).startswith("puzzle_")
        assert analyzer.puzzle_id(a) != analyzer.puzzle_id(make_puzzle("number-series", None))

    def test_malformed_puzzle_gets_neutral_dna(self, analyzer):
        dna = analyzer.analyze(GridPuzzle(puzzle_type="pattern", question="broken", grid=None))
        assert dna.difficulty == 0.5
        assert dna.complexity == 0.5
        assert dna.puzzle_type == "pattern"

    def test_foreign_object_gets_neutral_dna(self, analyzer):
        dna = analyzer.analyze({"anything": 1})
        assert dna.difficulty == 0.5
        assert dna.puzzle_type == "unknown"
        assert analyzer.get(dna.puzzle_id) is dna

    def test_update_is_running_mean(self, analyzer):
        dna = analyzer.analyze(make_puzzle(semantic_id="p1"))
        analyzer.update("p1", success=True, engagement=0.9)
        assert dna.success_rate == pytest.approx(0.8)
        assert dna.user_engagement == pytest.approx(0.8)
        analyzer.update("p1", success=False)
        assert dna.success_rate == pytest.approx(1.6 / 3)
        assert dna.observations == 2

    def test_update_unknown_id_creates_record(self, analyzer):
        dna = analyzer.update("never-seen", success=True)
        assert analyzer.get("never-seen") is dna
        assert dna.puzzle_type == "unknown"
        assert dna.difficulty == 0.5

    def test_clear(self, analyzer):
        analyzer.analyze(make_puzzle(semantic_id="p1"))
        analyzer.clear()
        assert len(analyzer) == 0

    def test_non_string_type_still_analyzed(self, analyzer):
        dna = analyzer.analyze(GridPuzzle(puzzle_type=7, question="odd", grid=[["x"]]))
        assert dna.puzzle_type == "7"
        assert dna.difficulty == 0.5
