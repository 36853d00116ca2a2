"""Tests for the adaptive puzzle engine."""

import logging

import pytest

from puzzlecoach.engine.adaptive import (
    FALLBACK_REASON,
    FINAL_FALLBACK_REASON,
    AdaptivePuzzleEngine,
    PuzzleExhaustedError,
)
from puzzlecoach.engine.puzzles import GridPuzzle
from puzzlecoach.state.profile import UserProfileStore

from conftest import ScriptedSource, make_puzzle


class BrokenStore(UserProfileStore):
    async def get_profile(self):
        raise RuntimeError("profile unavailable")

    async def record_completion(self, *args, **kwargs):
        raise RuntimeError("profile unavailable")


@pytest.fixture
def scripted_engine(store):
    def _make(**kwargs):
        return AdaptivePuzzleEngine(store, ScriptedSource(**kwargs))
    return _make


class TestSelection:
    @pytest.mark.asyncio
    async def test_returns_best_match(self, engine):
        rec = await engine.get_next_puzzle()
        assert rec.selection_reason.startswith("Best match")
        assert 0.0 <= rec.confidence_score <= 1.0
        assert engine.analyzer.get(rec.dna.puzzle_id) is rec.dna

    @pytest.mark.asyncio
    async def test_first_puzzles_stay_easy(self, engine):
        await engine.start_session()
        for _ in range(10):
            rec = await engine.get_next_puzzle()
            assert rec.dna.difficulty <= 0.4
            await engine.record_completion(rec.dna.puzzle_id, True, 5000, 0.9)

    @pytest.mark.asyncio
    async def test_selection_is_logged(self, engine, caplog):
        with caplog.at_level(logging.INFO, logger="puzzlecoach.engine.adaptive"):
            await engine.get_next_puzzle()
        assert "Selected" in caplog.text

    @pytest.mark.asyncio
    async def test_forced_type(self, engine):
        rec = await engine.get_next_puzzle(force_type="number-grid")
        assert rec.dna.puzzle_type == "number-grid"


class TestFallback:
    @pytest.mark.asyncio
    async def test_no_candidates_uses_safe_difficulty(self, scripted_engine):
        engine = scripted_engine(generate=[None, None, None, make_puzzle(semantic_id="fb")])
        rec = await engine.get_next_puzzle()
        assert rec.dna.puzzle_id == "fb"
        assert rec.selection_reason == FALLBACK_REASON
        assert rec.confidence_score == 0.5
        assert engine.source.calls[-1] == ("generate", 0.3, [])

    @pytest.mark.asyncio
    async def test_odd_fallback_puzzle_is_served(self, scripted_engine):
        odd = GridPuzzle(puzzle_type=7, question="odd", grid=[["x"]])
        engine = scripted_engine(generate=[None, None, None, odd])
        rec = await engine.get_next_puzzle()
        assert rec.puzzle is odd
        assert rec.selection_reason == FALLBACK_REASON
        assert rec.dna.puzzle_type == "7"

    @pytest.mark.asyncio
    async def test_simplest_type_is_last_resort(self, scripted_engine):
        engine = scripted_engine(specific={"pattern": make_puzzle(semantic_id="simple")})
        rec = await engine.get_next_puzzle()
        assert rec.dna.puzzle_id == "simple"
        assert rec.selection_reason == FINAL_FALLBACK_REASON
        assert engine.source.calls[-1] == ("specific", "pattern")

    @pytest.mark.asyncio
    async def test_generator_exceptions_fall_through(self, scripted_engine):
        engine = scripted_engine(
            generate=[RuntimeError("bad")] * 4,
            specific={"pattern": make_puzzle(semantic_id="simple")},
        )
        rec = await engine.get_next_puzzle()
        assert rec.selection_reason == FINAL_FALLBACK_REASON

    @pytest.mark.asyncio
    async def test_exhausted_when_nothing_generates(self, scripted_engine):
        engine = scripted_engine()
        with pytest.raises(PuzzleExhaustedError):
            await engine.get_next_puzzle()

    @pytest.mark.asyncio
    async def test_exhausted_when_simplest_type_raises(self, scripted_engine):
        engine = scripted_engine(specific={"pattern": RuntimeError("down")})
        with pytest.raises(PuzzleExhaustedError):
            await engine.get_next_puzzle()

    @pytest.mark.asyncio
    async def test_pipeline_failure_falls_back(self, backend, settings):
        source = ScriptedSource(generate=[make_puzzle(semantic_id="fb")])
        engine = AdaptivePuzzleEngine(BrokenStore(backend, settings), source)
        rec = await engine.get_next_puzzle()
        assert rec.selection_reason == FALLBACK_REASON


class TestCompletion:
    @pytest.mark.asyncio
    async def test_updates_profile_session_and_dna(self, engine, store):
        session_id = await engine.start_session()
        assert engine.current_session.session_id == session_id

        rec = await engine.get_next_puzzle()
        await engine.record_completion(rec.dna.puzzle_id, True, 4000, 0.9)

        session = engine.current_session
        assert session.puzzles_solved == 1
        assert session.current_accuracy == 1.0
        assert session.engagement_level == pytest.approx(0.74)
        assert (await store.get_profile()).total_puzzles_solved == 1
        assert rec.dna.observations == 1

    @pytest.mark.asyncio
    async def test_never_raises(self, backend, settings, caplog):
        engine = AdaptivePuzzleEngine(BrokenStore(backend, settings), ScriptedSource())
        with caplog.at_level(logging.WARNING, logger="puzzlecoach.engine.adaptive"):
            await engine.record_completion("p1", True, 1000)
        assert "Error recording completion" in caplog.text

    @pytest.mark.asyncio
    async def test_update_type_preference(self, engine):
        assert await engine.update_type_preference("number-series", True) == ["number-series"]


class TestMaintenance:
    @pytest.mark.asyncio
    async def test_system_metrics(self, engine):
        rec = await engine.get_next_puzzle()
        await engine.record_completion(rec.dna.puzzle_id, False, 1000)
        metrics = await engine.system_metrics()
        assert metrics["user"]["total_puzzles_solved"] == 1
        assert metrics["system"]["indexed_puzzles"] >= 1
        assert metrics["system"]["storage_size"] > 0

    @pytest.mark.asyncio
    async def test_system_metrics_defaults_on_failure(self, backend, settings):
        engine = AdaptivePuzzleEngine(BrokenStore(backend, settings), ScriptedSource())
        metrics = await engine.system_metrics()
        assert metrics["user"]["current_skill_level"] == 0.5
        assert metrics["system"]["indexed_puzzles"] == 0

    @pytest.mark.asyncio
    async def test_reset_keeps_profile(self, engine, store):
        await engine.start_session()
        await engine.record_completion("p1", True, 1000)
        engine.reset()
        assert engine.current_session is None
        assert (await store.get_profile()).total_puzzles_solved == 1

    @pytest.mark.asyncio
    async def test_clear_all(self, engine, store):
        await engine.start_session()
        rec = await engine.get_next_puzzle()
        await engine.record_completion(rec.dna.puzzle_id, True, 1000)
        await engine.clear_all()
        await engine.aclose()
        assert len(engine.analyzer) == 0
        assert engine.current_session is None
        assert (await store.get_profile()).total_puzzles_solved == 0
