"""CLI entry point for puzzlecoach developer tooling."""

import asyncio
import json
import logging
import random
from pathlib import Path
from typing import Optional

import click

PERSONAS = {
    # name: (success probability at difficulty 0.5, slope per unit difficulty, engagement)
    "steady": (0.75, 0.6, 0.75),
    "struggling": (0.35, 0.8, 0.5),
    "expert": (0.95, 0.3, 0.9),
    "casual": (0.85, 0.9, 0.9),
}


def _load_settings(ctx: click.Context):
    from puzzlecoach.config.settings import Settings

    settings = Settings.load(ctx.obj.get("config"))
    if ctx.obj.get("data_dir"):
        settings.data_dir = ctx.obj["data_dir"]
    return settings


def _sqlite_backend(settings):
    from puzzlecoach.state.storage import SqliteKeyValueStore

    return SqliteKeyValueStore(db_path=settings.data_dir / "puzzlecoach.db")


@click.group()
@click.option("--config", type=click.Path(path_type=Path), default=None, help="Path to config.yaml")
@click.option("--data-dir", type=click.Path(path_type=Path), default=None, help="Override the data directory")
@click.option("-v", "--verbose", is_flag=True, help="Log selection details to stderr")
@click.pass_context
def main(ctx: click.Context, config: Optional[Path], data_dir: Optional[Path], verbose: bool) -> None:
    """puzzlecoach: adaptive puzzle selection engine tools."""
    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["data_dir"] = data_dir
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@main.command()
@click.option("--persona", type=click.Choice(sorted(PERSONAS)), default="steady")
@click.option("--puzzles", type=int, default=30, show_default=True)
@click.option("--seed", type=int, default=7, show_default=True)
@click.option("--persist", is_flag=True, help="Write the resulting profile to the data directory")
@click.pass_context
def simulate(ctx: click.Context, persona: str, puzzles: int, seed: int, persist: bool) -> None:
    """Run a simulated player through the engine."""
    from puzzlecoach.engine.adaptive import AdaptivePuzzleEngine
    from puzzlecoach.engine.sources import SyntheticPuzzleSource
    from puzzlecoach.state.profile import UserProfileStore
    from puzzlecoach.state.storage import MemoryKeyValueStore

    settings = _load_settings(ctx)
    backend = _sqlite_backend(settings) if persist else MemoryKeyValueStore()
    base_rate, slope, engagement = PERSONAS[persona]
    rng = random.Random(seed)

    async def _run():
        store = UserProfileStore(backend, settings)
        engine = AdaptivePuzzleEngine(store, SyntheticPuzzleSource(settings.catalog(), seed=seed))
        await engine.start_session()
        for round_no in range(1, puzzles + 1):
            rec = await engine.get_next_puzzle()
            chance = max(0.05, min(0.98, base_rate - (rec.dna.difficulty - 0.5) * slope))
            success = rng.random() < chance
            await engine.record_completion(
                rec.dna.puzzle_id, success, solve_time_ms=rng.uniform(3000, 15000),
                engagement_score=max(0.0, min(1.0, rng.gauss(engagement, 0.05))),
            )
            click.echo(
                f"  {round_no:3d}  {rec.dna.puzzle_type:<16} difficulty={rec.dna.difficulty:.2f}  "
                f"{'solved' if success else 'missed'}"
            )
        session = engine.current_session
        profile = await store.get_profile()
        await engine.aclose()
        click.echo(
            f"Session accuracy {session.current_accuracy:.0%}, skill {profile.current_skill_level:.2f}, "
            f"ceiling {profile.current_max_difficulty:.2f}"
        )

    asyncio.run(_run())


@main.command()
@click.pass_context
def profile(ctx: click.Context) -> None:
    """Show the stored profile and learning metrics."""
    from puzzlecoach.state.profile import UserProfileStore

    settings = _load_settings(ctx)

    async def _show():
        store = UserProfileStore(_sqlite_backend(settings), settings)
        current = await store.get_profile()
        metrics = await store.learning_metrics()
        await store.aclose()
        click.echo(json.dumps(current.model_dump(), indent=2))
        click.echo(f"Correct answers: {metrics.total_correct_answers}/{metrics.total_puzzles_attempted}")
        click.echo(f"Engagement score: {metrics.engagement_score:.2f}")

    asyncio.run(_show())


@main.command()
@click.confirmation_option(prompt="Erase the stored profile?")
@click.pass_context
def reset(ctx: click.Context) -> None:
    """Clear the stored profile."""
    from puzzlecoach.state.profile import UserProfileStore

    settings = _load_settings(ctx)

    async def _reset():
        store = UserProfileStore(_sqlite_backend(settings), settings)
        await store.clear_all()
        await store.aclose()

    asyncio.run(_reset())
    click.echo("Profile reset.")
