"""Configuration model for puzzlecoach.

Every tunable threshold of the adaptive engine lives here so tests and
deployments can override them without touching the selection logic.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field

from puzzlecoach.engine.catalog import PuzzleCatalog, PuzzleTypeConfig, default_puzzle_types

logger = logging.getLogger(__name__)


class NewUserSettings(BaseModel):
    enabled: bool = True
    puzzle_count_threshold: int = 10
    max_difficulty: float = Field(default=0.4, ge=0.0, le=1.0)


class StrugglingUserSettings(BaseModel):
    enabled: bool = True
    accuracy_threshold: float = Field(default=0.4, ge=0.0, le=1.0)
    max_difficulty: float = Field(default=0.3, ge=0.0, le=1.0)


class GlobalCaps(BaseModel):
    max_difficulty: Optional[float] = Field(default=None, ge=0.0, le=1.0)

    def get_max_difficulty(self) -> Optional[float]:
        raw = os.environ.get("PUZZLECOACH_MAX_DIFFICULTY")
        if raw:
            try:
                value = float(raw)
            except ValueError:
                logger.warning("Ignoring PUZZLECOACH_MAX_DIFFICULTY=%r: not a number", raw)
                return self.max_difficulty
            if not 0.0 <= value <= 1.0:
                logger.warning("Ignoring PUZZLECOACH_MAX_DIFFICULTY=%r: outside [0, 1]", raw)
                return self.max_difficulty
            return value
        return self.max_difficulty


class ProfileTuning(BaseModel):
    recent_window: int = Field(default=10, ge=1, le=10)
    max_preferred_types: int = Field(default=5, ge=1, le=5)
    engagement_decay: float = 0.9
    promote_accuracy: float = 0.8
    demote_accuracy: float = 0.4
    skill_step_up: float = 0.05
    skill_step_down: float = 0.03
    skill_floor: float = 0.1
    skill_cap: float = 1.0
    ceiling_offset: float = 0.2
    ceiling_max: float = 0.9
    default_skill: float = 0.5
    default_accuracy: float = 0.6
    default_ceiling: float = 0.7
    default_engagement: float = 0.7
    default_power_ups: int = 3


class DetectorTuning(BaseModel):
    bootstrap_puzzles: int = 50
    bootstrap_min_cap: float = 0.25
    bootstrap_max_cap: float = 0.65
    bootstrap_target_rate: float = 0.6
    bootstrap_rate_scale: float = 0.25
    bootstrap_default_rate: float = 0.5
    bootstrap_early_ratio: float = 0.3
    bootstrap_intermediate_ratio: float = 0.7
    preferred_type_success: float = 0.8
    non_preferred_factor: float = 0.8
    low_ceiling: float = 0.4
    give_up_failures: int = 6
    low_accuracy: float = 0.5
    consistent_accuracy: float = 0.75
    consistent_engagement: float = 0.8
    challenge_accuracy: float = 0.8
    challenge_engagement: float = 0.7
    frustrated_ceiling: float = 0.6
    frustrated_engagement: float = 0.6
    early_cap: float = 0.35
    early_headroom: float = 0.05
    preference_cap: float = 0.45
    preference_floor: float = 0.2
    strong_engagement: float = 0.7
    strong_engagement_weight: float = 0.8
    weak_engagement_weight: float = 0.6
    advanced_cap: float = 0.9
    advanced_headroom: float = 0.15
    balanced_cap: float = 0.65
    balanced_headroom: float = 0.1


class DifficultyTuning(BaseModel):
    min_difficulty: float = 0.1
    max_difficulty: float = 0.9
    default_recent_rate: float = 0.6
    low_engagement: float = 0.5
    high_engagement: float = 0.8
    engagement_penalty: float = 0.2
    engagement_bonus: float = 0.1
    bonus_recent_rate: float = 0.6
    high_recent_rate: float = 0.8
    low_recent_rate: float = 0.4
    performance_step: float = 0.05
    early_capability_weight: float = 0.7
    early_engagement_weight: float = 0.2
    capability_weight: float = 0.4
    engagement_weight: float = 0.5
    early_stage_cap: float = 0.32
    very_new_cap: float = 0.25
    very_new_puzzles: int = 5


class SelectionTuning(BaseModel):
    candidate_count: int = 3
    recent_preference_count: int = 5
    difficulty_weight: float = 0.4
    preference_weight: float = 0.3
    success_weight: float = 0.3
    match_weight: float = 0.5
    engagement_weight: float = 0.3
    provisional_success_weight: float = 0.2
    fallback_difficulty: float = 0.3
    fallback_confidence: float = 0.5
    simplest_type: str = "pattern"


class Settings(BaseModel):
    new_user: NewUserSettings = Field(default_factory=NewUserSettings)
    struggling: StrugglingUserSettings = Field(default_factory=StrugglingUserSettings)
    global_caps: GlobalCaps = Field(default_factory=GlobalCaps)
    profile: ProfileTuning = Field(default_factory=ProfileTuning)
    detector: DetectorTuning = Field(default_factory=DetectorTuning)
    difficulty: DifficultyTuning = Field(default_factory=DifficultyTuning)
    selection: SelectionTuning = Field(default_factory=SelectionTuning)
    puzzle_types: dict[str, PuzzleTypeConfig] = Field(default_factory=default_puzzle_types)
    log_selection: bool = True
    data_dir: Path = Path.home() / ".puzzlecoach"

    def catalog(self) -> PuzzleCatalog:
        return PuzzleCatalog(self.puzzle_types)

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "Settings":
        config_path = config_path or Path.home() / ".puzzlecoach" / "config.yaml"
        if config_path.exists():
            with open(config_path) as f:
                data = yaml.safe_load(f) or {}
            return cls(**data)
        return cls()

    def save(self) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        config_path = self.data_dir / "config.yaml"
        with open(config_path, "w") as f:
            yaml.dump(self.model_dump(mode="json"), f, default_flow_style=False)
