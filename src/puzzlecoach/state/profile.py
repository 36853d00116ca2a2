"""User profile model and its store.

The store owns the single mutable profile for one user. It is constructed
explicitly with a storage backend; the in-memory copy is the source of truth
and every mutation is handed to a write-behind writer.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from puzzlecoach.config.settings import ProfileTuning, Settings
from puzzlecoach.state.storage import KeyValueStore
from puzzlecoach.state.writer import WriteBehind

logger = logging.getLogger(__name__)

PROFILE_KEY = "adaptive_user_profile"
RECENT_PERFORMANCE_KEY = "adaptive_recent_performance"

# Upper bounds applied when a persisted blob is loaded; the live bounds come
# from ProfileTuning and are enforced on every mutation.
MAX_RECENT_PERFORMANCE = 10
MAX_PREFERRED_TYPES = 5


def _now_ms() -> int:
    return int(time.time() * 1000)


class UserProfile(BaseModel):
    user_id: str = Field(default_factory=lambda: f"user_{uuid.uuid4().hex[:12]}")
    created_at: int = Field(default_factory=_now_ms)
    last_active: int = Field(default_factory=_now_ms)

    total_sessions: int = Field(default=0, ge=0)
    total_puzzles_solved: int = Field(default=0, ge=0)
    overall_accuracy: float = Field(default=0.6, ge=0.0, le=1.0)
    current_skill_level: float = Field(default=0.5, ge=0.0, le=1.0)
    high_score: int = 0
    current_level: int = 0

    current_max_difficulty: float = Field(default=0.7, ge=0.0, le=1.0)
    recent_performance: list[bool] = Field(default_factory=list)
    preferred_puzzle_types: list[str] = Field(default_factory=list)
    avg_engagement_score: float = Field(default=0.7, ge=0.0, le=1.0)
    engagement_samples: int = Field(default=0, ge=0)

    current_game_score: int = 0
    power_up_inventory: int = 3
    last_power_up_refresh: int = Field(default_factory=_now_ms)

    @field_validator("recent_performance")
    @classmethod
    def _keep_latest_outcomes(cls, v: list[bool]) -> list[bool]:
        return v[-MAX_RECENT_PERFORMANCE:]

    @field_validator("preferred_puzzle_types")
    @classmethod
    def _keep_latest_types(cls, v: list[str]) -> list[str]:
        return v[-MAX_PREFERRED_TYPES:]

    @property
    def recent_success_rate(self) -> Optional[float]:
        if not self.recent_performance:
            return None
        return sum(self.recent_performance) / len(self.recent_performance)

    @classmethod
    def default(cls, tuning: Optional[ProfileTuning] = None) -> "UserProfile":
        tuning = tuning or ProfileTuning()
        return cls(
            overall_accuracy=tuning.default_accuracy,
            current_skill_level=tuning.default_skill,
            current_max_difficulty=tuning.default_ceiling,
            avg_engagement_score=tuning.default_engagement,
            power_up_inventory=tuning.default_power_ups,
        )


@dataclass
class LearningMetrics:
    total_puzzles_attempted: int
    total_correct_answers: int
    average_session_length: float
    skill_progression: float
    engagement_score: float


class UserProfileStore:
    def __init__(self, backend: KeyValueStore, settings: Optional[Settings] = None):
        self.settings = settings or Settings()
        self.tuning = self.settings.profile
        self.backend = backend
        self._writer = WriteBehind(backend)
        self._profile: Optional[UserProfile] = None

    async def get_profile(self) -> UserProfile:
        """Return the cached profile, loading or creating it on first use."""
        if self._profile is not None:
            return self._profile

        try:
            stored = self.backend.get(PROFILE_KEY)
            if stored:
                self._profile = UserProfile.model_validate_json(stored)
                return self._profile
        except ValidationError as e:
            logger.warning("Stored profile is invalid, starting fresh: %s", e.errors()[:1])
        except Exception as e:
            logger.warning("Failed to load user profile: %s", e)

        self._profile = UserProfile.default(self.tuning)
        self._save()
        return self._profile

    async def update_profile(self, **changes) -> UserProfile:
        """Merge ``changes`` into the profile; values are validated."""
        profile = await self.get_profile()
        merged = profile.model_dump()
        merged.update(changes)
        merged["last_active"] = _now_ms()
        self._profile = UserProfile.model_validate(merged)
        self._save()
        return self._profile

    async def record_completion(
        self,
        puzzle_id: str,
        success: bool,
        solve_time_ms: float,
        engagement_score: float,
    ) -> UserProfile:
        profile = await self.get_profile()
        tuning = self.tuning
        engagement_score = max(0.0, min(1.0, engagement_score))

        profile.total_puzzles_solved += 1
        n = profile.total_puzzles_solved
        accuracy = (profile.overall_accuracy * (n - 1) + (1.0 if success else 0.0)) / n
        profile.overall_accuracy = min(1.0, accuracy)

        profile.recent_performance.append(success)
        del profile.recent_performance[:-tuning.recent_window]

        if profile.engagement_samples == 0:
            profile.avg_engagement_score = engagement_score
        else:
            decay = tuning.engagement_decay
            profile.avg_engagement_score = profile.avg_engagement_score * decay + engagement_score * (1 - decay)
        profile.engagement_samples += 1

        recent_accuracy = profile.recent_success_rate or 0.0
        if recent_accuracy > tuning.promote_accuracy and profile.current_skill_level < tuning.skill_cap:
            profile.current_skill_level = min(tuning.skill_cap, profile.current_skill_level + tuning.skill_step_up)
        elif recent_accuracy < tuning.demote_accuracy and profile.current_skill_level > tuning.skill_floor:
            profile.current_skill_level = max(tuning.skill_floor, profile.current_skill_level - tuning.skill_step_down)

        profile.current_max_difficulty = min(tuning.ceiling_max, profile.current_skill_level + tuning.ceiling_offset)
        profile.last_active = _now_ms()

        logger.debug(
            "Recorded %s for %s in %.0fms: accuracy=%.3f skill=%.2f ceiling=%.2f",
            "success" if success else "failure", puzzle_id, solve_time_ms,
            profile.overall_accuracy, profile.current_skill_level, profile.current_max_difficulty,
        )
        self._save()
        return profile

    async def start_session(self) -> str:
        profile = await self.get_profile()
        profile.total_sessions += 1
        profile.last_active = _now_ms()
        self._save()
        return f"session_{_now_ms()}"

    async def update_type_preference(self, puzzle_type: str, liked: bool) -> list[str]:
        profile = await self.get_profile()
        preferred = profile.preferred_puzzle_types

        if liked and puzzle_type not in preferred:
            preferred.append(puzzle_type)
            del preferred[:-self.tuning.max_preferred_types]
        elif not liked:
            profile.preferred_puzzle_types = [t for t in preferred if t != puzzle_type]

        self._save()
        return list(profile.preferred_puzzle_types)

    async def learning_metrics(self) -> LearningMetrics:
        profile = await self.get_profile()
        activity = min(1.0, profile.total_sessions / 10)
        return LearningMetrics(
            total_puzzles_attempted=profile.total_puzzles_solved,
            total_correct_answers=round(profile.total_puzzles_solved * profile.overall_accuracy),
            average_session_length=profile.total_puzzles_solved / max(1, profile.total_sessions),
            skill_progression=profile.current_skill_level,
            engagement_score=(profile.overall_accuracy + profile.current_skill_level + activity) / 3,
        )

    async def storage_metrics(self) -> dict:
        """Size in characters of the persisted keys (after pending writes land)."""
        await self.flush()
        try:
            total = sum(len(self.backend.get(k) or "") for k in (PROFILE_KEY, RECENT_PERFORMANCE_KEY))
        except Exception as e:
            logger.warning("Failed to read storage metrics: %s", e)
            total = 0
        return {"total_size": total, "compression_ratio": 1.0}

    async def clear_all(self) -> UserProfile:
        """Drop all persisted state and start over with a default profile."""
        self._writer.submit(RECENT_PERFORMANCE_KEY, None)
        self._profile = UserProfile.default(self.tuning)
        self._save()
        return self._profile

    async def flush(self) -> None:
        await self._writer.flush()

    async def aclose(self) -> None:
        await self.flush()

    def _save(self) -> None:
        if self._profile is None:
            return
        self._writer.submit(PROFILE_KEY, self._profile.model_dump_json())
