"""
CoachPilot AI - User Profile Provider

Supplies the UserDataProfile snapshot and the goal preferences consumed by
the rule families. Stored overrides win; without them a deterministic
fallback snapshot keeps generation working.
"""

import logging
from typing import Any, Optional

from pydantic import BaseModel, ValidationError

from coachpilot.core.body_composition import BodyCompositionService
from coachpilot.core.kv_store import KeyValueStore, StorageError
from coachpilot.core.models import (
    FitnessLevel,
    GoalPace,
    MacroBalance,
    MotivationStyle,
    ProgressTrend,
    TimeCommitment,
    UserDataProfile,
    UserGoalPreferences,
    UserPreferences,
)

logger = logging.getLogger(__name__)


# Snapshot used when no profile has been stored
FALLBACK_PROFILE: dict[str, Any] = {
    "weekly_training_sessions": 2.5,
    "average_session_duration": 75,
    "preferred_training_time": "evening",
    "training_consistency": 68,
    "last_training_date": "2024-01-14",

    "average_daily_calories": 2100,
    "macro_balance": MacroBalance(protein=22, carbs=45, fat=33),
    "hydration_level": 75,
    "nutrition_consistency": 72,

    "average_sleep_hours": 6.8,
    "sleep_quality": 73,
    "stress_level": 65,
    "rest_days": 2,

    "progress_trend": ProgressTrend.IMPROVING,

    "fitness_level": FitnessLevel.INTERMEDIATE,
    "primary_goals": ["weight_loss", "muscle_gain", "endurance"],
    "preferences": UserPreferences(
        focus_areas=["strength", "cardio"],
        avoidance_list=["high_impact"],
        motivation_style=MotivationStyle.ENCOURAGING,
    ),
}

DEFAULT_GOAL_PREFERENCES: dict[str, Any] = {
    "primary_focus": ["general", "strength"],
    "time_commitment": TimeCommitment.MEDIUM,
    "experience_level": FitnessLevel.INTERMEDIATE,
    "specific_targets": {"weight": 75, "body_fat": 12},
    "avoidance_list": [],
    "motivation_style": GoalPace.BALANCED,
}


def _merge(current: BaseModel, updates: dict[str, Any] | BaseModel, model: type[BaseModel]):
    """Shallow merge of updates over current, validated as model."""
    if isinstance(updates, BaseModel):
        updates = updates.model_dump(exclude_unset=True)
    merged = current.model_dump()
    # Accept camelCase keys by normalising through the model's aliases
    for key, value in updates.items():
        field_name = _field_name(model, key)
        merged[field_name] = value
    return model.model_validate(merged)


def _field_name(model: type[BaseModel], key: str) -> str:
    if key in model.model_fields:
        return key
    for name, field in model.model_fields.items():
        if field.alias == key:
            return name
    return key


class UserProfileProvider:
    """
    Reads and updates the UserDataProfile snapshot.

    Example:
        provider = UserProfileProvider(kv, "coachpilot_user_profile", body_service)
        profile = provider.get_profile()
    """

    def __init__(
        self,
        kv: KeyValueStore,
        profile_key: str,
        body_composition: Optional[BodyCompositionService] = None,
    ):
        self.kv = kv
        self.profile_key = profile_key
        self.body_composition = body_composition

    def fallback_profile(self) -> UserDataProfile:
        """Deterministic snapshot enriched with body-composition data."""
        profile = UserDataProfile(**FALLBACK_PROFILE)
        if self.body_composition:
            profile.latest_measurements = self.body_composition.latest_measurement()
            profile.goal_progress = self.body_composition.calculate_progress()
        return profile

    def _with_live_body_data(self, profile: UserDataProfile) -> UserDataProfile:
        """Measured body data replaces whatever was stored with the profile."""
        if not self.body_composition:
            return profile
        latest = self.body_composition.latest_measurement()
        if latest is not None:
            profile.latest_measurements = latest
            profile.goal_progress = self.body_composition.calculate_progress()
        return profile

    def get_stored_profile(self) -> Optional[UserDataProfile]:
        try:
            raw = self.kv.get(self.profile_key)
        except StorageError as e:
            logger.error(f"Error loading user profile: {e}")
            return None

        if raw is None:
            return None

        try:
            return UserDataProfile.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Stored user profile is invalid, using fallback: {e}")
            return None

    def get_profile(self) -> UserDataProfile:
        stored = self.get_stored_profile()
        if stored is None:
            return self.fallback_profile()
        return self._with_live_body_data(stored)

    def update_profile(self, updates: dict[str, Any] | BaseModel) -> UserDataProfile:
        """Merge updates over the current profile and store the result."""
        updated = _merge(self.get_profile(), updates, UserDataProfile)
        try:
            self.kv.set(self.profile_key, updated.model_dump_json())
            logger.info(f"Updated user profile: {sorted(_keys(updates))}")
        except StorageError as e:
            logger.error(f"Error updating user profile: {e}")
        return updated

    def reset_profile(self):
        """Drop stored overrides so the fallback snapshot applies again."""
        try:
            self.kv.delete(self.profile_key)
        except StorageError as e:
            logger.error(f"Error resetting user profile: {e}")


class GoalPreferencesRepository:
    """Stored UserGoalPreferences record with defaults."""

    def __init__(self, kv: KeyValueStore, preferences_key: str):
        self.kv = kv
        self.preferences_key = preferences_key

    def get_preferences(self) -> UserGoalPreferences:
        try:
            raw = self.kv.get(self.preferences_key)
            if raw is not None:
                return UserGoalPreferences.model_validate_json(raw)
        except StorageError as e:
            logger.error(f"Error loading goal preferences: {e}")
        except ValidationError as e:
            logger.warning(f"Stored goal preferences are invalid, using defaults: {e}")

        return UserGoalPreferences(**DEFAULT_GOAL_PREFERENCES)

    def update_preferences(self, updates: dict[str, Any] | BaseModel) -> UserGoalPreferences:
        updated = _merge(self.get_preferences(), updates, UserGoalPreferences)
        try:
            self.kv.set(self.preferences_key, updated.model_dump_json())
            logger.info(f"Updated goal preferences: {sorted(_keys(updates))}")
        except StorageError as e:
            logger.error(f"Error updating goal preferences: {e}")
        return updated


def _keys(updates: dict[str, Any] | BaseModel) -> list[str]:
    if isinstance(updates, BaseModel):
        return list(updates.model_dump(exclude_unset=True))
    return list(updates)
