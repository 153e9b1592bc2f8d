import pytest

from coachpilot.core.body_composition import BodyCompositionService
from coachpilot.core.models import (
    BodyCompositionGoals,
    BodyMetrics,
    GoalPace,
    TimeCommitment,
)
from coachpilot.core.profile_provider import GoalPreferencesRepository, UserProfileProvider

PROFILE_KEY = "coachpilot_user_profile"


@pytest.fixture
def body_service(kv):
    return BodyCompositionService(kv, "coachpilot_body_composition", "coachpilot_body_goals")


@pytest.fixture
def provider(kv, body_service):
    return UserProfileProvider(kv, PROFILE_KEY, body_service)


def test_fallback_profile_without_data(provider):
    profile = provider.get_profile()

    assert profile.weekly_training_sessions == 2.5
    assert profile.average_daily_calories == 2100
    assert profile.macro_balance.protein == 22
    assert profile.latest_measurements is None
    assert profile.goal_progress == {}


def test_fallback_profile_enriched_with_body_data(provider, body_service):
    body_service.save_goals(BodyCompositionGoals(weight=80))
    body_service.save_measurement(BodyMetrics(date="2024-05-01", weight=90))
    body_service.save_measurement(BodyMetrics(date="2024-06-01", weight=85))

    profile = provider.get_profile()

    assert profile.latest_measurements.metrics.weight == 85
    assert profile.goal_progress == {"weight": 50.0}


def test_stored_profile_takes_precedence(provider):
    provider.update_profile({"averageDailyCalories": 1400, "sleep_quality": 60})

    profile = provider.get_profile()

    assert profile.average_daily_calories == 1400
    assert profile.sleep_quality == 60
    assert profile.weekly_training_sessions == 2.5


def test_corrupt_stored_profile_falls_back(provider, kv):
    kv.set(PROFILE_KEY, "{oops")

    assert provider.get_profile().average_daily_calories == 2100


def test_reset_profile(provider):
    provider.update_profile({"average_daily_calories": 1400})
    provider.reset_profile()

    assert provider.get_stored_profile() is None
    assert provider.get_profile().average_daily_calories == 2100


def test_goal_preferences_defaults_and_update(kv):
    repository = GoalPreferencesRepository(kv, "coachpilot_goal_preferences")

    defaults = repository.get_preferences()
    assert defaults.primary_focus == ["general", "strength"]
    assert defaults.time_commitment == TimeCommitment.MEDIUM
    assert defaults.motivation_style == GoalPace.BALANCED

    repository.update_preferences({"primaryFocus": ["nutrition"], "time_commitment": "low"})

    stored = repository.get_preferences()
    assert stored.primary_focus == ["nutrition"]
    assert stored.time_commitment == TimeCommitment.LOW
    assert stored.specific_targets == {"weight": 75, "body_fat": 12}


def test_stored_profile_picks_up_later_measurements(provider, body_service):
    provider.update_profile({"average_daily_calories": 1400})
    body_service.save_goals(BodyCompositionGoals(weight=80))
    body_service.save_measurement(BodyMetrics(date="2024-05-01", weight=90))
    body_service.save_measurement(BodyMetrics(date="2024-06-01", weight=85))

    profile = provider.get_profile()

    assert profile.average_daily_calories == 1400
    assert profile.latest_measurements.metrics.weight == 85
    assert profile.goal_progress == {"weight": 50.0}
