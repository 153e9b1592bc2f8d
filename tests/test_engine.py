from datetime import datetime, timedelta, timezone

from coachpilot.config import Settings
from coachpilot.core.engine import CoachingEngine, build_engine
from coachpilot.core.kv_store import InMemoryKeyValueStore, JsonFileKeyValueStore, StorageError
from coachpilot.core.models import (
    BodyMetrics,
    InsightPriority,
    MacroBalance,
    SuggestionCategory,
    UserDataProfile,
    UserGoalPreferences,
)

FIXED_NOW = datetime(2024, 6, 10, 12, 0, tzinfo=timezone.utc)


def _struggling_profile():
    return UserDataProfile(
        weekly_training_sessions=2,
        training_consistency=60,
        average_sleep_hours=6,
        average_daily_calories=1400,
    )


def test_struggling_profile_ranks_critical_first(engine):
    insights = engine.generate_insights(_struggling_profile())

    assert len(insights) >= 4
    assert insights[0].priority == InsightPriority.CRITICAL
    assert insights[0].rule_id == "calorie_intake"
    high = {i.rule_id for i in insights if i.priority == InsightPriority.HIGH}
    assert {"sleep_duration", "training_frequency"} <= high
    assert [i.rule_id for i in insights] == [
        "calorie_intake",
        "sleep_duration",
        "training_frequency",
        "training_consistency",
    ]


def test_generation_replaces_stored_batch(engine):
    engine.generate_insights(_struggling_profile())
    engine.generate_insights(UserDataProfile(hydration_level=50))

    assert [i.rule_id for i in engine.insights.all()] == ["hydration"]


def test_generation_is_idempotent_in_rule_coverage(engine):
    first = engine.generate_insights(_struggling_profile())
    second = engine.generate_insights(_struggling_profile())

    assert {i.rule_id for i in first} == {i.rule_id for i in second}
    assert {i.id for i in first}.isdisjoint({i.id for i in second})


def test_returns_top_n_but_stores_all(kv):
    settings = Settings(max_insights_returned=2)
    engine = CoachingEngine(kv, settings, clock=lambda: FIXED_NOW)

    returned = engine.generate_insights(_struggling_profile())

    assert len(returned) == 2
    assert len(engine.insights.all()) == 4
    assert engine.insights.all()[:2] == returned


def test_generate_uses_fallback_profile_by_default(engine):
    insights = engine.generate_insights()

    rule_ids = {i.rule_id for i in insights}
    assert {"training_frequency", "training_consistency", "protein_intake", "hydration", "sleep_duration"} <= rule_ids
    assert "calorie_intake" not in rule_ids


def test_refresh_clears_expired_before_generating(kv, settings):
    clock = {"now": FIXED_NOW}
    engine = CoachingEngine(kv, settings, clock=lambda: clock["now"])
    engine.generate_insights(UserDataProfile(hydration_level=50))

    clock["now"] = FIXED_NOW + timedelta(hours=25)
    assert engine.clear_expired_insights() == 1

    engine.generate_insights(UserDataProfile(hydration_level=50))
    clock["now"] = FIXED_NOW + timedelta(hours=50)
    insights = engine.refresh_insights(UserDataProfile(stress_level=90))

    assert [i.rule_id for i in insights] == ["stress_management"]
    assert [i.rule_id for i in engine.insights.all()] == ["stress_management"]


def test_insight_queries_and_summary(engine):
    engine.generate_insights(
        UserDataProfile(
            average_daily_calories=1400,
            macro_balance=MacroBalance(protein=20, carbs=50, fat=30),
            average_sleep_hours=6,
        )
    )

    assert [i.rule_id for i in engine.insights.by_category("nutrition")] == ["calorie_intake", "protein_intake"]
    assert [i.rule_id for i in engine.insights.by_priority(InsightPriority.HIGH)] == [
        "sleep_duration",
        "protein_intake",
    ]
    assert engine.insights.by_priority("low") == []

    summary = engine.insights.summary()
    assert summary.total == 3
    assert summary.by_category == {"nutrition": 2, "recovery": 1}
    assert summary.by_priority == {"critical": 1, "high": 2}
    assert summary.average_confidence == 90


def test_summary_of_empty_store(engine):
    summary = engine.insights.summary()

    assert summary.total == 0
    assert summary.average_confidence == 0


def test_nutrition_focus_has_no_training_suggestions(engine):
    suggestions = engine.generate_goal_suggestions(UserGoalPreferences(primary_focus=["nutrition"]))

    assert suggestions
    assert all(s.category != SuggestionCategory.TRAINING for s in suggestions)
    assert engine.suggestions.by_category("training") == []


def test_suggestions_default_to_stored_preferences_and_body_data(engine):
    engine.body_composition.save_measurement(BodyMetrics(date="2024-06-01", weight=82, body_fat=18))
    engine.generate_insights(_struggling_profile())

    suggestions = engine.generate_goal_suggestions()

    by_rule = {s.rule_id: s for s in suggestions}
    assert {"training_frequency", "strength_progression", "weight_management", "body_fat"} <= set(by_rule)
    assert by_rule["training_frequency"].related_insights
    assert by_rule["weight_management"].current_value == 82
    assert suggestions[0].priority.value == "high"
    assert suggestions[0].rule_id == "protein_intake"


def test_accept_and_dismiss_suggestions(engine):
    suggestions = engine.generate_goal_suggestions(UserGoalPreferences(primary_focus=["recovery"]))
    sleep, stress = suggestions

    accepted = engine.accept_suggestion(sleep.id)
    assert accepted.id == sleep.id
    assert engine.accept_suggestion(sleep.id) is None

    assert engine.dismiss_suggestion(stress.id) is True
    assert engine.dismiss_suggestion("unknown") is False
    assert engine.suggestions.all() == []


def test_build_engine_selects_storage_backend(tmp_path):
    assert isinstance(build_engine(Settings(storage_path=None)).kv, InMemoryKeyValueStore)

    path = tmp_path / "coachpilot.json"
    engine = build_engine(Settings(storage_path=str(path)))
    assert isinstance(engine.kv, JsonFileKeyValueStore)

    engine.generate_insights(_struggling_profile())
    reopened = build_engine(Settings(storage_path=str(path)))
    assert len(reopened.insights.all()) == 4


class ReadOnlyKeyValueStore(InMemoryKeyValueStore):
    """Writes succeed until read_only is switched on."""

    read_only = False

    def set(self, key, value):
        if self.read_only:
            raise StorageError("storage is read-only")
        super().set(key, value)


def test_accept_and_dismiss_report_failed_writes(settings):
    kv = ReadOnlyKeyValueStore()
    engine = CoachingEngine(kv, settings, clock=lambda: FIXED_NOW)
    sleep, stress = engine.generate_goal_suggestions(UserGoalPreferences(primary_focus=["recovery"]))

    kv.read_only = True

    assert engine.accept_suggestion(sleep.id) is None
    assert engine.dismiss_suggestion(stress.id) is False
    assert [s.id for s in engine.suggestions.all()] == [sleep.id, stress.id]


def test_clear_expired_reports_zero_when_write_fails(settings):
    clock = {"now": FIXED_NOW}
    kv = ReadOnlyKeyValueStore()
    engine = CoachingEngine(kv, settings, clock=lambda: clock["now"])
    engine.generate_insights(UserDataProfile(hydration_level=50))

    kv.read_only = True
    clock["now"] = FIXED_NOW + timedelta(hours=25)

    assert engine.clear_expired_insights() == 0
    assert len(engine.insights.all()) == 1
