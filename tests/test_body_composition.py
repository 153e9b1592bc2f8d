import pytest

from coachpilot.core.body_composition import BodyCompositionService, goal_progress_percent
from coachpilot.core.models import BodyCompositionGoals, BodyMetrics


@pytest.fixture
def service(kv):
    return BodyCompositionService(kv, "coachpilot_body_composition", "coachpilot_body_goals")


def test_progress_lower_is_better():
    assert goal_progress_percent("weight", 90, 85, 80) == 50


def test_progress_higher_is_better():
    assert goal_progress_percent("muscle_mass", 30, 33, 36) == 50


def test_progress_is_clamped():
    assert goal_progress_percent("weight", 90, 95, 80) == 0
    assert goal_progress_percent("weight", 90, 75, 80) == 100


def test_progress_when_start_equals_goal():
    assert goal_progress_percent("weight", 80, 80, 80) == 100
    assert goal_progress_percent("weight", 80, 79, 80) == 100
    assert goal_progress_percent("weight", 80, 82, 80) == 0
    assert goal_progress_percent("muscle_mass", 35, 34, 35) == 0


def test_measurements_round_trip(service):
    first = service.save_measurement(BodyMetrics(date="2024-05-01", weight=90, body_fat=20))
    service.save_measurement(BodyMetrics(date="2024-06-01", weight=85, body_fat=18))

    assert len(service.get_all_measurements()) == 2
    assert service.latest_measurement().metrics.date == "2024-06-01"
    assert service.oldest_measurement().id == first.id
    assert [m.metrics.date for m in service.get_measurements_by_date_range("2024-05-15", "2024-06-30")] == [
        "2024-06-01"
    ]


def test_update_and_delete_measurement(service):
    record = service.save_measurement(BodyMetrics(date="2024-05-01", weight=90))

    updated = service.update_measurement(record.id, BodyMetrics(date="2024-05-01", weight=89))
    assert updated.metrics.weight == 89
    assert service.update_measurement("missing", BodyMetrics(date="2024-05-01")) is None

    assert service.delete_measurement(record.id) is True
    assert service.delete_measurement(record.id) is False
    assert service.latest_measurement() is None


def test_calculate_progress(service):
    service.save_goals(BodyCompositionGoals(weight=80, body_fat=15, muscle_mass=40))
    service.save_measurement(BodyMetrics(date="2024-05-01", weight=90, body_fat=20))
    service.save_measurement(BodyMetrics(date="2024-06-01", weight=87, body_fat=18))

    progress = service.calculate_progress()

    assert progress == {"weight": 30.0, "body_fat": 40.0}


def test_calculate_progress_without_measurements(service):
    service.save_goals(BodyCompositionGoals(weight=80))

    assert service.calculate_progress() == {}


def test_goals_default_when_missing_or_corrupt(service, kv):
    assert service.get_goals() == BodyCompositionGoals()

    kv.set("coachpilot_body_goals", "not json")
    assert service.get_goals() == BodyCompositionGoals()
