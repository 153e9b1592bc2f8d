"""
CoachPilot AI - Body Composition Service

Stores body-composition measurements and goals on the key-value store and
derives goal progress for the recommendation engine.
"""

import json
import logging
from typing import Optional
from uuid import uuid4

from pydantic import TypeAdapter, ValidationError

from coachpilot.core.kv_store import KeyValueStore, StorageError
from coachpilot.core.models import (
    BodyCompositionData,
    BodyCompositionGoals,
    BodyMetrics,
    utc_now,
)

logger = logging.getLogger(__name__)

# Metrics where a lower value means progress
LOWER_IS_BETTER = {"weight", "body_fat", "waist_circumference", "visceral_fat"}

PROGRESS_METRICS = ["weight", "body_fat", "muscle_mass", "waist_circumference", "visceral_fat", "bmr"]

_measurements_adapter = TypeAdapter(list[BodyCompositionData])


def goal_progress_percent(
    metric: str,
    start_value: float,
    current_value: float,
    goal_value: float,
) -> float:
    """
    Goal-direction-aware progress from start towards goal, clamped to 0-100.

    When the start already equals the goal there is no distance to cover:
    progress is 100 if the current value meets the goal, else 0.
    """
    lower_is_better = metric in LOWER_IS_BETTER

    if lower_is_better:
        total_change = start_value - goal_value
        current_change = start_value - current_value
    else:
        total_change = goal_value - start_value
        current_change = current_value - start_value

    if total_change == 0:
        meets_goal = current_value <= goal_value if lower_is_better else current_value >= goal_value
        return 100.0 if meets_goal else 0.0

    return max(0.0, min(100.0, current_change / total_change * 100))


class BodyCompositionService:
    """
    Measurement history and goals for one user.

    Example:
        service = BodyCompositionService(kv)
        service.save_measurement(BodyMetrics(date="2024-01-14", weight=82.0))
        service.calculate_progress()
    """

    def __init__(self, kv: KeyValueStore, measurements_key: str, goals_key: str):
        self.kv = kv
        self.measurements_key = measurements_key
        self.goals_key = goals_key

    # === Measurements ===

    def get_all_measurements(self) -> list[BodyCompositionData]:
        try:
            raw = self.kv.get(self.measurements_key)
            if raw is None:
                return []
            return _measurements_adapter.validate_python(json.loads(raw))
        except (StorageError, json.JSONDecodeError, ValidationError) as e:
            logger.error(f"Error loading measurements: {e}")
            return []

    def get_measurements_by_date_range(self, start_date: str, end_date: str) -> list[BodyCompositionData]:
        return [
            m for m in self.get_all_measurements()
            if start_date <= m.metrics.date <= end_date
        ]

    def latest_measurement(self) -> Optional[BodyCompositionData]:
        measurements = self.get_all_measurements()
        if not measurements:
            return None
        return max(measurements, key=lambda m: m.metrics.date)

    def oldest_measurement(self) -> Optional[BodyCompositionData]:
        measurements = self.get_all_measurements()
        if not measurements:
            return None
        return min(measurements, key=lambda m: m.metrics.date)

    def save_measurement(self, metrics: BodyMetrics, user_id: str = "current_user") -> BodyCompositionData:
        """Append a measurement and return the stored record."""
        measurements = self.get_all_measurements()
        now = utc_now()
        record = BodyCompositionData(
            id=uuid4().hex,
            user_id=user_id,
            metrics=metrics,
            created_at=now,
            updated_at=now,
        )
        measurements.append(record)
        self._save_measurements(measurements)
        logger.info(f"Saved measurement {record.id} for {metrics.date}")
        return record

    def update_measurement(self, measurement_id: str, metrics: BodyMetrics) -> Optional[BodyCompositionData]:
        measurements = self.get_all_measurements()
        for index, measurement in enumerate(measurements):
            if measurement.id == measurement_id:
                measurements[index] = measurement.model_copy(
                    update={"metrics": metrics, "updated_at": utc_now()}
                )
                self._save_measurements(measurements)
                return measurements[index]
        return None

    def delete_measurement(self, measurement_id: str) -> bool:
        measurements = self.get_all_measurements()
        remaining = [m for m in measurements if m.id != measurement_id]
        if len(remaining) == len(measurements):
            return False
        self._save_measurements(remaining)
        return True

    def _save_measurements(self, measurements: list[BodyCompositionData]):
        try:
            payload = json.dumps(_measurements_adapter.dump_python(measurements, mode="json"))
            self.kv.set(self.measurements_key, payload)
        except (StorageError, TypeError, ValueError) as e:
            logger.error(f"Error saving measurements: {e}")

    # === Goals ===

    def get_goals(self) -> BodyCompositionGoals:
        try:
            raw = self.kv.get(self.goals_key)
            if raw is None:
                return BodyCompositionGoals()
            return BodyCompositionGoals.model_validate_json(raw)
        except (StorageError, ValidationError) as e:
            logger.error(f"Error loading body-composition goals: {e}")
            return BodyCompositionGoals()

    def save_goals(self, goals: BodyCompositionGoals):
        try:
            self.kv.set(self.goals_key, goals.model_dump_json())
        except StorageError as e:
            logger.error(f"Error saving body-composition goals: {e}")

    # === Progress ===

    def calculate_progress(self) -> dict[str, float]:
        """
        Progress percentage per goal metric, measured from the oldest
        measurement towards the goal.

        Metrics without a goal, without a current value or without a
        starting value are left out.
        """
        goals = self.get_goals()
        latest = self.latest_measurement()
        oldest = self.oldest_measurement()

        if not latest or not oldest:
            return {}

        progress: dict[str, float] = {}
        for metric in PROGRESS_METRICS:
            goal_value = getattr(goals, metric)
            current_value = getattr(latest.metrics, metric)
            start_value = getattr(oldest.metrics, metric)
            if not goal_value or not current_value or not start_value:
                continue
            progress[metric] = round(
                goal_progress_percent(metric, start_value, current_value, goal_value), 1
            )

        return progress
