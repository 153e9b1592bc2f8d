"""
CoachPilot AI - Insight Rule Families

Threshold rules that turn a UserDataProfile into candidate insights.
Each family covers one domain and can be called on its own. Every rule maps
one condition to one insight; rules never suppress each other, so related
rules (sleep duration and sleep quality) fire independently.

A rule whose input is missing from the profile does not fire.
"""

import logging
from datetime import datetime
from statistics import mean
from typing import Any, Callable, Optional
from uuid import uuid4

from coachpilot.core.models import (
    DataPoint,
    FitnessLevel,
    Insight,
    InsightCategory,
    InsightPriority,
    ProgressTrend,
    Trend,
    UserDataProfile,
    utc_now,
)

logger = logging.getLogger(__name__)


# Thresholds
MIN_WEEKLY_SESSIONS = 3
MIN_TRAINING_CONSISTENCY = 70
MAX_SESSION_DURATION_MIN = 90
MIN_PROTEIN_PERCENT = 25
MIN_HYDRATION_LEVEL = 80
MIN_DAILY_CALORIES = 1500
MIN_SLEEP_HOURS = 7
MIN_SLEEP_QUALITY = 70
MAX_STRESS_LEVEL = 70
GOAL_ACHIEVEMENT_PROGRESS = 80
HIGH_CONSISTENCY = 85


# Static templates per rule: classification, copy, and action steps
INSIGHT_RULES: dict[str, dict[str, Any]] = {
    # Training
    "training_frequency": {
        "category": InsightCategory.TRAINING,
        "priority": InsightPriority.HIGH,
        "confidence": 85,
        "title": "Increase your training frequency",
        "message": (
            "You currently train {sessions}x per week. "
            "For optimal results, 3-4x per week is recommended."
        ),
        "action_items": [
            "Plan 1-2 extra training sessions this week",
            "Start with shorter sessions (30-45 min) if time is an issue",
            "Consider home workouts for extra flexibility",
        ],
        "icon": "💪",
        "color": "orange",
    },
    "training_consistency": {
        "category": InsightCategory.TRAINING,
        "priority": InsightPriority.MEDIUM,
        "confidence": 78,
        "title": "Improve your training consistency",
        "message": "Your training consistency is {consistency}%. Regularity is crucial for progress.",
        "action_items": [
            "Plan your workouts in advance in your calendar",
            "Set realistic goals and build up slowly",
            "Find a training partner for extra motivation",
        ],
        "icon": "📅",
        "color": "blue",
    },
    "session_duration": {
        "category": InsightCategory.TRAINING,
        "priority": InsightPriority.MEDIUM,
        "confidence": 72,
        "title": "Optimize your training length",
        "message": (
            "Your average session lasts {duration} minutes. "
            "Shorter, more intense workouts can be more effective."
        ),
        "action_items": [
            "Focus on compound exercises for more efficiency",
            "Reduce rest periods between sets",
            "Try HIIT workouts of 45-60 minutes",
        ],
        "icon": "⏱️",
        "color": "yellow",
    },
    # Nutrition
    "protein_intake": {
        "category": InsightCategory.NUTRITION,
        "priority": InsightPriority.HIGH,
        "confidence": 88,
        "title": "Increase your protein intake",
        "message": (
            "Your protein intake is {protein}% of your total calories. "
            "For muscle maintenance and building, 25-30% is recommended."
        ),
        "action_items": [
            "Add a protein source to every meal",
            "Consider a protein shake after your workout",
            "Choose lean meats, fish, eggs and legumes",
        ],
        "icon": "🥩",
        "color": "red",
    },
    "hydration": {
        "category": InsightCategory.NUTRITION,
        "priority": InsightPriority.MEDIUM,
        "confidence": 82,
        "title": "Improve your hydration",
        "message": (
            "Your hydration level is {hydration}%. "
            "Good hydration is essential for performance and recovery."
        ),
        "action_items": [
            "Drink 2-3 liters of water per day",
            "Start each day with a glass of water",
            "Drink extra water around your workouts",
        ],
        "icon": "💧",
        "color": "blue",
    },
    "calorie_intake": {
        "category": InsightCategory.NUTRITION,
        "priority": InsightPriority.CRITICAL,
        "confidence": 90,
        "title": "Too low calorie intake",
        "message": "Your average daily intake of {calories} kcal may be too low for your goals.",
        "action_items": [
            "Consult a nutritionist",
            "Add healthy, calorie-rich snacks",
            "Monitor your energy levels and performance",
        ],
        "icon": "⚠️",
        "color": "red",
    },
    # Recovery
    "sleep_duration": {
        "category": InsightCategory.RECOVERY,
        "priority": InsightPriority.HIGH,
        "confidence": 92,
        "title": "Increase your sleep time",
        "message": (
            "You sleep an average of {hours} hours per night. "
            "For optimal recovery, 7-9 hours is recommended."
        ),
        "action_items": [
            "Go to bed 30 minutes earlier",
            "Create a consistent sleep routine",
            "Avoid screens 1 hour before bedtime",
        ],
        "icon": "😴",
        "color": "purple",
    },
    "sleep_quality": {
        "category": InsightCategory.RECOVERY,
        "priority": InsightPriority.MEDIUM,
        "confidence": 75,
        "title": "Improve your sleep quality",
        "message": (
            "Your sleep quality score is {quality}%. "
            "Better sleep quality improves recovery and performance."
        ),
        "action_items": [
            "Keep your bedroom cool (16-19°C)",
            "Invest in a good mattress and pillow",
            "Try meditation or relaxation techniques",
        ],
        "icon": "🛏️",
        "color": "blue",
    },
    "stress_management": {
        "category": InsightCategory.RECOVERY,
        "priority": InsightPriority.HIGH,
        "confidence": 80,
        "title": "Manage your stress level",
        "message": (
            "Your stress level is {stress}%. "
            "Chronic stress can negatively affect your fitness results."
        ),
        "action_items": [
            "Try 10 minutes of meditation daily",
            "Plan conscious relaxation moments",
            "Consider yoga or breathing exercises",
        ],
        "icon": "🧘",
        "color": "green",
    },
    # Body composition
    "progress_trend": {
        "category": InsightCategory.BODY_COMPOSITION,
        "priority": InsightPriority.HIGH,
        "confidence": 85,
        "title": "Your progress is stagnating",
        "message": "Your body composition shows a declining trend. It's time to adjust your approach.",
        "action_items": [
            "Evaluate your current training and nutrition plan",
            "Consider a deload week for recovery",
            "Vary your training routine to break plateaus",
        ],
        "icon": "📉",
        "color": "red",
    },
    "goal_achievement": {
        "category": InsightCategory.BODY_COMPOSITION,
        "priority": InsightPriority.LOW,
        "confidence": 95,
        "title": "Great progress!",
        "message": "You have achieved an average of {progress}% of your goals. Keep going!",
        "action_items": [
            "Consider setting new, more challenging goals",
            "Share your success with others for extra motivation",
            "Reward yourself for your hard work",
        ],
        "icon": "🎉",
        "color": "green",
    },
    # General
    "beginner_guidance": {
        "category": InsightCategory.GENERAL,
        "priority": InsightPriority.MEDIUM,
        "confidence": 88,
        "title": "Welcome to your fitness journey!",
        "message": "As a beginner, it's important to build up slowly and let your body adapt.",
        "action_items": [
            "Start with 2-3 workouts per week",
            "Focus on learning the correct techniques",
            "Listen to your body and take sufficient rest",
        ],
        "icon": "🌱",
        "color": "green",
    },
    "motivation_high": {
        "category": InsightCategory.GENERAL,
        "priority": InsightPriority.LOW,
        "confidence": 90,
        "title": "You are an example of consistency!",
        "message": "With {consistency}% consistency, you are on the right track to your goals.",
        "action_items": [
            "Keep maintaining your current routine",
            "Inspire others with your discipline",
            "Consider expanding your goals",
        ],
        "icon": "🏆",
        "color": "gold",
    },
}


def make_item_id(rule_id: str, now: datetime) -> str:
    """'<rule>_<epoch ms>_<random hex>' so items from one millisecond never collide."""
    return f"{rule_id}_{int(now.timestamp() * 1000)}_{uuid4().hex[:8]}"


def _fmt(value: float) -> str:
    """Render 2.0 as '2' and 6.8 as '6.8'."""
    return f"{value:g}"


def build_insight(
    rule_id: str,
    now: datetime,
    data_points: Optional[list[DataPoint]] = None,
    **message_values: Any,
) -> Insight:
    """Instantiate the template of rule_id."""
    template = INSIGHT_RULES[rule_id]
    return Insight(
        id=make_item_id(rule_id, now),
        category=template["category"],
        priority=template["priority"],
        title=template["title"],
        message=template["message"].format(**message_values),
        action_items=list(template["action_items"]),
        data_points=data_points or [],
        confidence=template["confidence"],
        generated_at=now,
        icon=template["icon"],
        color=template["color"],
    )


# === Rule Families ===

def training_insights(profile: UserDataProfile, now: Optional[datetime] = None) -> list[Insight]:
    now = now or utc_now()
    insights = []

    sessions = profile.weekly_training_sessions
    if sessions is not None and sessions < MIN_WEEKLY_SESSIONS:
        insights.append(build_insight(
            "training_frequency", now,
            data_points=[
                DataPoint(label="Current frequency", value=f"{_fmt(sessions)}x/week"),
                DataPoint(label="Recommended", value="3-4x/week"),
            ],
            sessions=_fmt(sessions),
        ))

    consistency = profile.training_consistency
    if consistency is not None and consistency < MIN_TRAINING_CONSISTENCY:
        insights.append(build_insight(
            "training_consistency", now,
            data_points=[DataPoint(label="Consistency", value=f"{_fmt(consistency)}%")],
            consistency=_fmt(consistency),
        ))

    duration = profile.average_session_duration
    if duration is not None and duration > MAX_SESSION_DURATION_MIN:
        insights.append(build_insight(
            "session_duration", now,
            data_points=[
                DataPoint(label="Average session", value=f"{_fmt(duration)} min"),
                DataPoint(label="Recommended", value="45-60 min"),
            ],
            duration=_fmt(duration),
        ))

    return insights


def nutrition_insights(profile: UserDataProfile, now: Optional[datetime] = None) -> list[Insight]:
    now = now or utc_now()
    insights = []

    if profile.macro_balance is not None:
        protein = profile.macro_balance.protein
        if protein < MIN_PROTEIN_PERCENT:
            insights.append(build_insight(
                "protein_intake", now,
                data_points=[
                    DataPoint(label="Current protein", value=f"{_fmt(protein)}%"),
                    DataPoint(label="Recommended", value="25-30%"),
                ],
                protein=_fmt(protein),
            ))

    hydration = profile.hydration_level
    if hydration is not None and hydration < MIN_HYDRATION_LEVEL:
        insights.append(build_insight(
            "hydration", now,
            data_points=[DataPoint(label="Hydration", value=f"{_fmt(hydration)}%")],
            hydration=_fmt(hydration),
        ))

    calories = profile.average_daily_calories
    if calories is not None and calories < MIN_DAILY_CALORIES:
        insights.append(build_insight(
            "calorie_intake", now,
            data_points=[
                DataPoint(label="Average intake", value=f"{_fmt(calories)} kcal", trend=Trend.DOWN),
                DataPoint(label="Minimum", value=f"{MIN_DAILY_CALORIES} kcal"),
            ],
            calories=_fmt(calories),
        ))

    return insights


def recovery_insights(profile: UserDataProfile, now: Optional[datetime] = None) -> list[Insight]:
    now = now or utc_now()
    insights = []

    hours = profile.average_sleep_hours
    if hours is not None and hours < MIN_SLEEP_HOURS:
        insights.append(build_insight(
            "sleep_duration", now,
            data_points=[
                DataPoint(label="Current sleep", value=f"{_fmt(hours)}h"),
                DataPoint(label="Recommended", value="7-9h"),
            ],
            hours=_fmt(hours),
        ))

    quality = profile.sleep_quality
    if quality is not None and quality < MIN_SLEEP_QUALITY:
        insights.append(build_insight(
            "sleep_quality", now,
            data_points=[DataPoint(label="Sleep quality", value=f"{_fmt(quality)}%")],
            quality=_fmt(quality),
        ))

    stress = profile.stress_level
    if stress is not None and stress > MAX_STRESS_LEVEL:
        insights.append(build_insight(
            "stress_management", now,
            data_points=[DataPoint(label="Stress level", value=f"{_fmt(stress)}%", trend=Trend.UP)],
            stress=_fmt(stress),
        ))

    return insights


def body_composition_insights(profile: UserDataProfile, now: Optional[datetime] = None) -> list[Insight]:
    """Needs a latest measurement; without one this family yields nothing."""
    if profile.latest_measurements is None:
        return []

    now = now or utc_now()
    insights = []

    if profile.progress_trend == ProgressTrend.DECLINING:
        insights.append(build_insight(
            "progress_trend", now,
            data_points=[DataPoint(label="Trend", value="declining", trend=Trend.DOWN)],
        ))

    if profile.goal_progress:
        avg_progress = mean(profile.goal_progress.values())
        if avg_progress > GOAL_ACHIEVEMENT_PROGRESS:
            insights.append(build_insight(
                "goal_achievement", now,
                data_points=[
                    DataPoint(label=metric, value=round(value, 1))
                    for metric, value in profile.goal_progress.items()
                ],
                progress=round(avg_progress),
            ))

    return insights


def general_insights(profile: UserDataProfile, now: Optional[datetime] = None) -> list[Insight]:
    now = now or utc_now()
    insights = []

    if profile.fitness_level == FitnessLevel.BEGINNER:
        insights.append(build_insight("beginner_guidance", now))

    if profile.training_consistency is not None and profile.nutrition_consistency is not None:
        overall = (profile.training_consistency + profile.nutrition_consistency) / 2
        if overall > HIGH_CONSISTENCY:
            insights.append(build_insight(
                "motivation_high", now,
                data_points=[
                    DataPoint(label="Training consistency", value=f"{_fmt(profile.training_consistency)}%"),
                    DataPoint(label="Nutrition consistency", value=f"{_fmt(profile.nutrition_consistency)}%"),
                ],
                consistency=round(overall),
            ))

    return insights


INSIGHT_RULE_FAMILIES: list[Callable[[UserDataProfile, Optional[datetime]], list[Insight]]] = [
    training_insights,
    nutrition_insights,
    recovery_insights,
    body_composition_insights,
    general_insights,
]


def evaluate_insights(profile: UserDataProfile, now: Optional[datetime] = None) -> list[Insight]:
    """
    Run every family against profile, in family order.

    The result is unranked; all items share the same generated_at.
    """
    now = now or utc_now()
    candidates: list[Insight] = []
    for family in INSIGHT_RULE_FAMILIES:
        fired = family(profile, now)
        if fired:
            logger.debug(f"{family.__name__}: {[i.rule_id for i in fired]}")
        candidates.extend(fired)
    return candidates
