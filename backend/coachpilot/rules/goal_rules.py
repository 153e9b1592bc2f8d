"""
CoachPilot AI - Goal Suggestion Rule Families

Turns UserGoalPreferences (plus optional body-composition data) into
candidate goals. Each rule serves a set of focus areas and is only emitted
when the user's primary_focus includes one of them. Body-composition rules
additionally need a measurement.

Numbers are taken from preferences and measurements as-is; the only
derivations are the weight delta (wording, timeframe, difficulty) and the
body-fat step-down target.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Optional

from coachpilot.core.models import (
    BodyCompositionData,
    Difficulty,
    FitnessLevel,
    GoalSuggestion,
    Insight,
    SuggestionCategory,
    SuggestionPriority,
    TimeCommitment,
    Timeframe,
    UserGoalPreferences,
    rule_id_from_item_id,
    utc_now,
)
from coachpilot.rules.insight_rules import make_item_id

logger = logging.getLogger(__name__)


TRAINING_SESSIONS_BY_COMMITMENT: dict[TimeCommitment, int] = {
    TimeCommitment.HIGH: 5,
    TimeCommitment.MEDIUM: 4,
    TimeCommitment.LOW: 3,
}

# Weight delta (kg) beyond which the goal needs a quarter instead of a month
WEIGHT_QUARTER_THRESHOLD = 5
# Weight delta (kg) beyond which the goal is rated hard
WEIGHT_HARD_THRESHOLD = 10
# Body fat above this (%) targets a 3 point drop, otherwise 1 point
BODY_FAT_HIGH_THRESHOLD = 15


GOAL_RULES: dict[str, dict[str, Any]] = {
    # Training
    "training_frequency": {
        "category": SuggestionCategory.TRAINING,
        "focus_areas": {"strength", "general"},
        "priority": SuggestionPriority.HIGH,
        "confidence": 85,
        "title": "Increase training frequency",
        "description": "Increase your weekly training sessions for better results",
        "current_value": 2.5,
        "unit": "sessions/week",
        "timeframe": Timeframe.MONTH,
        "reasoning": (
            "Consistent training is the foundation of every fitness goal. "
            "More frequency leads to better results."
        ),
        "action_steps": [
            "Schedule your workouts in your calendar in advance",
            "Start with shorter sessions if time is an issue",
            "Find a training partner for extra motivation",
            "Begin with 1 extra session per week",
        ],
        "estimated_impact": "Expected 25-40% improvement in strength and conditioning within 8 weeks",
        "icon": "💪",
        "color": "orange",
    },
    "strength_progression": {
        "category": SuggestionCategory.TRAINING,
        "focus_areas": {"strength"},
        "priority": SuggestionPriority.MEDIUM,
        "confidence": 78,
        "title": "Increase compound lifts",
        "description": "Improve your squat, deadlift and bench press performance",
        "target_value": 10,
        "current_value": 0,
        "unit": "% improvement",
        "timeframe": Timeframe.QUARTER,
        "difficulty": Difficulty.MEDIUM,
        "reasoning": "Compound exercises are the basis of strength and muscle development.",
        "action_steps": [
            "Focus on perfect technique first",
            "Increase weight gradually (2.5-5 kg per week)",
            "Allow enough rest between sets",
            "Track your progression accurately",
        ],
        "estimated_impact": "10-15% strength improvement in 12 weeks",
        "prerequisites": ["Increase training frequency first"],
        "icon": "🏋️",
        "color": "red",
    },
    "cardio_endurance": {
        "category": SuggestionCategory.TRAINING,
        "focus_areas": {"cardio", "endurance"},
        "priority": SuggestionPriority.MEDIUM,
        "confidence": 82,
        "title": "Improve cardiovascular fitness",
        "description": "Increase your endurance and heart-rate recovery",
        "target_value": 30,
        "current_value": 20,
        "unit": "minutes continuous",
        "timeframe": Timeframe.MONTH,
        "difficulty": Difficulty.EASY,
        "reasoning": "Good cardiovascular fitness improves overall health and recovery.",
        "action_steps": [
            "Start with 20 minutes at moderate intensity",
            "Add 2-3 minutes every week",
            "Alternate between different forms of cardio",
            "Monitor your heart rate during training",
        ],
        "estimated_impact": "Better recovery and general fitness within 4 weeks",
        "icon": "🏃",
        "color": "blue",
    },
    # Nutrition
    "protein_intake": {
        "category": SuggestionCategory.NUTRITION,
        "focus_areas": {"nutrition", "general"},
        "priority": SuggestionPriority.HIGH,
        "confidence": 90,
        "title": "Increase protein intake",
        "description": "Reach an optimal protein intake for muscle maintenance and growth",
        "target_value": 2.0,
        "current_value": 1.4,
        "unit": "g/kg bodyweight",
        "timeframe": Timeframe.MONTH,
        "difficulty": Difficulty.EASY,
        "reasoning": "Adequate protein intake is essential for muscle repair and growth.",
        "action_steps": [
            "Add a protein source to every meal",
            "Consider a protein shake after training",
            "Choose lean meats, fish and legumes",
            "Plan your meals in advance",
        ],
        "estimated_impact": "Better recovery and muscle retention within 2 weeks",
        "icon": "🥩",
        "color": "green",
    },
    "hydration": {
        "category": SuggestionCategory.NUTRITION,
        "focus_areas": {"nutrition", "general"},
        "priority": SuggestionPriority.MEDIUM,
        "confidence": 85,
        "title": "Improve hydration",
        "description": "Drink enough water for optimal performance",
        "target_value": 3.0,
        "current_value": 2.2,
        "unit": "liters/day",
        "timeframe": Timeframe.WEEK,
        "difficulty": Difficulty.EASY,
        "reasoning": "Good hydration improves performance, recovery and overall health.",
        "action_steps": [
            "Start each day with a glass of water",
            "Drink water before, during and after training",
            "Use an app to track your water intake",
            "Keep water bottles in strategic places",
        ],
        "estimated_impact": "More energy and focus within 1 week",
        "icon": "💧",
        "color": "blue",
    },
    "meal_prep": {
        "category": SuggestionCategory.NUTRITION,
        "focus_areas": {"nutrition", "general"},
        "priority": SuggestionPriority.MEDIUM,
        "confidence": 75,
        "title": "Implement meal prep",
        "description": "Prepare your meals in advance for better consistency",
        "target_value": 80,
        "current_value": 20,
        "unit": "% of meals",
        "timeframe": Timeframe.MONTH,
        "difficulty": Difficulty.MEDIUM,
        "reasoning": "Meal prep creates consistency and helps reach nutrition goals.",
        "action_steps": [
            "Pick 1-2 days per week for meal prep",
            "Start by preparing 3 meals",
            "Invest in good containers",
            "Plan your meals a week ahead",
        ],
        "estimated_impact": "Better nutrition consistency and time savings",
        "icon": "🍱",
        "color": "purple",
    },
    # Recovery
    "sleep_duration": {
        "category": SuggestionCategory.RECOVERY,
        "focus_areas": {"recovery", "general"},
        "priority": SuggestionPriority.HIGH,
        "confidence": 88,
        "title": "Improve sleep",
        "description": "Reach 7-9 hours of quality sleep per night",
        "target_value": 8,
        "current_value": 6.8,
        "unit": "hours/night",
        "timeframe": Timeframe.MONTH,
        "difficulty": Difficulty.MEDIUM,
        "reasoning": "Quality sleep is crucial for recovery, hormonal balance and performance.",
        "action_steps": [
            "Create a consistent sleep routine",
            "Go to bed at the same time every evening",
            "Avoid screens 1 hour before bedtime",
            "Keep your bedroom cool and dark",
        ],
        "estimated_impact": "Better recovery and energy within 2 weeks",
        "icon": "😴",
        "color": "purple",
    },
    "stress_management": {
        "category": SuggestionCategory.RECOVERY,
        "focus_areas": {"recovery", "general"},
        "priority": SuggestionPriority.MEDIUM,
        "confidence": 80,
        "title": "Implement stress management",
        "description": "Add daily relaxation techniques to your routine",
        "target_value": 7,
        "current_value": 0,
        "unit": "days/week",
        "timeframe": Timeframe.MONTH,
        "difficulty": Difficulty.EASY,
        "reasoning": "Stress management improves recovery and overall health.",
        "action_steps": [
            "Begin with 5 minutes of meditation per day",
            "Try breathing exercises",
            "Plan conscious relaxation moments",
            "Consider yoga or tai chi",
        ],
        "estimated_impact": "Lower stress and better recovery within 3 weeks",
        "icon": "🧘",
        "color": "green",
    },
    # Body composition
    "weight_management": {
        "category": SuggestionCategory.BODY_COMPOSITION,
        "focus_areas": {"body_composition", "general"},
        "priority": SuggestionPriority.HIGH,
        "confidence": 85,
        "unit": "kg",
        "reasoning": "Gradual weight change is more sustainable and healthier.",
        "action_steps": [
            "Create a calorie deficit/surplus of 300-500 kcal",
            "Combine nutrition with training",
            "Monitor your progress weekly",
            "Adjust your plan based on results",
        ],
        "icon": "⚖️",
        "color": "orange",
    },
    "body_fat": {
        "category": SuggestionCategory.BODY_COMPOSITION,
        "focus_areas": {"body_composition", "general"},
        "priority": SuggestionPriority.MEDIUM,
        "confidence": 75,
        "title": "Reduce body fat percentage",
        "unit": "%",
        "timeframe": Timeframe.QUARTER,
        "difficulty": Difficulty.MEDIUM,
        "reasoning": "A lower body fat percentage improves health and body composition.",
        "action_steps": [
            "Combine strength and cardio training",
            "Create a moderate calorie deficit",
            "Focus on protein-rich nutrition",
            "Track progress with measurements",
        ],
        "prerequisites": ["Increase training frequency", "Increase protein intake"],
        "icon": "📉",
        "color": "red",
    },
}

_TEMPLATE_FIELDS = {
    "category", "priority", "confidence", "title", "description", "target_value",
    "current_value", "unit", "timeframe", "difficulty", "reasoning", "action_steps",
    "estimated_impact", "prerequisites", "icon", "color",
}


def wants(preferences: UserGoalPreferences, rule_id: str) -> bool:
    """True when the user's primary focus covers one of the rule's focus areas."""
    return bool(GOAL_RULES[rule_id]["focus_areas"] & set(preferences.primary_focus))


def related_insight_ids(rule_id: str, prior_insights: Optional[list[Insight]]) -> list[str]:
    return [i.id for i in prior_insights or [] if rule_id_from_item_id(i.id) == rule_id]


def build_suggestion(
    rule_id: str,
    now: datetime,
    prior_insights: Optional[list[Insight]] = None,
    **overrides: Any,
) -> GoalSuggestion:
    """Instantiate the template of rule_id, with computed fields in overrides."""
    fields = {k: v for k, v in GOAL_RULES[rule_id].items() if k in _TEMPLATE_FIELDS}
    fields.update(overrides)
    for key in ("action_steps", "prerequisites"):
        if fields.get(key) is not None:
            fields[key] = list(fields[key])
    return GoalSuggestion(
        id=make_item_id(rule_id, now),
        related_insights=related_insight_ids(rule_id, prior_insights),
        created_at=now,
        **fields,
    )


# === Rule Families ===

def training_goals(
    preferences: UserGoalPreferences,
    prior_insights: Optional[list[Insight]] = None,
    now: Optional[datetime] = None,
) -> list[GoalSuggestion]:
    now = now or utc_now()
    goals = []

    if wants(preferences, "training_frequency"):
        goals.append(build_suggestion(
            "training_frequency", now, prior_insights,
            target_value=TRAINING_SESSIONS_BY_COMMITMENT[preferences.time_commitment],
            difficulty=(
                Difficulty.EASY
                if preferences.experience_level == FitnessLevel.BEGINNER
                else Difficulty.MEDIUM
            ),
        ))

    if wants(preferences, "strength_progression"):
        goals.append(build_suggestion("strength_progression", now, prior_insights))

    if wants(preferences, "cardio_endurance"):
        goals.append(build_suggestion("cardio_endurance", now, prior_insights))

    return goals


def nutrition_goals(
    preferences: UserGoalPreferences,
    prior_insights: Optional[list[Insight]] = None,
    now: Optional[datetime] = None,
) -> list[GoalSuggestion]:
    now = now or utc_now()
    goals = []

    if wants(preferences, "protein_intake"):
        goals.append(build_suggestion("protein_intake", now, prior_insights))

    if wants(preferences, "hydration"):
        goals.append(build_suggestion("hydration", now, prior_insights))

    if wants(preferences, "meal_prep") and preferences.time_commitment in (
        TimeCommitment.MEDIUM,
        TimeCommitment.HIGH,
    ):
        goals.append(build_suggestion("meal_prep", now, prior_insights))

    return goals


def recovery_goals(
    preferences: UserGoalPreferences,
    prior_insights: Optional[list[Insight]] = None,
    now: Optional[datetime] = None,
) -> list[GoalSuggestion]:
    now = now or utc_now()
    goals = []

    if wants(preferences, "sleep_duration"):
        goals.append(build_suggestion("sleep_duration", now, prior_insights))

    if wants(preferences, "stress_management"):
        goals.append(build_suggestion("stress_management", now, prior_insights))

    return goals


def body_composition_goals(
    preferences: UserGoalPreferences,
    prior_insights: Optional[list[Insight]] = None,
    body_data: Optional[BodyCompositionData] = None,
    now: Optional[datetime] = None,
) -> list[GoalSuggestion]:
    """Needs a measurement; without body_data this family yields nothing."""
    if body_data is None:
        return []

    now = now or utc_now()
    goals = []
    metrics = body_data.metrics

    target_weight = preferences.specific_targets.get("weight")
    if wants(preferences, "weight_management") and target_weight and metrics.weight:
        current_weight = metrics.weight
        delta = round(target_weight - current_weight, 1)
        long_goal = abs(delta) > WEIGHT_QUARTER_THRESHOLD
        goals.append(build_suggestion(
            "weight_management", now, prior_insights,
            title="Healthy weight gain" if delta > 0 else "Healthy weight loss",
            description=f"Reach your target weight of {target_weight:g} kg in a healthy way",
            target_value=target_weight,
            current_value=current_weight,
            timeframe=Timeframe.QUARTER if long_goal else Timeframe.MONTH,
            difficulty=Difficulty.HARD if abs(delta) > WEIGHT_HARD_THRESHOLD else Difficulty.MEDIUM,
            estimated_impact=f"{abs(delta):g} kg weight change in {12 if long_goal else 8} weeks",
        ))

    if wants(preferences, "body_fat") and metrics.body_fat:
        current_bf = metrics.body_fat
        target_bf = round(current_bf - 3 if current_bf > BODY_FAT_HIGH_THRESHOLD else current_bf - 1, 1)
        goals.append(build_suggestion(
            "body_fat", now, prior_insights,
            description=f"Lower your body fat percentage from {current_bf:g}% to {target_bf:g}%",
            target_value=target_bf,
            current_value=current_bf,
            estimated_impact=f"{round(current_bf - target_bf, 1):g}% body fat reduction in 12 weeks",
        ))

    return goals


GOAL_RULE_FAMILIES: list[Callable[..., list[GoalSuggestion]]] = [
    training_goals,
    nutrition_goals,
    recovery_goals,
]


def evaluate_goal_suggestions(
    preferences: UserGoalPreferences,
    prior_insights: Optional[list[Insight]] = None,
    body_data: Optional[BodyCompositionData] = None,
    now: Optional[datetime] = None,
) -> list[GoalSuggestion]:
    """Run every family in order; the result is unranked."""
    now = now or utc_now()
    candidates: list[GoalSuggestion] = []
    for family in GOAL_RULE_FAMILIES:
        candidates.extend(family(preferences, prior_insights, now))
    candidates.extend(body_composition_goals(preferences, prior_insights, body_data, now))
    logger.debug(f"Goal rules fired: {[s.rule_id for s in candidates]}")
    return candidates
