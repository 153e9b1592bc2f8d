"""
CoachPilot AI - Coaching Data Models

Defines the data structures exchanged by the recommendation engine:
- User data profile (training, nutrition, recovery, body composition)
- Goal preferences that gate goal suggestions
- Body-composition measurements and goals
- Generated insights and goal suggestions
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utc_now() -> datetime:
    """Timezone-aware current time used for every generated timestamp."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so they compare with aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class CamelModel(BaseModel):
    """Accepts both snake_case names and the dashboard's camelCase keys."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# === Enumerations ===

class InsightCategory(str, Enum):
    """Domain an insight belongs to."""
    TRAINING = "training"
    NUTRITION = "nutrition"
    RECOVERY = "recovery"
    BODY_COMPOSITION = "body_composition"
    GENERAL = "general"


class InsightPriority(str, Enum):
    """Urgency tiers for insights."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class SuggestionCategory(str, Enum):
    """Domain a goal suggestion belongs to (no 'general' goals)."""
    TRAINING = "training"
    NUTRITION = "nutrition"
    RECOVERY = "recovery"
    BODY_COMPOSITION = "body_composition"


class SuggestionPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class Timeframe(str, Enum):
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"


class Trend(str, Enum):
    """Direction marker on a data point."""
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


class ProgressTrend(str, Enum):
    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"


class FitnessLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class MotivationStyle(str, Enum):
    """How a user prefers to be coached in insights."""
    ENCOURAGING = "encouraging"
    CHALLENGING = "challenging"
    ANALYTICAL = "analytical"


class TimeCommitment(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class GoalPace(str, Enum):
    """How aggressively a user wants to pursue goals."""
    GRADUAL = "gradual"
    AGGRESSIVE = "aggressive"
    BALANCED = "balanced"


# === Body Composition ===

class BodyMetrics(CamelModel):
    """A single dated body-composition measurement."""
    date: str = Field(..., description="Measurement date (YYYY-MM-DD)")
    weight: Optional[float] = Field(default=None, gt=0, description="Body weight in kg")
    body_fat: Optional[float] = Field(default=None, ge=0, le=100, description="Body fat percentage")
    muscle_mass: Optional[float] = Field(default=None, ge=0, description="Muscle mass in kg")
    waist_circumference: Optional[float] = Field(default=None, ge=0, description="Waist in cm")
    visceral_fat: Optional[float] = Field(default=None, ge=0, description="Visceral fat rating")
    bmr: Optional[float] = Field(default=None, ge=0, description="Basal metabolic rate in kcal")
    water_percentage: Optional[float] = Field(default=None, ge=0, le=100)
    bone_mass: Optional[float] = Field(default=None, ge=0)
    notes: Optional[str] = None


class BodyCompositionData(CamelModel):
    """A stored measurement with its bookkeeping fields."""
    id: str
    user_id: str = Field(default="current_user")
    metrics: BodyMetrics
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class BodyCompositionGoals(CamelModel):
    """Target values for body-composition metrics."""
    weight: Optional[float] = None
    body_fat: Optional[float] = None
    muscle_mass: Optional[float] = None
    waist_circumference: Optional[float] = None
    visceral_fat: Optional[float] = None
    bmr: Optional[float] = None
    target_date: Optional[str] = None


# === User Data Profile ===

class MacroBalance(CamelModel):
    """Share of total calories per macronutrient (percent)."""
    protein: float = Field(..., ge=0, le=100)
    carbs: float = Field(..., ge=0, le=100)
    fat: float = Field(..., ge=0, le=100)


class UserPreferences(CamelModel):
    focus_areas: list[str] = Field(default_factory=list)
    avoidance_list: list[str] = Field(default_factory=list)
    motivation_style: MotivationStyle = MotivationStyle.ENCOURAGING


class UserDataProfile(CamelModel):
    """
    Normalized snapshot of a user's behaviour.

    Every observation is optional so partial profiles validate; rules that
    need a missing observation simply do not fire.
    """
    # Training data
    weekly_training_sessions: Optional[float] = Field(default=None, ge=0)
    average_session_duration: Optional[float] = Field(default=None, ge=0, description="Minutes")
    preferred_training_time: Optional[str] = None
    training_consistency: Optional[float] = Field(default=None, ge=0, le=100)
    last_training_date: Optional[str] = None

    # Nutrition data
    average_daily_calories: Optional[float] = Field(default=None, ge=0)
    macro_balance: Optional[MacroBalance] = None
    hydration_level: Optional[float] = Field(default=None, ge=0, le=100)
    nutrition_consistency: Optional[float] = Field(default=None, ge=0, le=100)

    # Recovery data
    average_sleep_hours: Optional[float] = Field(default=None, ge=0, le=24)
    sleep_quality: Optional[float] = Field(default=None, ge=0, le=100)
    stress_level: Optional[float] = Field(default=None, ge=0, le=100)
    rest_days: Optional[int] = Field(default=None, ge=0, le=7)

    # Body composition data
    latest_measurements: Optional[BodyCompositionData] = None
    progress_trend: Optional[ProgressTrend] = None
    goal_progress: dict[str, float] = Field(
        default_factory=dict,
        description="Progress percentage per body-composition goal (0-100)"
    )

    # General profile
    fitness_level: Optional[FitnessLevel] = None
    primary_goals: list[str] = Field(default_factory=list)
    preferences: UserPreferences = Field(default_factory=UserPreferences)


class UserGoalPreferences(CamelModel):
    """What the user wants goal suggestions for."""
    primary_focus: list[str] = Field(default_factory=list)
    time_commitment: TimeCommitment = TimeCommitment.MEDIUM
    experience_level: FitnessLevel = FitnessLevel.INTERMEDIATE
    specific_targets: dict[str, float] = Field(default_factory=dict)
    avoidance_list: list[str] = Field(default_factory=list)
    motivation_style: GoalPace = GoalPace.BALANCED


# === Generated Items ===

class DataPoint(BaseModel):
    """Label/value pair shown next to an insight."""
    label: str
    value: Union[float, int, str]
    trend: Optional[Trend] = None


class Insight(BaseModel):
    """A generated, time-bound recommendation."""
    id: str = Field(..., description="Unique per item, prefixed with the rule id")
    category: InsightCategory
    priority: InsightPriority
    title: str
    message: str
    action_items: list[str] = Field(default_factory=list)
    data_points: list[DataPoint] = Field(default_factory=list)
    confidence: int = Field(..., ge=0, le=100)
    generated_at: datetime = Field(default_factory=utc_now)
    expires_at: Optional[datetime] = None
    icon: str = ""
    color: str = ""

    @property
    def rule_id(self) -> str:
        """Rule name the id was derived from."""
        return rule_id_from_item_id(self.id)


class GoalSuggestion(BaseModel):
    """A generated candidate goal with a numeric target."""
    id: str
    category: SuggestionCategory
    title: str
    description: str
    target_value: float
    current_value: float
    unit: str
    timeframe: Timeframe
    difficulty: Difficulty
    priority: SuggestionPriority
    reasoning: str = ""
    action_steps: list[str] = Field(default_factory=list)
    estimated_impact: Optional[str] = None
    prerequisites: Optional[list[str]] = None
    related_insights: list[str] = Field(
        default_factory=list,
        description="Ids of prior insights raised by the same rule"
    )
    icon: str = ""
    color: str = ""
    confidence: int = Field(..., ge=0, le=100)
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def rule_id(self) -> str:
        return rule_id_from_item_id(self.id)


class InsightSummary(BaseModel):
    """Aggregate statistics over the stored insights."""
    total: int = 0
    by_category: dict[str, int] = Field(default_factory=dict)
    by_priority: dict[str, int] = Field(default_factory=dict)
    average_confidence: int = 0


def rule_id_from_item_id(item_id: str) -> str:
    """
    Strip the '_<millis>_<hex>' suffix from a generated id.

    'training_frequency_1718000000000_a1b2c3' -> 'training_frequency'
    """
    parts = item_id.rsplit("_", 2)
    if len(parts) == 3 and parts[1].isdigit():
        return parts[0]
    return item_id
