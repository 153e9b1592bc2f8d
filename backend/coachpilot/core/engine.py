"""
CoachPilot AI - Coaching Engine

The central coordinator of a recommendation pass. Pulls the user snapshot
from the profile provider, runs the rule families, ranks the candidates and
commits the batch to its lifecycle store with a single save.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from opik import track

from coachpilot.config import Settings, get_settings
from coachpilot.core.body_composition import BodyCompositionService
from coachpilot.core.kv_store import InMemoryKeyValueStore, JsonFileKeyValueStore, KeyValueStore
from coachpilot.core.models import (
    BodyCompositionData,
    GoalSuggestion,
    Insight,
    UserDataProfile,
    UserGoalPreferences,
    utc_now,
)
from coachpilot.core.profile_provider import GoalPreferencesRepository, UserProfileProvider
from coachpilot.core.query import InsightQueryFacade, QueryFacade
from coachpilot.core.ranking import rank_insights, rank_suggestions
from coachpilot.core.storage import InsightStore, SuggestionStore
from coachpilot.rules import evaluate_goal_suggestions, evaluate_insights

logger = logging.getLogger(__name__)


def create_kv_store(settings: Settings) -> KeyValueStore:
    """JSON file store when STORAGE_PATH is set, in-memory otherwise."""
    if settings.uses_persistent_storage:
        logger.info(f"Using JSON file storage at {settings.storage_path}")
        return JsonFileKeyValueStore(settings.storage_path)
    logger.info("Using in-memory storage")
    return InMemoryKeyValueStore()


class CoachingEngine:
    """
    Generates, ranks and persists insights and goal suggestions.

    Flow of a generation pass:
        profile/preferences -> rule families -> ranking -> store.save

    Usage:
        engine = CoachingEngine(InMemoryKeyValueStore())
        top = engine.generate_insights()
        engine.insights.by_priority("critical")
    """

    def __init__(
        self,
        kv: KeyValueStore,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.settings = settings or get_settings()
        self.kv = kv
        self.clock = clock

        key = self.settings.storage_key
        self.insight_store = InsightStore(
            kv,
            key("ai_insights"),
            expiry_window=timedelta(hours=self.settings.insight_expiry_hours),
        )
        self.suggestion_store = SuggestionStore(kv, key("goal_suggestions"))

        self.body_composition = BodyCompositionService(
            kv, key("body_composition"), key("body_goals")
        )
        self.profile_provider = UserProfileProvider(
            kv, key("user_profile"), self.body_composition
        )
        self.preferences = GoalPreferencesRepository(kv, key("goal_preferences"))

        self.insights = InsightQueryFacade(self.insight_store)
        self.suggestions = QueryFacade(self.suggestion_store)

    # === Insights ===

    @track(name="engine.generate_insights")
    def generate_insights(self, profile: Optional[UserDataProfile] = None) -> list[Insight]:
        """
        Run every insight family, store the full ranked batch and return
        the top max_insights_returned items.
        """
        profile = profile or self.profile_provider.get_profile()
        ranked = rank_insights(evaluate_insights(profile, self.clock()))

        if not self.insight_store.save(ranked):
            logger.warning("Generated insights could not be stored, previous batch kept")

        logger.info(
            f"Generated {len(ranked)} insights "
            f"({sum(1 for i in ranked if i.priority.value == 'critical')} critical)"
        )
        return ranked[:self.settings.max_insights_returned]

    @track(name="engine.refresh_insights")
    def refresh_insights(self, profile: Optional[UserDataProfile] = None) -> list[Insight]:
        """Drop expired insights, then generate a fresh batch."""
        self.clear_expired_insights()
        return self.generate_insights(profile)

    def clear_expired_insights(self) -> int:
        return self.insight_store.expire_insights(self.clock())

    # === Goal Suggestions ===

    @track(name="engine.generate_goal_suggestions")
    def generate_goal_suggestions(
        self,
        preferences: Optional[UserGoalPreferences] = None,
        prior_insights: Optional[list[Insight]] = None,
        body_data: Optional[BodyCompositionData] = None,
    ) -> list[GoalSuggestion]:
        """
        Run the focus-gated goal families and store the ranked batch.

        Missing arguments are filled from the stored preferences, the stored
        insights and the latest body-composition measurement.
        """
        preferences = preferences or self.preferences.get_preferences()
        if prior_insights is None:
            prior_insights = self.insight_store.load_all()
        if body_data is None:
            body_data = self.body_composition.latest_measurement()

        ranked = rank_suggestions(
            evaluate_goal_suggestions(preferences, prior_insights, body_data, self.clock())
        )

        if not self.suggestion_store.save(ranked):
            logger.warning("Generated goal suggestions could not be stored, previous batch kept")

        logger.info(
            f"Generated {len(ranked)} goal suggestions for focus {preferences.primary_focus}"
        )
        return ranked

    def accept_suggestion(self, suggestion_id: str) -> Optional[GoalSuggestion]:
        """Remove the suggestion and hand it back so it can become a goal."""
        suggestion = self.suggestion_store.remove(suggestion_id)
        if suggestion:
            logger.info(f"Accepted goal suggestion {suggestion_id}: {suggestion.title}")
        return suggestion

    def dismiss_suggestion(self, suggestion_id: str) -> bool:
        dismissed = self.suggestion_store.remove(suggestion_id) is not None
        if dismissed:
            logger.info(f"Dismissed goal suggestion {suggestion_id}")
        return dismissed


def build_engine(settings: Optional[Settings] = None) -> CoachingEngine:
    """Create an engine on the storage backend selected by settings."""
    settings = settings or get_settings()
    return CoachingEngine(create_kv_store(settings), settings)
