"""
CoachPilot AI - Ranking

Orders generated items by priority tier, then confidence, both descending.
Python's sort is stable, so items with equal keys keep generation order.
Insights and goal suggestions use separate weight tables and are never
ranked together.
"""

from coachpilot.core.models import (
    GoalSuggestion,
    Insight,
    InsightPriority,
    SuggestionPriority,
)

INSIGHT_PRIORITY_WEIGHTS: dict[InsightPriority, int] = {
    InsightPriority.CRITICAL: 4,
    InsightPriority.HIGH: 3,
    InsightPriority.MEDIUM: 2,
    InsightPriority.LOW: 1,
}

SUGGESTION_PRIORITY_WEIGHTS: dict[SuggestionPriority, int] = {
    SuggestionPriority.HIGH: 3,
    SuggestionPriority.MEDIUM: 2,
    SuggestionPriority.LOW: 1,
}


def rank_insights(insights: list[Insight]) -> list[Insight]:
    """Return a new list sorted by priority weight, then confidence."""
    return sorted(
        insights,
        key=lambda i: (-INSIGHT_PRIORITY_WEIGHTS[i.priority], -i.confidence),
    )


def rank_suggestions(suggestions: list[GoalSuggestion]) -> list[GoalSuggestion]:
    return sorted(
        suggestions,
        key=lambda s: (-SUGGESTION_PRIORITY_WEIGHTS[s.priority], -s.confidence),
    )
