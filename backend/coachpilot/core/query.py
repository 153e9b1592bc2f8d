"""
CoachPilot AI - Query Facade

Read-only views over a lifecycle store for the dashboard and API.
"""

from collections import Counter
from typing import Generic

from coachpilot.core.models import Insight, InsightSummary
from coachpilot.core.storage import ItemT, LifecycleStore


class QueryFacade(Generic[ItemT]):
    """Pure filters over LifecycleStore.load_all(); never mutates."""

    def __init__(self, store: LifecycleStore[ItemT]):
        self.store = store

    def all(self) -> list[ItemT]:
        return self.store.load_all()

    def by_category(self, category) -> list[ItemT]:
        value = getattr(category, "value", category)
        return [item for item in self.store.load_all() if item.category.value == value]

    def by_priority(self, priority) -> list[ItemT]:
        value = getattr(priority, "value", priority)
        return [item for item in self.store.load_all() if item.priority.value == value]

    def get(self, item_id: str):
        return self.store.get(item_id)


class InsightQueryFacade(QueryFacade[Insight]):

    def summary(self) -> InsightSummary:
        """Counts per category and priority plus the mean confidence."""
        insights = self.store.load_all()
        if not insights:
            return InsightSummary()

        by_category = Counter(i.category.value for i in insights)
        by_priority = Counter(i.priority.value for i in insights)
        avg_confidence = sum(i.confidence for i in insights) / len(insights)

        return InsightSummary(
            total=len(insights),
            by_category=dict(by_category),
            by_priority=dict(by_priority),
            average_confidence=round(avg_confidence),
        )
