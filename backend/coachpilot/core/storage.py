"""
CoachPilot AI - Lifecycle Storage

Persists generated batches (insights, goal suggestions) on a key-value
store. Each kind lives under its own key as one JSON array; saving a batch
replaces the previous one.

Nothing in here raises to the caller: unreadable payloads degrade to an
empty batch and failed writes leave the previous batch in place.
"""

import json
import logging
from datetime import datetime, timedelta
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError

from coachpilot.core.kv_store import KeyValueStore, StorageError
from coachpilot.core.models import GoalSuggestion, Insight, as_utc

logger = logging.getLogger(__name__)

ItemT = TypeVar("ItemT", bound=BaseModel)

DEFAULT_EXPIRY_WINDOW = timedelta(hours=24)


class LifecycleStore(Generic[ItemT]):
    """
    Batch store for one item kind.

    Usage:
        store = LifecycleStore(kv, "coachpilot_ai_insights", Insight)
        store.save(insights)
        store.load_all()
    """

    def __init__(self, kv: KeyValueStore, key: str, item_type: type[ItemT]):
        self.kv = kv
        self.key = key
        self.item_type = item_type
        self._adapter = TypeAdapter(list[item_type])
        self._label = item_type.__name__

    def save(self, items: list[ItemT]) -> bool:
        """
        Replace the persisted batch with items.

        Returns False (and logs) when serialization or the storage medium
        fails; the previously stored batch is untouched in that case.
        """
        try:
            payload = json.dumps(self._adapter.dump_python(list(items), mode="json"))
            self.kv.set(self.key, payload)
        except (StorageError, TypeError, ValueError) as e:
            logger.error(f"Error saving {self._label} batch under {self.key}: {e}")
            return False

        logger.info(f"Saved {len(items)} {self._label} items under {self.key}")
        return True

    def load_all(self) -> list[ItemT]:
        """Return the persisted batch, or [] when absent or unreadable."""
        try:
            raw = self.kv.get(self.key)
        except StorageError as e:
            logger.error(f"Error loading {self._label} batch from {self.key}: {e}")
            return []

        if raw is None:
            return []

        try:
            return self._adapter.validate_python(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning(f"Corrupt {self._label} payload under {self.key}, ignoring it: {e}")
            return []

    def get(self, item_id: str) -> Optional[ItemT]:
        for item in self.load_all():
            if item.id == item_id:
                return item
        return None

    def remove(self, item_id: str) -> Optional[ItemT]:
        """
        Delete one item by id and return it.

        An unknown id returns None without writing, so the stored payload
        stays byte-for-byte identical. A failed write also returns None;
        the item is still stored in that case.
        """
        items = self.load_all()
        removed = None
        remaining = []
        for item in items:
            if removed is None and item.id == item_id:
                removed = item
            else:
                remaining.append(item)

        if removed is None:
            logger.debug(f"No {self._label} with id {item_id} under {self.key}")
            return None

        if not self.save(remaining):
            return None
        return removed

    def clear(self) -> bool:
        return self.save([])


class InsightStore(LifecycleStore[Insight]):
    """Insight batch store with time-based expiry."""

    def __init__(
        self,
        kv: KeyValueStore,
        key: str,
        expiry_window: timedelta = DEFAULT_EXPIRY_WINDOW,
    ):
        super().__init__(kv, key, Insight)
        self.expiry_window = expiry_window

    def is_expired(self, insight: Insight, now: datetime) -> bool:
        now = as_utc(now)
        if insight.expires_at is not None:
            return as_utc(insight.expires_at) <= now
        return as_utc(insight.generated_at) + self.expiry_window <= now

    def expire_insights(self, now: datetime) -> int:
        """
        Drop expired insights and return how many were removed (0 when the
        write fails and the batch stays as it was).

        An insight expires at its explicit expires_at, otherwise one expiry
        window (24h by default) after generated_at.
        """
        insights = self.load_all()
        valid = [i for i in insights if not self.is_expired(i, now)]
        removed = len(insights) - len(valid)

        if not removed:
            return 0
        if not self.save(valid):
            return 0

        logger.info(f"Expired {removed} insights, {len(valid)} remain")
        return removed


class SuggestionStore(LifecycleStore[GoalSuggestion]):
    """Goal suggestions persist until accepted, dismissed or superseded."""

    def __init__(self, kv: KeyValueStore, key: str):
        super().__init__(kv, key, GoalSuggestion)
