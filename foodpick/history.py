"""History store: bounded newest-first log of draws and their outcomes."""

from __future__ import annotations

import logging
import uuid
from collections import Counter
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from foodpick.models import Category, EmotionTag, HistoryItem, Item
from foodpick.storage import StateStorage

logger = logging.getLogger(__name__)

HISTORY_KEY = "history"
MAX_HISTORY = 50
RECENT_WINDOW = timedelta(days=7)


@dataclass(frozen=True)
class HistoryStats:
    """Summary of the history log shown on the stats panel.

    Attributes:
        total_draws: Number of entries in the (capped) log.
        liked_count: Entries marked liked.
        like_rate: Liked share as a percentage, one decimal.
        favorite_category: Most-liked category value, or ``None``.
        favorite_emotion: Most frequent emotion on liked entries, or ``None``.
        recent_draws_count: Entries in the last 7 days.
        recent_liked_count: Liked entries in the last 7 days.
    """

    total_draws: int
    liked_count: int
    like_rate: float
    favorite_category: str | None
    favorite_emotion: str | None
    recent_draws_count: int
    recent_liked_count: int


@dataclass(frozen=True)
class TodayStats:
    draws_today: int
    liked_today: int


@dataclass
class HistoryLog:
    """The persisted history document.

    Attributes:
        entries: Newest-first entries, at most :data:`MAX_HISTORY`.
        seen_item_ids: Every item id ever recorded, in first-seen order.
            Unlike *entries* this is never evicted, so lifetime uniqueness
            survives the cap.
    """

    entries: list[HistoryItem]
    seen_item_ids: list[str]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HistoryStore:
    """Persists the draw history as one document.

    Args:
        storage: Backend holding the document.
        clock: Returns the current time; injectable for tests.
        key: Storage key of the document.
    """

    def __init__(
        self,
        storage: StateStorage,
        clock: Callable[[], datetime] = _utcnow,
        key: str = HISTORY_KEY,
    ) -> None:
        self._storage = storage
        self._clock = clock
        self._key = key

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> HistoryLog:
        """Return the stored log; a malformed document reads as empty."""
        document = self._storage.read(self._key)
        if document is None:
            return HistoryLog(entries=[], seen_item_ids=[])
        try:
            return _decode_log(document)
        except (KeyError, TypeError, ValueError, AttributeError):
            logger.warning("Stored history is malformed; starting with an empty log.")
            return HistoryLog(entries=[], seen_item_ids=[])

    def save(self, log: HistoryLog) -> None:
        log.entries = log.entries[:MAX_HISTORY]
        self._storage.write(
            self._key,
            {
                "entries": [entry.to_dict() for entry in log.entries],
                "seen_item_ids": list(log.seen_item_ids),
            },
        )

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def add_to_history(
        self,
        item: Item,
        liked: bool,
        emotions: Iterable[str] | None = None,
    ) -> HistoryItem:
        """Prepend a new entry for *item*, dropping the oldest beyond the cap.

        Args:
            item: The drawn item; stored as a snapshot.
            liked: The outcome.
            emotions: Emotion labels the user attached, if any.

        Returns:
            The new :class:`~foodpick.models.HistoryItem`.
        """
        log = self.load()
        entry = HistoryItem(
            entry_id=uuid.uuid4().hex,
            item=item,
            timestamp=self._clock(),
            liked=liked,
            emotions=list(emotions) if emotions is not None else None,
        )
        log.entries.insert(0, entry)
        if item.item_id not in log.seen_item_ids:
            log.seen_item_ids.append(item.item_id)
        self.save(log)
        return entry

    def update_entry(
        self,
        entry_id: str,
        liked: bool,
        emotions: Iterable[str] | None = None,
    ) -> HistoryItem | None:
        """Settle the outcome of an existing entry in place.

        Position and timestamp are kept, so a draw recorded as undecided and
        later answered still counts once.

        Returns:
            The updated entry, or ``None`` if *entry_id* is no longer in the
            log (evicted or cleared).
        """
        log = self.load()
        for entry in log.entries:
            if entry.entry_id == entry_id:
                entry.liked = liked
                entry.emotions = list(emotions) if emotions is not None else None
                self.save(log)
                return entry
        logger.debug("History entry %r not found; nothing updated.", entry_id)
        return None

    def get_entry(self, entry_id: str) -> HistoryItem | None:
        """Return the entry with *entry_id*, or ``None`` once evicted."""
        for entry in self.load().entries:
            if entry.entry_id == entry_id:
                return entry
        return None

    def get_history(self) -> list[HistoryItem]:
        """Return all entries, newest first."""
        return self.load().entries

    def get_seen_item_ids(self) -> list[str]:
        return self.load().seen_item_ids

    def clear_history(self) -> None:
        """Remove the whole history document, lifetime ids included."""
        self._storage.delete(self._key)
        logger.info("History cleared.")

    def get_history_stats(self, now: datetime | None = None) -> HistoryStats:
        """Summarise the log.

        Args:
            now: Reference time for the 7-day window; defaults to the clock.

        Returns:
            A :class:`HistoryStats`.
        """
        now = now or self._clock()
        history = self.get_history()
        liked = [entry for entry in history if entry.liked]

        category_counts = Counter(entry.item.category.value for entry in liked)
        emotion_counts: Counter[str] = Counter()
        for entry in liked:
            emotion_counts.update(entry.emotions or [])

        cutoff = now - RECENT_WINDOW
        recent = [entry for entry in history if entry.timestamp > cutoff]

        return HistoryStats(
            total_draws=len(history),
            liked_count=len(liked),
            like_rate=round(len(liked) / len(history) * 100, 1) if history else 0.0,
            favorite_category=_most_common(
                category_counts, [c.value for c in Category]
            ),
            favorite_emotion=_most_common(
                emotion_counts, [e.value for e in EmotionTag]
            ),
            recent_draws_count=len(recent),
            recent_liked_count=sum(1 for entry in recent if entry.liked),
        )

    def get_today_stats(self, now: datetime | None = None) -> TodayStats:
        """Count entries recorded on the current UTC calendar day."""
        now = now or self._clock()
        today = now.astimezone(timezone.utc).date()
        todays = [
            entry for entry in self.get_history()
            if entry.timestamp.astimezone(timezone.utc).date() == today
        ]
        return TodayStats(
            draws_today=len(todays),
            liked_today=sum(1 for entry in todays if entry.liked),
        )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _decode_log(document: Any) -> HistoryLog:
    # A bare list of entries is accepted as a log with no lifetime ids.
    if isinstance(document, list):
        raw_entries, seen = document, []
    else:
        raw_entries, seen = document["entries"], document.get("seen_item_ids", [])
    entries = [HistoryItem.from_dict(raw) for raw in raw_entries]
    seen_ids = [str(item_id) for item_id in seen]
    for entry in reversed(entries):
        if entry.item.item_id not in seen_ids:
            seen_ids.append(entry.item.item_id)
    return HistoryLog(entries=entries, seen_item_ids=seen_ids)


def _most_common(counts: Counter[str], order: list[str]) -> str | None:
    """Return the key with the highest count.

    Ties go to the key earliest in *order*; keys outside *order* rank after
    it, in first-counted order.
    """
    if not counts:
        return None
    rank = {key: i for i, key in enumerate(order)}
    keys = list(counts)
    return max(
        keys,
        key=lambda k: (counts[k], -rank.get(k, len(order) + keys.index(k))),
    )
