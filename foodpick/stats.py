"""Stats aggregation over the history log and visit-streak calculation.

Everything here is a pure function of its arguments; nothing is persisted.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, timedelta

from foodpick.catalogue import ItemCatalogue
from foodpick.models import Category, HistoryItem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HistoryAggregate:
    """Counters derived from one pass over the history log.

    Attributes:
        total_draws: Entries in the log.
        unique_items_count: Distinct item ids seen.
        unique_item_ids: Those ids, in first-seen order.
        category_stats: Entries per category value (exposure, liked or not).
        emotion_feedback_count: Entries carrying at least one emotion.
        liked_count: Entries marked liked.
        disliked_count: Entries not marked liked.
    """

    total_draws: int = 0
    unique_items_count: int = 0
    unique_item_ids: list[str] = field(default_factory=list)
    category_stats: dict[str, int] = field(default_factory=dict)
    emotion_feedback_count: int = 0
    liked_count: int = 0
    disliked_count: int = 0


def aggregate(
    history: Iterable[HistoryItem],
    seen_item_ids: Iterable[str] = (),
) -> HistoryAggregate:
    """Derive usage counters from *history*.

    Args:
        history: History entries in any order.
        seen_item_ids: Item ids recorded before the oldest surviving entry
            was evicted. Counted towards uniqueness only.

    Returns:
        A :class:`HistoryAggregate`.
    """
    unique_ids: dict[str, None] = dict.fromkeys(seen_item_ids)
    category_stats: dict[str, int] = {}
    total = emotion_feedback = liked = disliked = 0

    for entry in history:
        total += 1
        unique_ids.setdefault(entry.item.item_id, None)
        category = entry.item.category.value
        category_stats[category] = category_stats.get(category, 0) + 1
        if entry.emotions:
            emotion_feedback += 1
        if entry.liked:
            liked += 1
        else:
            disliked += 1

    return HistoryAggregate(
        total_draws=total,
        unique_items_count=len(unique_ids),
        unique_item_ids=list(unique_ids),
        category_stats=category_stats,
        emotion_feedback_count=emotion_feedback,
        liked_count=liked,
        disliked_count=disliked,
    )


def consecutive_days(visit_dates: Iterable[str], today: date) -> int:
    """Return the length of the visit streak ending on *today*.

    Dates are scanned newest first with a cursor starting at *today*. A date
    equal to the cursor extends the streak and moves the cursor back one
    day; a date after the cursor is skipped; a date before it ends the
    scan. A streak whose newest visit is not *today* is therefore 0.

    Args:
        visit_dates: ISO ``YYYY-MM-DD`` strings. Unparseable values are
            ignored.
        today: The day the streak must end on.

    Returns:
        Number of consecutive visited days up to and including *today*.
    """
    parsed: list[date] = []
    for value in visit_dates:
        try:
            parsed.append(date.fromisoformat(value))
        except (TypeError, ValueError):
            logger.debug("Skipping malformed visit date %r.", value)

    streak = 0
    cursor = today
    for visit in sorted(parsed, reverse=True):
        if visit == cursor:
            streak += 1
            cursor -= timedelta(days=1)
        elif visit < cursor:
            break
    return streak


def category_collection(
    category_stats: dict[str, int],
    catalogue: ItemCatalogue,
) -> dict[Category, tuple[int, int]]:
    """Pair each category's draw count with its catalogue size.

    Returns:
        ``{category: (draws, items_in_catalogue)}`` for every category.
    """
    totals = catalogue.category_totals()
    return {
        category: (category_stats.get(category.value, 0), totals[category])
        for category in Category
    }


def favorite_category(category_stats: dict[str, int]) -> Category | None:
    """Return the most drawn category, or ``None`` before any draw.

    Ties go to the category declared first in :class:`Category`.
    """
    best: Category | None = None
    for category in Category:
        count = category_stats.get(category.value, 0)
        if count and (best is None or count > category_stats[best.value]):
            best = category
    return best
