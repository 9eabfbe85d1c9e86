"""Session facade: the draw → feedback → evaluate flow driven by a client."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

from foodpick.achievements import AchievementEngine
from foodpick.catalogue import ItemCatalogue
from foodpick.engine import RecommendationEngine
from foodpick.history import HistoryStore
from foodpick.models import Achievement, EmotionTag, Item

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Draw:
    """A drawn item and the history entry that awaits its feedback."""

    item: Item
    entry_id: str


class FoodieSession:
    """Wires the engines together for one user.

    A draw is logged immediately as an undecided (not liked) history entry;
    feedback then settles that same entry instead of appending another, so
    each draw counts once in the history log.

    Calls are serialised with a re-entrant lock because the gRPC server
    dispatches on a thread pool while every store is read-modify-write.

    Args:
        catalogue: The item catalogue.
        engine: The recommendation engine.
        history_store: The history store.
        achievements: The achievement engine.
    """

    def __init__(
        self,
        catalogue: ItemCatalogue,
        engine: RecommendationEngine,
        history_store: HistoryStore,
        achievements: AchievementEngine,
    ) -> None:
        self._catalogue = catalogue
        self.lock = threading.RLock()
        self.engine = engine
        self.history = history_store
        self.achievements = achievements

    def visit(self) -> list[Achievement]:
        """Record today's visit and return achievements it unlocked."""
        with self.lock:
            before = self.achievements.load_user_stats()
            self.achievements.record_visit()
            return self.achievements.check_new_achievements(before).newly_unlocked

    def draw(self) -> Draw:
        """Draw an item and log it as undecided.

        Raises:
            ValueError: If the catalogue is empty.
        """
        with self.lock:
            item = self.engine.draw_recommendation()
            entry = self.history.add_to_history(item, liked=False)
            return Draw(item=item, entry_id=entry.entry_id)

    def feedback(
        self,
        entry_id: str,
        item_id: str,
        liked: bool,
        emotion: EmotionTag | str | None = None,
    ) -> list[Achievement]:
        """Apply feedback on a previous draw.

        The history entry is authoritative for which item was drawn:
        *item_id* must match it while the entry is still in the log, and is
        only used on its own once the entry has been evicted. The preference
        model is updated and the entry settled (or re-appended), then
        achievements are re-evaluated.

        Args:
            entry_id: The entry returned by :meth:`draw`.
            item_id: The drawn item.
            liked: Whether the user liked it.
            emotion: Emotion the user chose, implying a like.

        Returns:
            Achievements unlocked by this feedback.

        Raises:
            ValueError: If *item_id* is not the item logged under *entry_id*,
                or *emotion* is not an :class:`EmotionTag` value.
        """
        if emotion is not None:
            emotion = EmotionTag(emotion)
        emotions = [emotion.value] if emotion is not None else None
        with self.lock:
            entry = self.history.get_entry(entry_id)
            if entry is not None and entry.item.item_id != item_id:
                raise ValueError(
                    f"Entry {entry_id!r} is for item {entry.item.item_id!r}, "
                    f"not {item_id!r}"
                )
            before = self.achievements.load_user_stats()
            self.engine.record_interaction(item_id, liked, emotion)
            if entry is not None:
                self.history.update_entry(entry_id, liked, emotions)
            else:
                item = self._catalogue.get_item(item_id)
                if item is not None:
                    self.history.add_to_history(item, liked, emotions)
            return self.achievements.check_new_achievements(before).newly_unlocked
