"""Recommendation engine: draws items and learns from feedback."""

from __future__ import annotations

import logging
import random
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone

from foodpick.catalogue import ItemCatalogue
from foodpick.models import Category, EmotionTag, Interaction, Item, Preference
from foodpick.preferences import PreferenceStore
from foodpick.strategies.base import RecommendationStrategy
from foodpick.strategies.uniform import UniformStrategy
from foodpick.strategies.weighted import PreferenceWeightedStrategy

logger = logging.getLogger(__name__)

# Fewer interactions than this and draws stay uniformly random.
COLD_START_INTERACTIONS = 5

# Weight deltas applied on a like
_WEIGHT_LIKED_CATEGORY = 0.2
_WEIGHT_LIKED_EMOTION = 0.3
_WEIGHT_CHOSEN_EMOTION = 0.5  # additive with the item's own tags
_PRICE_RANGE_STEP = 2.0


@dataclass(frozen=True)
class PreferenceStats:
    """Summary of the preference model.

    Attributes:
        interaction_count: Interactions in the log.
        liked_count: Interactions that were likes.
        favorite_category: Highest-weight category.
        favorite_emotion: Highest-weight emotion tag.
        price_range: Current ``(min, max)`` preferred price.
    """

    interaction_count: int
    liked_count: int
    favorite_category: Category
    favorite_emotion: EmotionTag
    price_range: tuple[float, float]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RecommendationEngine:
    """Picks one item per draw and updates the preference model on feedback.

    Strategy selection:

    =========================  ==================================
    Interactions logged        Strategy
    =========================  ==================================
    fewer than 5               :class:`UniformStrategy`
    5 or more                  :class:`PreferenceWeightedStrategy`
    =========================  ==================================

    Weight updates (likes only; a dislike is logged but never lowers a
    weight):

    ==================  =====================================
    Target              Delta
    ==================  =====================================
    Item category       +0.2
    Each item emotion   +0.3
    Chosen emotion      +0.5 (additive with the item's tags)
    Price range         widened by 2 toward the item's price
    ==================  =====================================

    Args:
        catalogue: The :class:`~foodpick.catalogue.ItemCatalogue`.
        preference_store: Where the preference model is persisted.
        rng: Random source; pass a seeded instance for reproducible draws.
        clock: Returns the current time for interaction timestamps.
        cold_start_strategy: Strategy used below the interaction threshold.
        personalised_strategy: Strategy used at or above it.
    """

    def __init__(
        self,
        catalogue: ItemCatalogue,
        preference_store: PreferenceStore,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] = _utcnow,
        cold_start_strategy: RecommendationStrategy | None = None,
        personalised_strategy: RecommendationStrategy | None = None,
    ) -> None:
        self._catalogue = catalogue
        self._preference_store = preference_store
        self._rng = rng or random.Random()
        self._clock = clock
        self._cold_start_strategy = cold_start_strategy or UniformStrategy()
        self._personalised_strategy = personalised_strategy or PreferenceWeightedStrategy()

    @property
    def catalogue(self) -> ItemCatalogue:
        return self._catalogue

    # ------------------------------------------------------------------
    # Drawing
    # ------------------------------------------------------------------

    def draw_recommendation(self) -> Item:
        """Return one item for the user.

        Reads the preference model but never modifies it.

        Returns:
            An item from the catalogue.

        Raises:
            ValueError: If the catalogue is empty.
        """
        items = self._catalogue.get_all_items()
        if not items:
            raise ValueError("Cannot draw a recommendation from an empty catalogue")

        preference = self._preference_store.load()
        if len(preference.interactions) < COLD_START_INTERACTIONS:
            strategy = self._cold_start_strategy
        else:
            strategy = self._personalised_strategy

        item = strategy.pick(preference, items, self._rng)
        logger.debug(
            "Drew item %r via %s (%d interactions).",
            item.item_id,
            type(strategy).__name__,
            len(preference.interactions),
        )
        return item

    # ------------------------------------------------------------------
    # Feedback
    # ------------------------------------------------------------------

    def record_interaction(
        self,
        item_id: str,
        liked: bool,
        emotion_feedback: EmotionTag | str | None = None,
    ) -> None:
        """Log feedback on *item_id* and, for a like, strengthen the weights.

        An unknown *item_id* is ignored: a stale id only affects
        personalisation quality.

        Args:
            item_id: The item the feedback is about.
            liked: Whether the user liked it.
            emotion_feedback: Emotion explicitly chosen by the user, as an
                :class:`EmotionTag` or its string value.

        Raises:
            ValueError: If *emotion_feedback* is not an :class:`EmotionTag`
                value.
        """
        if emotion_feedback is not None:
            emotion_feedback = EmotionTag(emotion_feedback)
        item = self._catalogue.get_item(item_id)
        if item is None:
            logger.debug("Ignoring feedback for unknown item %r.", item_id)
            return

        preference = self._preference_store.load()
        preference.interactions.append(
            Interaction(
                item_id=item_id,
                timestamp=self._clock(),
                liked=liked,
                emotion_feedback=emotion_feedback,
            )
        )
        if liked:
            self._apply_like(preference, item, emotion_feedback)

        self._preference_store.save(preference)
        logger.debug(
            "Recorded %s for item %r (emotion=%s).",
            "like" if liked else "dislike",
            item_id,
            emotion_feedback.value if emotion_feedback else None,
        )

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def get_preference_stats(self) -> PreferenceStats:
        """Summarise the preference model.

        Favourites are the highest-weight keys; ties go to the key declared
        first in the enum.
        """
        preference = self._preference_store.load()
        return PreferenceStats(
            interaction_count=len(preference.interactions),
            liked_count=preference.liked_count,
            favorite_category=_highest_weight(preference.category_weights, list(Category)),
            favorite_emotion=_highest_weight(preference.emotion_weights, list(EmotionTag)),
            price_range=preference.price_range,
        )

    def reset_preferences(self) -> Preference:
        return self._preference_store.reset()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _apply_like(
        preference: Preference,
        item: Item,
        emotion_feedback: EmotionTag | None,
    ) -> None:
        """Apply the like deltas for *item* to *preference* in-place."""
        preference.category_weights[item.category] += _WEIGHT_LIKED_CATEGORY
        for tag in item.emotion_tags:
            preference.emotion_weights[tag] += _WEIGHT_LIKED_EMOTION
        if emotion_feedback is not None:
            preference.emotion_weights[emotion_feedback] += _WEIGHT_CHOSEN_EMOTION

        low, high = preference.price_range
        if item.price < low:
            low = max(0.0, low - _PRICE_RANGE_STEP)
        elif item.price > high:
            high = high + _PRICE_RANGE_STEP
        preference.price_range = (low, high)


def _highest_weight(weights: dict, order: list):
    best = order[0]
    for key in order[1:]:
        if weights[key] > weights[best]:
            best = key
    return best
