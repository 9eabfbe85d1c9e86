"""Preference-weighted strategy: score, keep the top slice, weighted draw."""

from __future__ import annotations

import logging
import math
import random

import numpy as np

from foodpick.models import DEFAULT_WEIGHT, Item, Preference
from foodpick.strategies.base import RecommendationStrategy

logger = logging.getLogger(__name__)

CATEGORY_FACTOR = 0.3
EMOTION_FACTOR = 0.3
PRICE_FACTOR = 0.2
VALUE_FACTOR = 0.2

IN_RANGE_PRICE_SCORE = 2.0
OUT_OF_RANGE_PRICE_SCORE = 1.0

POOL_PERCENT = 30


class PreferenceWeightedStrategy(RecommendationStrategy):
    """Ranks items by their match with the preference model.

    Each item scores::

        0.3 * category_weight
      + 0.3 * mean(emotion_weight over the item's tags)   # 1.0 if untagged
      + 0.2 * (2 if the price is inside the preferred range else 1)
      + 0.2 * price_performance_score / 10

    Items are stably sorted by descending score (catalogue order breaks
    ties), the top 30% (rounded up) form the candidate pool, and one
    candidate is drawn with probability proportional to its score.
    """

    def pick(
        self,
        preference: Preference,
        catalogue: list[Item],
        rng: random.Random,
    ) -> Item:
        scores = self.score_items(preference, catalogue)
        pool = self.candidate_pool(catalogue, scores)
        return self._weighted_choice(pool, rng)

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    def score_items(self, preference: Preference, catalogue: list[Item]) -> np.ndarray:
        """Return the match score of every item, aligned with *catalogue*."""
        category = np.array(
            [preference.category_weights[item.category] for item in catalogue],
            dtype=np.float64,
        )
        emotion = np.array(
            [self._emotion_score(preference, item) for item in catalogue],
            dtype=np.float64,
        )
        prices = np.array([item.price for item in catalogue], dtype=np.float64)
        low, high = preference.price_range
        price = np.where(
            (prices >= low) & (prices <= high),
            IN_RANGE_PRICE_SCORE,
            OUT_OF_RANGE_PRICE_SCORE,
        )
        value = np.array(
            [item.price_performance_score for item in catalogue], dtype=np.float64
        ) / 10.0
        return (
            CATEGORY_FACTOR * category
            + EMOTION_FACTOR * emotion
            + PRICE_FACTOR * price
            + VALUE_FACTOR * value
        )

    def candidate_pool(
        self, catalogue: list[Item], scores: np.ndarray
    ) -> list[tuple[Item, float]]:
        """Return the top-scoring slice of the catalogue with each score.

        Args:
            catalogue: All items, in catalogue order.
            scores: Output of :meth:`score_items` for *catalogue*.

        Returns:
            ``(item, score)`` pairs, best first, ``ceil(30% of catalogue)``
            long.
        """
        pool_size = pool_size_for(len(catalogue))
        order = np.argsort(-scores, kind="stable")[:pool_size]
        return [(catalogue[i], float(scores[i])) for i in order]

    @staticmethod
    def _emotion_score(preference: Preference, item: Item) -> float:
        if not item.emotion_tags:
            return DEFAULT_WEIGHT
        weights = [preference.emotion_weights[tag] for tag in item.emotion_tags]
        return sum(weights) / len(weights)

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    @staticmethod
    def _weighted_choice(pool: list[tuple[Item, float]], rng: random.Random) -> Item:
        total = sum(score for _, score in pool)
        r = rng.random() * total
        for item, score in pool:
            r -= score
            if r <= 0:
                return item
        # Floating-point residue can leave r marginally above zero.
        logger.debug("Weighted draw fell through; using the top candidate.")
        return pool[0][0]


def pool_size_for(catalogue_size: int) -> int:
    """Return ``ceil(30% of catalogue_size)``, computed exactly."""
    return math.ceil(catalogue_size * POOL_PERCENT / 100)
