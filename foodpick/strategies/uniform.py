"""Cold-start strategy: every item is equally likely."""

from __future__ import annotations

import random

from foodpick.models import Item, Preference
from foodpick.strategies.base import RecommendationStrategy


class UniformStrategy(RecommendationStrategy):
    """Picks an item uniformly at random, ignoring the preference model.

    Used while the user has too few interactions for the learned weights to
    carry any signal.
    """

    def pick(
        self,
        preference: Preference,
        catalogue: list[Item],
        rng: random.Random,
    ) -> Item:
        return rng.choice(catalogue)
