"""Abstract base class for all recommendation strategies."""

from __future__ import annotations

import random
from abc import ABC, abstractmethod

from foodpick.models import Item, Preference


class RecommendationStrategy(ABC):
    """Abstract base class for all recommendation strategies.

    Each strategy encapsulates one way of picking a single item from the
    catalogue. The :class:`~foodpick.engine.RecommendationEngine` decides
    which strategy applies to the current preference state.
    """

    @abstractmethod
    def pick(
        self,
        preference: Preference,
        catalogue: list[Item],
        rng: random.Random,
    ) -> Item:
        """Return one item from *catalogue* for the user described by *preference*.

        Args:
            preference: The user's current preference model. Strategies
                must not mutate it.
            catalogue: All items, in catalogue order. Never empty.
            rng: Random source for any stochastic choice.

        Returns:
            An element of *catalogue*.
        """
