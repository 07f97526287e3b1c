"""
Random pair selector implementation.

Stateless selector: every round is an independent uniform draw.
"""

import random
from collections.abc import Sequence

from typing_extensions import override

from ..exceptions import InsufficientEntitiesError
from ..interfaces import Selector
from ..logging_config import get_logger
from ..models import Bike


class RandomPairSelector(Selector):
    """Draws two distinct bikes uniformly at random without replacement."""

    def __init__(self, rng: random.Random | None = None):
        """Initialize random selector.

        Args:
            rng: Random source (defaults to a fresh ``random.Random``); pass a
                seeded instance for reproducible pairs
        """
        self.rng: random.Random = rng or random.Random()
        self.logger = get_logger("random_selector")

    @override
    def select_pair(self, bikes: Sequence[Bike]) -> tuple[Bike, Bike]:
        """Return a random pair of distinct bikes."""
        # Same id twice would allow a self-vote
        candidates = list({bike.bike_id: bike for bike in bikes}.values())
        if len(candidates) < 2:
            self.logger.warning(f"Insufficient bikes for a pair: {len(candidates)}")
            raise InsufficientEntitiesError(len(candidates))

        first, second = self.rng.sample(candidates, 2)
        self.logger.debug(f"Selected random pair: {first.bike_id} vs {second.bike_id}")
        return first, second
