"""
Elo ranker implementation.

Pairwise Elo update with a fixed K-factor and a rating floor on the losing side.
"""

import math

from typing_extensions import override

from ..config import K_FACTOR
from ..exceptions import InvalidPairError
from ..interfaces import Ranker
from ..logging_config import get_logger
from ..models import RATING_FLOOR, Bike, Roster


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounded up."""
    return math.floor(value + 0.5)


class EloRanker(Ranker):
    """
    Stateless Elo ranker.

    Holds only its constants; every call takes the current bikes and returns
    new records, so persistence stays with the caller.
    """

    def __init__(self, k_factor: int = K_FACTOR, rating_floor: int = RATING_FLOOR):
        """
        Initialize Elo ranker.

        Args:
            k_factor: Maximum rating change per vote
            rating_floor: Lowest rating a losing bike can drop to
        """
        self.k_factor: int = k_factor
        self.rating_floor: int = rating_floor

        # Setup logger
        self.logger = get_logger("elo_ranker")

    @staticmethod
    def expected_score(rating: float, opponent_rating: float) -> float:
        """Probability that a bike rated ``rating`` beats one rated ``opponent_rating``."""
        return 1.0 / (1.0 + 10.0 ** ((opponent_rating - rating) / 400.0))

    @override
    def rate(self, winner: Bike, loser: Bike) -> tuple[Bike, Bike]:
        """
        Apply a single outcome.

        The floor is only enforced on the loser; winners are never capped.

        Raises:
            InvalidPairError: If winner and loser are the same bike
        """
        if winner.bike_id == loser.bike_id:
            raise InvalidPairError(f"Bike cannot vote against itself: {winner.bike_id}")

        expected_winner = self.expected_score(winner.rating, loser.rating)
        expected_loser = self.expected_score(loser.rating, winner.rating)

        new_winner_rating = round_half_up(winner.rating + self.k_factor * (1 - expected_winner))
        new_loser_rating = max(
            round_half_up(loser.rating + self.k_factor * (0 - expected_loser)),
            self.rating_floor,
        )

        new_winner = winner.with_result(new_winner_rating, won=True)
        new_loser = loser.with_result(new_loser_rating, won=False)

        self.logger.info(f"Rating update: {winner.bike_id} beat {loser.bike_id}")
        self.logger.info(f"  {winner.bike_id}: {winner.rating}->{new_winner.rating} (expected {expected_winner:.3f})")
        self.logger.info(f"  {loser.bike_id}: {loser.rating}->{new_loser.rating} (expected {expected_loser:.3f})")
        return new_winner, new_loser

    @override
    def apply_outcome(self, roster: Roster, winner_id: str, loser_id: str) -> tuple[Bike, Bike]:
        """
        Rate an outcome given by bike ids.

        Raises:
            InvalidPairError: If winner_id == loser_id
            NotFoundError: If either id is not in ``roster``
        """
        if winner_id == loser_id:
            raise InvalidPairError(f"Bike cannot vote against itself: {winner_id}")
        winner = roster.get(winner_id)
        loser = roster.get(loser_id)
        return self.rate(winner, loser)
