"""
Voting service for bike battle.

Coordinates record store, ranker and selector components behind the
operations the front-end calls: upload, next pair, vote and the leaderboard.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from loguru import Logger

from .config import GameConfig
from .exceptions import StaleRecordError
from .interfaces import Ranker, RecordStore, Selector
from .logging_config import get_logger
from .models import Bike, BikeDetails, Vote
from .ranking import BikeStats, LeaderboardSummary, bike_stats, leaderboard_summary, rank_bikes, rank_of


class BikeBattle:
    """Main entry point for casting votes and reading rankings."""

    def __init__(
        self,
        store: RecordStore,
        ranker: Ranker,
        selector: Selector,
        config: GameConfig | None = None,
    ):
        """Initialize the service with all components."""
        self.store: RecordStore = store
        self.ranker: Ranker = ranker
        self.selector: Selector = selector
        self.config: GameConfig = config or GameConfig()

        # Setup logger
        self.logger: Logger = get_logger("bike_battle")

    def upload(self, image_ref: str, details: BikeDetails | None = None) -> Bike:
        """Register a newly uploaded bike photo."""
        bike = self.store.insert_bike(image_ref, details)
        self.logger.info(f"Uploaded bike {bike.bike_id} at rating {bike.rating}")
        return bike

    def next_pair(self) -> tuple[Bike, Bike]:
        """
        Draw the next head-to-head pair.

        Read-only; calling it again to skip a pair never changes any rating.

        Raises:
            InsufficientEntitiesError: If fewer than two bikes exist
        """
        bikes = list(self.store.list_bikes())
        return self.selector.select_pair(bikes)

    def vote(self, winner_id: str, loser_id: str) -> tuple[Bike, Bike]:
        """
        Record that ``winner_id`` beat ``loser_id``.

        Ratings are computed from a fresh roster and committed together with
        the vote. If another writer touched either bike in between, the
        outcome is recomputed, up to ``max_commit_retries`` times.

        Returns:
            The updated (winner, loser) as persisted

        Raises:
            InvalidPairError: If winner_id == loser_id
            NotFoundError: If either bike does not exist
            StaleRecordError: If every retry lost the race
        """
        attempts = self.config.max_commit_retries + 1
        for attempt in range(1, attempts + 1):
            roster = self.store.get_roster()
            new_winner, new_loser = self.ranker.apply_outcome(roster, winner_id, loser_id)
            before = (roster.get(winner_id), roster.get(loser_id))
            vote = Vote(
                winner_id=winner_id,
                loser_id=loser_id,
                winner_rating=new_winner.rating,
                loser_rating=new_loser.rating,
            )

            try:
                self.store.commit_outcome(before, (new_winner, new_loser), vote)
            except StaleRecordError as e:
                self.logger.warning(f"Vote commit attempt {attempt}/{attempts} lost a race: {e}")
                if attempt == attempts:
                    raise
                continue

            self.logger.info(
                f"Vote recorded: {winner_id} ({before[0].rating}->{new_winner.rating}) "
                f"beat {loser_id} ({before[1].rating}->{new_loser.rating})"
            )
            return new_winner, new_loser

        # Unreachable: the loop either returns or re-raises on its last attempt
        raise StaleRecordError(f"Could not commit vote {winner_id} > {loser_id}")

    def leaderboard(self) -> list[Bike]:
        """All bikes, highest rating first."""
        return rank_bikes(self.store.list_bikes())

    def rank_of(self, bike_id: str) -> int:
        return rank_of(bike_id, self.store.list_bikes())

    def bike_stats(self, bike_id: str) -> BikeStats:
        return bike_stats(bike_id, self.store.list_bikes())

    def summary(self) -> LeaderboardSummary:
        return leaderboard_summary(self.store.list_bikes())
