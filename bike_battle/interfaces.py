"""
Abstract base classes defining the interfaces for the bike battle system.

All interfaces are synchronous; a single session issues one vote at a time.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from typing import TypedDict

from .exceptions import ValidationError
from .models import Bike, BikeDetails, Roster, Vote


class BikeRecord(TypedDict):
    """TypedDict for a persisted bike."""
    bike_id: str
    image_ref: str
    rating: int
    wins: int
    losses: int
    created_at: float
    details: dict[str, str | int | None]


class VoteRecord(TypedDict):
    """TypedDict for a persisted vote."""
    vote_id: str
    winner_id: str
    loser_id: str
    created_at: float
    winner_rating: int | None
    loser_rating: int | None
    applied: bool


class StoreSnapshot(TypedDict):
    """TypedDict for the bike table snapshot."""
    log_offset: int
    bikes: list[BikeRecord]


class RecordStore(ABC):
    """Interface for persisting bikes and the vote log."""

    @abstractmethod
    def list_bikes(self) -> Iterable[Bike]:
        """Return all bikes in insertion order."""
        pass

    @abstractmethod
    def get_bike(self, bike_id: str) -> Bike:
        """Get a specific bike by ID, raising NotFoundError when absent."""
        pass

    @abstractmethod
    def insert_bike(self, image_ref: str, details: BikeDetails | None = None) -> Bike:
        """
        Create a new bike.

        Assigns a fresh id, the default rating, zero wins and losses and the
        current time as created_at.
        """
        pass

    @abstractmethod
    def update_bike(self, bike: Bike) -> None:
        """Overwrite the stored rating and counters of an existing bike."""
        pass

    @abstractmethod
    def append_vote(self, vote: Vote) -> None:
        """Append a vote to the log."""
        pass

    @abstractmethod
    def load_votes(self) -> Iterable[Vote]:
        """Load all persisted votes in the order they were cast."""
        pass

    @abstractmethod
    def commit_outcome(
        self,
        before: tuple[Bike, Bike],
        after: tuple[Bike, Bike],
        vote: Vote,
    ) -> None:
        """
        Persist both updated bikes and the vote as a single unit.

        Args:
            before: (winner, loser) as read when the outcome was computed
            after: (winner, loser) with new ratings and counters
            vote: Vote log entry for this outcome

        Raises:
            StaleRecordError: If either stored bike no longer matches ``before``.
                Nothing is written in that case.
        """
        pass

    def get_roster(self) -> Roster:
        """Return an immutable snapshot of all bikes."""
        return Roster(self.list_bikes())


class Ranker(ABC):
    """Interface for pairwise rating updates."""

    @abstractmethod
    def rate(self, winner: Bike, loser: Bike) -> tuple[Bike, Bike]:
        """Return updated (winner, loser) for a single outcome without mutating inputs."""
        pass

    @abstractmethod
    def apply_outcome(self, roster: Roster, winner_id: str, loser_id: str) -> tuple[Bike, Bike]:
        """Look up both bikes in ``roster`` and rate the outcome."""
        pass


class Selector(ABC):
    """Interface for selecting bike pairs to compare."""

    @abstractmethod
    def select_pair(self, bikes: Sequence[Bike]) -> tuple[Bike, Bike]:
        """
        Select two distinct bikes for a head-to-head vote.

        Raises:
            InsufficientEntitiesError: If fewer than two bikes are available
        """
        pass


def validate_outcome(before: tuple[Bike, Bike], after: tuple[Bike, Bike], vote: Vote) -> None:
    """Check that an outcome's records all describe the same winner and loser."""
    winner_ids = {before[0].bike_id, after[0].bike_id, vote.winner_id}
    loser_ids = {before[1].bike_id, after[1].bike_id, vote.loser_id}
    if len(winner_ids) != 1 or len(loser_ids) != 1:
        raise ValidationError(
            f"Outcome records disagree: winners={sorted(winner_ids)}, losers={sorted(loser_ids)}"
        )
