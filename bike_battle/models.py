"""
Core dataclasses for the bike battle system.

Defines Bike, BikeDetails, Vote and the Roster state object with validation.
"""

import time
import uuid
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field, replace

from .exceptions import InvalidPairError, NotFoundError, ValidationError

DEFAULT_RATING = 1200
RATING_FLOOR = 800

BIKE_CATEGORIES = (
    "Road Bike",
    "Mountain Bike",
    "Hybrid Bike",
    "Electric Bike",
    "BMX",
    "Cruiser",
    "Touring Bike",
    "Gravel Bike",
    "Cyclocross",
    "Fixed Gear",
    "Other",
)


def new_id() -> str:
    """Generate a fresh, never reused identifier."""
    return uuid.uuid4().hex


def _blank_to_none(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


@dataclass(frozen=True)
class BikeDetails:
    """Descriptive metadata for a bike. Every field is optional."""

    name: str | None = None
    category: str | None = None
    manufacturer: str | None = None
    model: str | None = None
    year: int | None = None
    notes: str | None = None
    route: str | None = None

    def __post_init__(self) -> None:
        """Normalize blank strings to None and validate known fields."""
        for attr in ("name", "category", "manufacturer", "model", "notes", "route"):
            object.__setattr__(self, attr, _blank_to_none(getattr(self, attr)))

        if self.category is not None and self.category not in BIKE_CATEGORIES:
            raise ValidationError(f"Unknown bike category: {self.category}")
        if self.year is not None:
            if isinstance(self.year, bool) or not isinstance(self.year, int):
                raise ValidationError(f"year must be an integer, got {self.year!r}")
            if self.year <= 0:
                raise ValidationError(f"year must be positive, got {self.year}")

    def as_dict(self) -> dict[str, str | int | None]:
        """Return all fields, including absent ones as None."""
        return {
            "name": self.name,
            "category": self.category,
            "manufacturer": self.manufacturer,
            "model": self.model,
            "year": self.year,
            "notes": self.notes,
            "route": self.route,
        }


@dataclass(frozen=True)
class Bike:
    """A submitted bike entry participating in the ranking."""

    bike_id: str
    image_ref: str
    rating: int = DEFAULT_RATING
    wins: int = 0
    losses: int = 0
    created_at: float = field(default_factory=time.time)
    details: BikeDetails = field(default_factory=BikeDetails)

    def __post_init__(self) -> None:
        """Validate bike data."""
        if not self.bike_id:
            raise ValidationError("bike_id cannot be empty")
        if not self.image_ref:
            raise ValidationError("image_ref cannot be empty")
        # The floor is a ranker setting; only the type is checked here
        if isinstance(self.rating, bool) or not isinstance(self.rating, int):
            raise ValidationError(f"rating must be an integer, got {self.rating!r}")
        if self.wins < 0 or self.losses < 0:
            raise ValidationError(
                f"wins and losses must be non-negative, got {self.wins}/{self.losses}"
            )

    @property
    def battles(self) -> int:
        return self.wins + self.losses

    def with_result(self, rating: int, won: bool) -> "Bike":
        """Return a copy carrying the new rating and one more win or loss."""
        if won:
            return replace(self, rating=rating, wins=self.wins + 1)
        return replace(self, rating=rating, losses=self.losses + 1)


@dataclass(frozen=True)
class Vote:
    """Append-only record of a single head-to-head outcome."""

    winner_id: str
    loser_id: str
    vote_id: str = field(default_factory=new_id)
    created_at: float = field(default_factory=time.time)
    winner_rating: int | None = None
    loser_rating: int | None = None

    def __post_init__(self) -> None:
        """Validate vote data."""
        if not self.winner_id or not self.loser_id:
            raise ValidationError("winner_id and loser_id cannot be empty")
        if self.winner_id == self.loser_id:
            raise InvalidPairError(f"Bike cannot vote against itself: {self.winner_id}")


class Roster:
    """
    Immutable, insertion-ordered snapshot of all known bikes.

    Passed explicitly into the rating engine instead of sharing a mutable list.
    """

    def __init__(self, bikes: Iterable[Bike] = ()):
        self._bikes: dict[str, Bike] = {}
        for bike in bikes:
            if bike.bike_id in self._bikes:
                raise ValidationError(f"Duplicate bike id: {bike.bike_id}")
            self._bikes[bike.bike_id] = bike

    def __len__(self) -> int:
        return len(self._bikes)

    def __iter__(self) -> Iterator[Bike]:
        return iter(self._bikes.values())

    def __contains__(self, bike_id: object) -> bool:
        return bike_id in self._bikes

    def __repr__(self) -> str:
        return f"Roster({len(self._bikes)} bikes)"

    def get(self, bike_id: str) -> Bike:
        """Get a bike by id, raising NotFoundError when absent."""
        try:
            return self._bikes[bike_id]
        except KeyError:
            raise NotFoundError(bike_id) from None

    def ids(self) -> list[str]:
        return list(self._bikes)

    def with_updates(self, *bikes: Bike) -> "Roster":
        """Return a new roster with the given bikes replaced in place."""
        updated = dict(self._bikes)
        for bike in bikes:
            if bike.bike_id not in updated:
                raise NotFoundError(bike.bike_id)
            updated[bike.bike_id] = bike
        return Roster(updated.values())
