"""
Ranking derivation and display statistics.

Pure helpers over a collection of bikes: leaderboard order, rank lookup,
win rate and the per-bike summary shown by the search view.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Literal

from .exceptions import NotFoundError
from .models import Bike
from .rankers.elo_ranker import round_half_up

HOT_WIN_RATE = 0.6
PODIUM_SIZE = 3

Trend = Literal["new", "rising", "falling"]


def _sort_key(bike: Bike) -> tuple[int, float, str]:
    # Rating descending; older uploads first, then id, for stable ties
    return (-bike.rating, bike.created_at, bike.bike_id)


def rank_bikes(bikes: Iterable[Bike]) -> list[Bike]:
    """Return bikes ordered by rating, highest first."""
    return sorted(bikes, key=_sort_key)


def rank_of(bike_id: str, bikes: Iterable[Bike]) -> int:
    """Return the 1-based leaderboard position of ``bike_id``."""
    for position, bike in enumerate(rank_bikes(bikes), 1):
        if bike.bike_id == bike_id:
            return position
    raise NotFoundError(bike_id)


def win_rate(bike: Bike) -> float | None:
    """Fraction of battles won, or None when the bike has not battled yet."""
    if bike.battles == 0:
        return None
    return bike.wins / bike.battles


def rating_trend(bike: Bike) -> Trend:
    rate = win_rate(bike)
    if rate is None:
        return "new"
    return "rising" if rate > 0.5 else "falling"


def is_hot(bike: Bike) -> bool:
    """Whether the bike wins more than 60% of its battles."""
    rate = win_rate(bike)
    return rate is not None and rate > HOT_WIN_RATE


def podium(bikes: Iterable[Bike]) -> list[Bike]:
    """Top three bikes, or an empty list while fewer than three exist."""
    ranked = rank_bikes(bikes)
    if len(ranked) < PODIUM_SIZE:
        return []
    return ranked[:PODIUM_SIZE]


@dataclass(frozen=True)
class LeaderboardSummary:
    total_bikes: int
    total_battles: int


def leaderboard_summary(bikes: Iterable[Bike]) -> LeaderboardSummary:
    """Count bikes and votes. Every vote adds exactly one win."""
    bikes = list(bikes)
    return LeaderboardSummary(
        total_bikes=len(bikes),
        total_battles=sum(bike.wins for bike in bikes),
    )


@dataclass(frozen=True)
class BikeStats:
    """Everything the search view shows for a single bike."""

    bike: Bike
    rank: int
    win_rate: float | None
    trend: Trend
    hot: bool


def bike_stats(bike_id: str, bikes: Iterable[Bike]) -> BikeStats:
    ranked = rank_bikes(bikes)
    for position, bike in enumerate(ranked, 1):
        if bike.bike_id == bike_id:
            return BikeStats(
                bike=bike,
                rank=position,
                win_rate=win_rate(bike),
                trend=rating_trend(bike),
                hot=is_hot(bike),
            )
    raise NotFoundError(bike_id)


def format_win_rate(bike: Bike) -> str:
    """Whole-percent win rate, or '-' when there is no data."""
    rate = win_rate(bike)
    if rate is None:
        return "-"
    return f"{round_half_up(rate * 100)}%"
