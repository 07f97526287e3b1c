"""
Tests for ranking derivation and display statistics.
"""

import pytest

from bike_battle.exceptions import NotFoundError
from bike_battle.models import Bike, BikeDetails
from bike_battle.ranking import (
    bike_stats,
    format_win_rate,
    is_hot,
    leaderboard_summary,
    podium,
    rank_bikes,
    rank_of,
    rating_trend,
    win_rate,
)


def make_bike(
    bike_id: str,
    rating: int = 1200,
    wins: int = 0,
    losses: int = 0,
    created_at: float = 0.0,
) -> Bike:
    return Bike(
        bike_id=bike_id,
        image_ref=f"{bike_id}.jpg",
        rating=rating,
        wins=wins,
        losses=losses,
        created_at=created_at,
    )


class TestRankBikes:
    def test_sorted_by_rating_descending(self) -> None:
        bikes = [make_bike("low", 900), make_bike("high", 1500), make_bike("mid", 1200)]

        ranked = rank_bikes(bikes)

        assert [b.bike_id for b in ranked] == ["high", "mid", "low"]

    def test_ties_broken_by_upload_time_then_id(self) -> None:
        bikes = [
            make_bike("c", 1200, created_at=2.0),
            make_bike("b", 1200, created_at=1.0),
            make_bike("a", 1200, created_at=2.0),
        ]

        ranked = rank_bikes(bikes)

        assert [b.bike_id for b in ranked] == ["b", "a", "c"]

    def test_tie_order_is_independent_of_input_order(self) -> None:
        bikes = [make_bike(str(i), 1200, created_at=float(i % 3)) for i in range(9)]

        assert rank_bikes(bikes) == rank_bikes(list(reversed(bikes)))

    def test_rank_of_is_one_based(self) -> None:
        bikes = [make_bike("a", 1000), make_bike("b", 1300), make_bike("c", 1100)]

        assert rank_of("b", bikes) == 1
        assert rank_of("c", bikes) == 2
        assert rank_of("a", bikes) == 3

    def test_rank_of_unknown_bike(self) -> None:
        with pytest.raises(NotFoundError):
            rank_of("missing", [make_bike("a")])


class TestStatistics:
    def test_win_rate_without_battles_is_none(self) -> None:
        assert win_rate(make_bike("a")) is None
        assert format_win_rate(make_bike("a")) == "-"

    def test_win_rate(self) -> None:
        bike = make_bike("a", wins=3, losses=1)

        assert win_rate(bike) == 0.75
        assert format_win_rate(bike) == "75%"

    def test_win_rate_percentage_rounds_half_up(self) -> None:
        # 5 / 8 = 62.5%
        assert format_win_rate(make_bike("a", wins=5, losses=3)) == "63%"

    @pytest.mark.parametrize(
        "wins,losses,trend",
        [(0, 0, "new"), (3, 1, "rising"), (1, 1, "falling"), (0, 4, "falling")],
    )
    def test_rating_trend(self, wins: int, losses: int, trend: str) -> None:
        assert rating_trend(make_bike("a", wins=wins, losses=losses)) == trend

    def test_hot_needs_more_than_sixty_percent(self) -> None:
        assert is_hot(make_bike("a", wins=7, losses=3))
        assert not is_hot(make_bike("a", wins=3, losses=2))
        assert not is_hot(make_bike("a"))

    def test_podium_needs_three_bikes(self) -> None:
        two = [make_bike("a", 1300), make_bike("b", 1200)]
        four = two + [make_bike("c", 1250), make_bike("d", 900)]

        assert podium(two) == []
        assert [b.bike_id for b in podium(four)] == ["a", "c", "b"]

    def test_summary_counts_each_vote_once(self) -> None:
        # Two votes: a beat b, a beat c
        bikes = [
            make_bike("a", wins=2),
            make_bike("b", losses=1),
            make_bike("c", losses=1),
        ]

        summary = leaderboard_summary(bikes)

        assert summary.total_bikes == 3
        assert summary.total_battles == 2

    def test_bike_stats(self) -> None:
        bikes = [
            make_bike("a", 1250, wins=2, losses=1),
            make_bike("b", 1300, wins=4, losses=0),
        ]

        stats = bike_stats("a", bikes)

        assert stats.rank == 2
        assert stats.bike.bike_id == "a"
        assert stats.win_rate == pytest.approx(2 / 3)
        assert stats.trend == "rising"
        assert stats.hot is True

    def test_bike_stats_unknown_bike(self) -> None:
        with pytest.raises(NotFoundError):
            bike_stats("missing", [])

    def test_metadata_has_no_effect_on_rank(self) -> None:
        plain = make_bike("a", 1200, created_at=1.0)
        named = Bike(
            bike_id="b",
            image_ref="b.jpg",
            created_at=2.0,
            details=BikeDetails(name="Zebra", category="BMX"),
        )

        assert [b.bike_id for b in rank_bikes([named, plain])] == ["a", "b"]
