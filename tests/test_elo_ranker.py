"""
Tests for EloRanker implementation.

Focus on the pairwise update rule, the loser-side floor and id handling.
"""

import pytest

from bike_battle.exceptions import InvalidPairError, NotFoundError
from bike_battle.models import Bike, Roster
from bike_battle.rankers.elo_ranker import EloRanker, round_half_up


def make_bike(bike_id: str, rating: int = 1200, wins: int = 0, losses: int = 0) -> Bike:
    return Bike(bike_id=bike_id, image_ref=f"images/{bike_id}.jpg", rating=rating, wins=wins, losses=losses)


RATING_PAIRS = [
    (1200, 1200),
    (1600, 1200),
    (1200, 1600),
    (800, 800),
    (805, 805),
    (800, 2400),
    (2400, 800),
    (1013, 987),
]


class TestEloRanker:
    """Test EloRanker behavior through public interface."""

    def test_equal_ratings_move_by_sixteen(self) -> None:
        """Two 1200 bikes: winner gains 16, loser drops 16."""
        # Arrange
        ranker = EloRanker()
        a = make_bike("a")
        b = make_bike("b")

        # Act
        new_a, new_b = ranker.rate(a, b)

        # Assert
        assert new_a.rating == 1216
        assert new_b.rating == 1184
        assert new_a.wins == 1 and new_a.losses == 0
        assert new_b.losses == 1 and new_b.wins == 0

    def test_favorite_wins_small_gain(self) -> None:
        """1600 beating 1200 moves each side by about 3 points."""
        ranker = EloRanker()

        new_a, new_b = ranker.rate(make_bike("a", 1600), make_bike("b", 1200))

        assert new_a.rating == 1603
        assert new_b.rating == 1197

    def test_underdog_wins_large_gain(self) -> None:
        """1200 beating 1600 moves each side by about 29 points."""
        ranker = EloRanker()

        new_a, new_b = ranker.rate(make_bike("a", 1200), make_bike("b", 1600))

        assert new_a.rating == 1229
        assert new_b.rating == 1571

    def test_loser_is_clamped_to_floor(self) -> None:
        """805 losing to an equal bike would fall to 789 and is clamped to 800."""
        ranker = EloRanker()

        _, new_loser = ranker.rate(make_bike("a", 805), make_bike("b", 805))

        assert new_loser.rating == 800

    def test_winner_is_never_capped(self) -> None:
        """Only the floor exists; high ratings keep climbing."""
        ranker = EloRanker()

        new_winner, _ = ranker.rate(make_bike("a", 3000), make_bike("b", 2990))

        assert new_winner.rating > 3000

    def test_inputs_are_not_mutated(self) -> None:
        ranker = EloRanker()
        winner = make_bike("a", 1300, wins=2, losses=1)
        loser = make_bike("b", 1250, wins=0, losses=4)

        ranker.rate(winner, loser)

        assert (winner.rating, winner.wins, winner.losses) == (1300, 2, 1)
        assert (loser.rating, loser.wins, loser.losses) == (1250, 0, 4)

    def test_half_points_round_up(self) -> None:
        """With K=33 equal bikes move by 16.5, which rounds up like Math.round."""
        ranker = EloRanker(k_factor=33)

        new_a, new_b = ranker.rate(make_bike("a"), make_bike("b"))

        assert new_a.rating == 1217
        assert new_b.rating == 1184

    @pytest.mark.parametrize("winner_rating,loser_rating", RATING_PAIRS)
    def test_floor_and_monotonicity(self, winner_rating: int, loser_rating: int) -> None:
        """Winner never drops, loser never rises above its old rating, floor holds."""
        ranker = EloRanker()
        winner = make_bike("w", winner_rating)
        loser = make_bike("l", loser_rating)

        new_winner, new_loser = ranker.rate(winner, loser)

        assert new_winner.rating >= winner.rating
        assert new_loser.rating >= 800
        assert new_loser.rating <= max(loser.rating, 800)
        assert isinstance(new_winner.rating, int) and isinstance(new_loser.rating, int)

    @pytest.mark.parametrize("winner_rating,loser_rating", RATING_PAIRS)
    def test_counters_change_by_exactly_one(self, winner_rating: int, loser_rating: int) -> None:
        ranker = EloRanker()
        winner = make_bike("w", winner_rating, wins=3, losses=5)
        loser = make_bike("l", loser_rating, wins=7, losses=2)

        new_winner, new_loser = ranker.rate(winner, loser)

        assert (new_winner.wins, new_winner.losses) == (4, 5)
        assert (new_loser.wins, new_loser.losses) == (7, 3)

    def test_expected_scores_sum_to_one(self) -> None:
        ew = EloRanker.expected_score(1600, 1200)
        el = EloRanker.expected_score(1200, 1600)

        assert ew == pytest.approx(0.909, abs=1e-3)
        assert ew + el == pytest.approx(1.0)

    def test_self_vote_is_rejected(self) -> None:
        ranker = EloRanker()
        bike = make_bike("x")

        with pytest.raises(InvalidPairError):
            ranker.rate(bike, bike)

    def test_metadata_is_preserved(self) -> None:
        ranker = EloRanker()
        winner = make_bike("a")
        loser = make_bike("b")

        new_winner, new_loser = ranker.rate(winner, loser)

        assert new_winner.image_ref == winner.image_ref
        assert new_winner.created_at == winner.created_at
        assert new_loser.details == loser.details


class TestApplyOutcome:
    """Id-based updates over an explicit roster."""

    def test_apply_outcome_by_id(self) -> None:
        ranker = EloRanker()
        roster = Roster([make_bike("a"), make_bike("b"), make_bike("c")])

        new_a, new_b = ranker.apply_outcome(roster, "a", "b")

        assert (new_a.rating, new_b.rating) == (1216, 1184)
        # Roster itself is untouched
        assert roster.get("a").rating == 1200
        assert roster.get("b").rating == 1200

    def test_self_vote_checked_before_lookup(self) -> None:
        ranker = EloRanker()

        with pytest.raises(InvalidPairError):
            ranker.apply_outcome(Roster(), "ghost", "ghost")

    @pytest.mark.parametrize("winner_id,loser_id", [("a", "missing"), ("missing", "a")])
    def test_unknown_id_raises_not_found(self, winner_id: str, loser_id: str) -> None:
        ranker = EloRanker()
        roster = Roster([make_bike("a"), make_bike("b")])

        with pytest.raises(NotFoundError) as exc_info:
            ranker.apply_outcome(roster, winner_id, loser_id)

        assert exc_info.value.bike_id == "missing"


class TestRoundHalfUp:
    @pytest.mark.parametrize(
        "value,expected",
        [(2.5, 3), (2.4999, 2), (-2.5, -2), (-2.51, -3), (1216.0, 1216), (1183.5, 1184)],
    )
    def test_matches_javascript_math_round(self, value: float, expected: int) -> None:
        assert round_half_up(value) == expected
