"""
Ranker implementations.

Provides implementations of the Ranker interface for updating bike ratings
after each vote.

Available implementations:
- EloRanker: Classic Elo with K=32 and a loser-side floor of 800
"""

from .elo_ranker import EloRanker, round_half_up

__all__ = ["EloRanker", "round_half_up"]
