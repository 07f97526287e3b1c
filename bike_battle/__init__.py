"""
Bike Battle - head-to-head bike photo voting

Rating core for a voting game where uploaded bikes are paired at random and
each vote updates an Elo rating (K=32, floor 800 on the losing side).
"""

from .config import GameConfig
from .exceptions import (
    ConfigurationError,
    InsufficientEntitiesError,
    InvalidPairError,
    NotFoundError,
    StaleRecordError,
    ValidationError,
)
from .interfaces import RecordStore, Ranker, Selector
from .models import Bike, BikeDetails, Roster, Vote
from .service import BikeBattle

__version__ = "0.1.0"
__all__ = [
    "Bike",
    "BikeDetails",
    "Roster",
    "Vote",
    "RecordStore",
    "Ranker",
    "Selector",
    "BikeBattle",
    "GameConfig",
    "ConfigurationError",
    "InsufficientEntitiesError",
    "InvalidPairError",
    "NotFoundError",
    "StaleRecordError",
    "ValidationError",
]
