"""
Configuration for the bike battle rating core.
"""

from dataclasses import dataclass

from .exceptions import ConfigurationError
from .models import DEFAULT_RATING, RATING_FLOOR

K_FACTOR = 32


@dataclass
class GameConfig:
    """Rating and persistence settings."""

    k_factor: int = K_FACTOR
    initial_rating: int = DEFAULT_RATING
    rating_floor: int = RATING_FLOOR
    max_commit_retries: int = 3  # re-read and retry when a concurrent vote wins the race

    def __post_init__(self):
        """Validate configuration."""
        if self.k_factor <= 0:
            raise ConfigurationError(f"k_factor must be positive, got {self.k_factor}")
        if self.rating_floor < 0:
            raise ConfigurationError(f"rating_floor must be non-negative, got {self.rating_floor}")
        if self.initial_rating < self.rating_floor:
            raise ConfigurationError(
                f"initial_rating ({self.initial_rating}) must not be below rating_floor ({self.rating_floor})"
            )
        if self.max_commit_retries < 0:
            raise ConfigurationError(
                f"max_commit_retries must be non-negative, got {self.max_commit_retries}"
            )
