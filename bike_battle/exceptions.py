"""
Exception classes for the bike battle system.

Centralized location for all custom exceptions to avoid circular imports.
"""


class ValidationError(Exception):
    """Base exception for validation-related errors."""
    pass


class ConfigurationError(Exception):
    """Base exception for configuration-related errors."""
    pass


class InvalidPairError(ValidationError):
    """A vote or pair references the same bike as both winner and loser."""
    pass


class NotFoundError(KeyError):
    """A bike id is not part of the known bike set."""

    def __init__(self, bike_id: str):
        super().__init__(bike_id)
        self.bike_id: str = bike_id

    def __str__(self) -> str:
        return f"Bike not found: {self.bike_id}"


class InsufficientEntitiesError(Exception):
    """Fewer than two bikes are available for a comparison."""

    def __init__(self, available: int):
        super().__init__(f"Need at least 2 bikes to compare, got {available}")
        self.available: int = available


class StaleRecordError(Exception):
    """A stored bike changed between reading it and committing an outcome."""
    pass
