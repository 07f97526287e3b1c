"""
Selector implementations.

Provides implementations of the Selector interface for choosing which two
bikes to put head to head next.

Available implementations:
- RandomPairSelector: Uniform random pair of distinct bikes
"""

from .random_selector import RandomPairSelector

__all__ = ["RandomPairSelector"]
