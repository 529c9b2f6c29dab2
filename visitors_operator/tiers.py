"""
The ordered deployment stages of the application
"""

# Standard
from enum import Enum


class Tier(Enum):
    """The tiers in creation order. Each tier depends on the readiness of the
    one before it.
    """

    PERSISTENCE = "persistence"
    BACKEND = "backend"
    FRONTEND = "frontend"

    @property
    def order(self) -> int:
        return list(Tier).index(self)

    def __lt__(self, other):
        if not isinstance(other, Tier):
            return NotImplemented
        return self.order < other.order
