"""Exceptions raised by the pricing engine."""


class SurgeSimError(Exception):
    """Base class for pricing engine errors."""


class InvalidStatus(SurgeSimError, ValueError):
    """A status value outside the Status enumeration."""

    def __init__(self, value):
        super().__init__(f"invalid status value: {value!r}")
        self.value = value


class NegativeSupply(SurgeSimError, RuntimeError):
    """
    A decrement would take a region's supply below zero.

    Signals a seeded supply that did not match the agents, or a missed event.
    """

    def __init__(self, region_id: str):
        super().__init__(f"supply for region {region_id} would become negative")
        self.region_id = region_id
