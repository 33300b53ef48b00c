"""Geocoding port — resolves a free-text address to coordinates."""

from abc import ABC, abstractmethod


class GeocodingPort(ABC):
    """Abstract interface for geocoding adapters."""

    @abstractmethod
    def resolve(self, address: str) -> tuple[float, float] | None:
        """Return (latitude, longitude) for the address, or None if it cannot be found."""
        ...
