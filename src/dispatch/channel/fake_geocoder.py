"""Fake geocoder — looks addresses up in a table seeded by tests.

Unknown addresses resolve to None, just as a real geocoder reports a miss.
"""

from dispatch.channel.geocoding_port import GeocodingPort


def _normalise(address: str) -> str:
    return " ".join((address or "").lower().replace(",", " ").split())


class FakeGeocoder(GeocodingPort):
    def __init__(self):
        self.known: dict[str, tuple[float, float]] = {}
        self.lookups: list[str] = []

    def configure(self, known: dict[str, tuple[float, float]]):
        """Seed the addresses this geocoder can resolve."""
        self.known = {_normalise(address): coords for address, coords in known.items()}

    def resolve(self, address: str) -> tuple[float, float] | None:
        self.lookups.append(address)
        return self.known.get(_normalise(address))

    def reset(self):
        self.known.clear()
        self.lookups.clear()
