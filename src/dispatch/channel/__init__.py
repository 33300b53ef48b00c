"""Channel adapter registry — pluggable geocoding, payment and transition sinks.

Provides get_*/set_*/reset_* singletons. Fake adapters are used by default;
real adapters are selected through GEOCODER_ADAPTER and PAYMENT_ADAPTER.
"""

import os

from dispatch.channel.geocoding_port import GeocodingPort
from dispatch.channel.payment_port import PaymentPort
from dispatch.channel.sink_port import TransitionSink

_geocoder: GeocodingPort | None = None
_payments: PaymentPort | None = None
_sinks: list[TransitionSink] | None = None


def get_geocoder() -> GeocodingPort:
    """Return the configured geocoding adapter (singleton)."""
    global _geocoder
    if _geocoder is None:
        adapter = os.environ.get("GEOCODER_ADAPTER", "fake")
        if adapter == "fake":
            from dispatch.channel.fake_geocoder import FakeGeocoder

            _geocoder = FakeGeocoder()
        else:
            raise ValueError(f"Unknown geocoder adapter: {adapter}")
    return _geocoder


def set_geocoder(geocoder: GeocodingPort) -> None:
    """Override the active geocoder (useful for tests)."""
    global _geocoder
    _geocoder = geocoder


def get_payments() -> PaymentPort:
    """Return the configured payment adapter (singleton)."""
    global _payments
    if _payments is None:
        adapter = os.environ.get("PAYMENT_ADAPTER", "fake")
        if adapter == "fake":
            from dispatch.channel.fake_payments import FakePayments

            _payments = FakePayments()
        else:
            raise ValueError(f"Unknown payment adapter: {adapter}")
    return _payments


def set_payments(payments: PaymentPort) -> None:
    """Override the active payment adapter (useful for tests)."""
    global _payments
    _payments = payments


def get_sinks() -> list[TransitionSink]:
    """Return the transition sinks notified after every order transition."""
    global _sinks
    if _sinks is None:
        from dispatch.channel.recording_sink import NotificationSink, TrackingSink

        _sinks = [NotificationSink(), TrackingSink()]
    return _sinks


def set_sinks(sinks: list[TransitionSink]) -> None:
    """Override the active transition sinks (useful for tests)."""
    global _sinks
    _sinks = list(sinks)


def reset_channels() -> None:
    """Reset all channel singletons (useful for testing)."""
    global _geocoder, _payments, _sinks
    _geocoder = None
    _payments = None
    _sinks = None
