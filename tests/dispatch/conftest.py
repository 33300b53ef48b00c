from datetime import timedelta

import pytest
from protean.integrations.pytest import DomainFixture

from dispatch.channel import reset_channels
from dispatch.config import reset_settings
from dispatch.utils.clock import utcnow


@pytest.fixture(scope="session")
def dispatch_bed():
    from dispatch.domain import dispatch

    bed = DomainFixture(dispatch)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(dispatch_bed):
    with dispatch_bed.domain_context():
        yield


@pytest.fixture(autouse=True)
def _reset_adapters():
    """Fresh fake adapters and environment-derived settings for every test."""
    reset_channels()
    reset_settings()
    yield
    reset_channels()
    reset_settings()


# ---------------------------------------------------------------------------
# Shared order data
# ---------------------------------------------------------------------------
CONNAUGHT_PLACE = (28.6315, 77.2167)
INDIA_GATE = (28.6129, 77.2295)


@pytest.fixture()
def pickup_data():
    return {
        "name": "Asha Verma",
        "phone": "+91-98100-00001",
        "addr1": "Block A, Connaught Place",
        "city": "New Delhi",
        "state": "Delhi",
        "postal": "110001",
        "lat": CONNAUGHT_PLACE[0],
        "lng": CONNAUGHT_PLACE[1],
    }


@pytest.fixture()
def dropoff_data():
    return {
        "name": "Ravi Kumar",
        "phone": "+91-98100-00002",
        "addr1": "Rajpath, India Gate",
        "city": "New Delhi",
        "state": "Delhi",
        "postal": "110003",
        "lat": INDIA_GATE[0],
        "lng": INDIA_GATE[1],
    }


@pytest.fixture()
def package_data():
    return {"description": "Documents", "weight_kg": 2.0, "length_cm": 30, "width_cm": 20, "height_cm": 5}


@pytest.fixture()
def in_two_hours():
    return utcnow() + timedelta(hours=2)
