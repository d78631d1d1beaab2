"""
Shared fixtures: an in-memory catalog standing in for the Shopify store,
a fixed clock, and a TestClient wired to both through dependency overrides.
"""
import pytest
from fastapi.testclient import TestClient

from app.api import deps
from app.core.cache import InMemoryReservationLock
from app.core.event_log import EventLog, InMemoryEventSink
from app.main import app
from fakes import Clock, FakeVariantStore


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def store():
    return FakeVariantStore()


@pytest.fixture
def event_log(clock):
    return EventLog(InMemoryEventSink(1000), clock=clock)


@pytest.fixture
def client(store):
    log = EventLog(InMemoryEventSink(1000))
    lock = InMemoryReservationLock()
    app.dependency_overrides[deps.get_variant_store] = lambda: store
    app.dependency_overrides[deps.get_event_log] = lambda: log
    app.dependency_overrides[deps.get_reservation_lock] = lambda: lock
    with TestClient(app) as test_client:
        test_client.event_log = log
        yield test_client
    app.dependency_overrides.clear()
