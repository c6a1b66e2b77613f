"""
Shared fixtures.

The environment is pinned before any orderdesk import so the cached
settings select the development services and the in-memory store.
"""

import os

os.environ["ENV_MODE"] = "development"
os.environ["STORE_BACKEND"] = "memory"
os.environ["REALTIME_BACKEND"] = "memory"
os.environ["MOCK_FAILURE_RATE"] = "0"

import pytest

from orderdesk.services.chat.handler import ChatCommandHandler
from orderdesk.services.notifications.fanout import NotificationFanout
from orderdesk.services.notifications.mock import MockChatTransport
from orderdesk.services.ordering.fulfillment import FulfillmentService
from orderdesk.services.realtime.memory import InMemoryRealtimeChannel
from orderdesk.services.sequence import SequenceGenerator
from orderdesk.services.store.memory import InMemoryOrderStore

SHOP_CONTACT = "+919876500001"


def seed_demo(store: InMemoryOrderStore):
    """Chai Point: Tea 10, Coffee 20, Samosa 15, Sandwich 60/80, Juice (off)."""
    shop = store.add_shop("Chai Point", SHOP_CONTACT, pincode="560038")
    store.add_menu_item(shop.id, "Tea", "10", code="TEA")
    store.add_menu_item(shop.id, "Coffee", "20", code="COF")
    store.add_menu_item(shop.id, "Samosa", "15", code="SAM")
    store.add_menu_item(
        shop.id,
        "Sandwich",
        "60",
        code="SW",
        variants=[
            {"code": "veg", "label": "Veg", "price": "60"},
            {"code": "paneer", "label": "Paneer", "price": "80"},
            {"code": "cheese", "label": "Cheese", "price": "90", "available": False},
        ],
    )
    store.add_menu_item(shop.id, "Juice", "40", code="JU", available=False)
    return shop


@pytest.fixture
def store():
    store = InMemoryOrderStore()
    seed_demo(store)
    return store


@pytest.fixture
def shop(store):
    return store._shops[1]


@pytest.fixture
def transport():
    return MockChatTransport()


@pytest.fixture
def channel():
    return InMemoryRealtimeChannel()


@pytest.fixture
def fanout(channel, transport):
    return NotificationFanout(channel, transport, timeout=0.5)


@pytest.fixture
def service(store, fanout):
    return FulfillmentService(store, SequenceGenerator(store), fanout)


@pytest.fixture
def handler(store, service):
    return ChatCommandHandler(store, service)
