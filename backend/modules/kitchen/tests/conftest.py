import pytest
from datetime import datetime, timezone

from modules.kitchen.config.kitchen_config import KitchenEngineConfig
from modules.kitchen.enums.kitchen_enums import KitchenTopic
from modules.kitchen.services.clock import ManualClock
from modules.kitchen.services.kitchen_engine import KitchenEngine
from modules.kitchen.services.notifier import InMemoryNotifier

START = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock():
    """Clock pinned at noon UTC, moved explicitly by tests."""
    return ManualClock(START)


@pytest.fixture
def config():
    return KitchenEngineConfig()


@pytest.fixture
def notifier():
    return InMemoryNotifier(history_size=100)


@pytest.fixture
def engine(notifier, clock, config):
    """Engine backing the queue board."""
    kitchen_engine = KitchenEngine(notifier, "queue-board", clock=clock, config=config)
    yield kitchen_engine
    kitchen_engine.shutdown()


@pytest.fixture
def peer_engine(notifier, clock, config):
    """Second engine, as the station board would hold, on the same notifier."""
    kitchen_engine = KitchenEngine(notifier, "station-board", clock=clock, config=config)
    yield kitchen_engine
    kitchen_engine.shutdown()


@pytest.fixture
def order_payload():
    """Factory for order-intake payloads; defaults to order #1001."""

    def _make(order_id="order-1001", order_number="#1001", **overrides):
        payload = {
            "order_id": order_id,
            "order_number": order_number,
            "order_type": "DINE_IN",
            "priority": "medium",
            "items": [
                {
                    "item_id": "item-burger",
                    "name": "Classic Burger",
                    "quantity": 2,
                    "station": "grill",
                    "estimated_minutes": 15,
                },
                {
                    "item_id": "item-fries",
                    "name": "Fries",
                    "quantity": 1,
                    "station": "prep",
                    "estimated_minutes": 10,
                },
            ],
        }
        payload.update(overrides)
        return payload

    return _make


@pytest.fixture
def steak_payload(order_payload):
    """Order #2001: a steak with three prep steps and a plain salad."""
    return order_payload(
        order_id="order-2001",
        order_number="#2001",
        items=[
            {
                "item_id": "item-steak",
                "name": "Ribeye Steak",
                "quantity": 1,
                "station": "grill",
                "prep_steps": [
                    {"step_id": "step-sear", "name": "Sear", "estimated_minutes": 6},
                    {"step_id": "step-rest", "name": "Rest", "estimated_minutes": 4},
                    {
                        "step_id": "step-plate",
                        "name": "Plate",
                        "station": "prep",
                        "estimated_minutes": 2,
                    },
                ],
            },
            {
                "item_id": "item-salad",
                "name": "Side Salad",
                "quantity": 1,
                "station": "salad",
                "estimated_minutes": 5,
            },
        ],
    )


@pytest.fixture
def order_1001(engine, order_payload):
    return engine.ingest_order(order_payload()).entity


@pytest.fixture
def steak_order(engine, steak_payload):
    return engine.ingest_order(steak_payload).entity


@pytest.fixture
def shared_order(notifier, engine, peer_engine, order_payload):
    """Order #1002 delivered to both engines through the notifier."""
    notifier.publish(
        KitchenTopic.ORDER_CREATED.value,
        order_payload(order_id="order-1002", order_number="#1002"),
    )
    return "order-1002"
