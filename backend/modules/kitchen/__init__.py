# backend/modules/kitchen/__init__.py

"""
Kitchen order and timer lifecycle engine shared by the kitchen boards.
"""

from .enums import *
from .models import *
from .services import *

__all__ = [
    # Enums
    "OrderStatus",
    "ItemStatus",
    "Station",
    "TimerStatus",
    "KitchenTopic",
    "ChangeOrigin",
    # Models
    "Order",
    "OrderItem",
    "PrepStep",
    "Timer",
    "TransitionResult",
    "TickReport",
    # Services
    "KitchenEngine",
    "InMemoryNotifier",
    "SystemClock",
    "ManualClock",
    "BoardProjectionService",
]
