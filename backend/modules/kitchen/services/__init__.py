from .clock import Clock, SystemClock, ManualClock
from .notifier import Notifier, InMemoryNotifier, Subscription, PublishedEvent
from .kitchen_store import KitchenStore
from .event_publisher import KitchenEventPublisher
from .order_lifecycle_service import OrderLifecycleService, VALID_TRANSITIONS
from .timer_lifecycle_service import TimerLifecycleService
from .reconciliation_service import ReconciliationService
from .kitchen_engine import KitchenEngine
from .board_projection_service import BoardProjectionService, TimerBoardSummary

__all__ = [
    "Clock",
    "SystemClock",
    "ManualClock",
    "Notifier",
    "InMemoryNotifier",
    "Subscription",
    "PublishedEvent",
    "KitchenStore",
    "KitchenEventPublisher",
    "OrderLifecycleService",
    "VALID_TRANSITIONS",
    "TimerLifecycleService",
    "ReconciliationService",
    "KitchenEngine",
    "BoardProjectionService",
    "TimerBoardSummary",
]
