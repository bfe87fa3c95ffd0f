# backend/modules/kitchen/enums/__init__.py

from .kitchen_enums import (
    OrderStatus,
    ItemStatus,
    Station,
    OrderType,
    OrderPriority,
    TimerStatus,
    TimerCategory,
    ChangeOrigin,
    ForceReadyKind,
    DeadlineFlag,
    CountdownLevel,
    KitchenTopic,
    TERMINAL_ORDER_STATUSES,
    DONE_ORDER_STATUSES,
)

__all__ = [
    "OrderStatus",
    "ItemStatus",
    "Station",
    "OrderType",
    "OrderPriority",
    "TimerStatus",
    "TimerCategory",
    "ChangeOrigin",
    "ForceReadyKind",
    "DeadlineFlag",
    "CountdownLevel",
    "KitchenTopic",
    "TERMINAL_ORDER_STATUSES",
    "DONE_ORDER_STATUSES",
]
