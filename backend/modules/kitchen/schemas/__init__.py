from .kitchen_event_schemas import (
    PrepStepSnapshot,
    OrderItemSnapshot,
    ForceReadySnapshot,
    OrderSnapshot,
    TimerSnapshot,
    KitchenEvent,
    OrderStatusChanged,
    OrderItemStatusChanged,
    TimerStateChanged,
    PrepStepPayload,
    OrderCreatedItem,
    OrderCreated,
    OrderUpdated,
    MenuItemUpdated,
)

__all__ = [
    "PrepStepSnapshot",
    "OrderItemSnapshot",
    "ForceReadySnapshot",
    "OrderSnapshot",
    "TimerSnapshot",
    "KitchenEvent",
    "OrderStatusChanged",
    "OrderItemStatusChanged",
    "TimerStateChanged",
    "PrepStepPayload",
    "OrderCreatedItem",
    "OrderCreated",
    "OrderUpdated",
    "MenuItemUpdated",
]
