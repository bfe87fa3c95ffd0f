# backend/modules/kitchen/enums/kitchen_enums.py

from enum import Enum


class OrderStatus(str, Enum):
    CREATED = "CREATED"
    PAID = "PAID"
    PREPARING = "PREPARING"
    READY = "READY"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class ItemStatus(str, Enum):
    PENDING = "pending"
    PREPARING = "preparing"
    READY = "ready"


class Station(str, Enum):
    GRILL = "grill"
    PREP = "prep"
    SALAD = "salad"
    DESSERT = "dessert"
    DRINKS = "drinks"


class OrderType(str, Enum):
    DINE_IN = "DINE_IN"
    TAKEOUT = "TAKEOUT"
    DELIVERY = "DELIVERY"


class OrderPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TimerStatus(str, Enum):
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    OVERDUE = "overdue"


class TimerCategory(str, Enum):
    COOKING = "cooking"
    PREP = "prep"
    RESTING = "resting"
    HOLDING = "holding"
    CUSTOM = "custom"


class ChangeOrigin(str, Enum):
    """Whether the current state was applied locally or taken from a peer snapshot"""

    LOCAL = "local"
    RECONCILED = "reconciled"


class ForceReadyKind(str, Enum):
    ORDER = "order"
    ITEM = "item"


class DeadlineFlag(str, Enum):
    ON_TRACK = "on_track"
    URGENT = "urgent"
    OVERDUE = "overdue"
    DONE = "done"


class CountdownLevel(str, Enum):
    NORMAL = "normal"
    WARNING = "warning"
    CRITICAL = "critical"


class KitchenTopic(str, Enum):
    # Inbound from order intake and menu modules
    ORDER_CREATED = "order.created"
    ORDER_UPDATED = "order.updated"
    MENU_ITEM_UPDATED = "menu.item.updated"

    # Exchanged between kitchen engine instances
    ORDER_STATUS_CHANGED = "kitchen.order.status.changed"
    ORDER_ITEM_STATUS_CHANGED = "kitchen.item.status.changed"
    TIMER_STATE_CHANGED = "kitchen.timer.state.changed"


TERMINAL_ORDER_STATUSES = frozenset([OrderStatus.COMPLETED, OrderStatus.CANCELLED])

# Orders in these statuses are finished from the kitchen's point of view and
# are never flagged overdue.
DONE_ORDER_STATUSES = frozenset(
    [OrderStatus.READY, OrderStatus.COMPLETED, OrderStatus.CANCELLED]
)
