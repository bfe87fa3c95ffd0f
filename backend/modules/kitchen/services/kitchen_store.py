# backend/modules/kitchen/services/kitchen_store.py

"""
Per-engine in-memory store.

Each engine instance owns exactly one store; nothing here is shared between
instances. Dict insertion order is the display order for orders and timers.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Set, Tuple

from ..enums.kitchen_enums import Station, TimerStatus
from ..models.kitchen_models import Order, Timer


@dataclass
class KitchenStore:
    orders: Dict[str, Order] = field(default_factory=dict)
    timers: Dict[str, Timer] = field(default_factory=dict)

    # Views that must acknowledge a terminal order before it is dropped
    views: Set[str] = field(default_factory=set)
    acknowledgements: Dict[str, Set[str]] = field(default_factory=dict)

    # Latest MenuItemUpdated payload per menu item, for views only
    menu_items: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    # Removal instants, so an older snapshot cannot bring an entity back
    tombstones: Dict[Tuple[str, str], datetime] = field(default_factory=dict)

    def get_order(self, order_id: str) -> Optional[Order]:
        return self.orders.get(order_id)

    def get_timer(self, timer_id: str) -> Optional[Timer]:
        return self.timers.get(timer_id)

    def put_order(self, order: Order) -> None:
        self.orders[order.order_id] = order

    def put_timer(self, timer: Timer) -> None:
        self.timers[timer.timer_id] = timer

    def remove_order(self, order_id: str) -> Optional[Order]:
        self.acknowledgements.pop(order_id, None)
        return self.orders.pop(order_id, None)

    def remove_timer(self, timer_id: str) -> Optional[Timer]:
        return self.timers.pop(timer_id, None)

    def active_orders(self) -> List[Order]:
        return [order for order in self.orders.values() if not order.is_terminal]

    def live_timers(self) -> List[Timer]:
        return [
            timer
            for timer in self.timers.values()
            if timer.status != TimerStatus.COMPLETED
        ]

    def timers_for_order(self, order_id: str) -> List[Timer]:
        return [timer for timer in self.timers.values() if timer.order_id == order_id]

    def timers_for_station(self, station: Station) -> List[Timer]:
        return [timer for timer in self.timers.values() if timer.station == station]

    def mark_removed(self, entity_type: str, entity_id: str, at: datetime) -> None:
        self.tombstones[(entity_type, entity_id)] = at

    def removed_at(self, entity_type: str, entity_id: str) -> Optional[datetime]:
        return self.tombstones.get((entity_type, entity_id))

    def evict_tombstones(self, older_than: datetime) -> int:
        """Forget removals recorded before ``older_than``; returns how many"""
        expired = [key for key, at in self.tombstones.items() if at < older_than]
        for key in expired:
            del self.tombstones[key]
        return len(expired)
