# backend/modules/kitchen/services/event_publisher.py

"""
Builds outbound kitchen events and hands them to the notifier.

Every event carries the full post-transition snapshot, the publishing
module id as ``source``, the acting user and the entity's ``updated_at`` as
timestamp so peers can apply last-write-wins.
"""

import logging
from typing import Any, Dict

from ..enums.kitchen_enums import KitchenTopic
from ..models.kitchen_models import Order, OrderItem, Timer
from ..schemas.kitchen_event_schemas import (
    OrderSnapshot,
    TimerSnapshot,
    OrderStatusChanged,
    OrderItemStatusChanged,
    TimerStateChanged,
)
from .notifier import Notifier

logger = logging.getLogger(__name__)


class KitchenEventPublisher:
    def __init__(self, notifier: Notifier, module_id: str):
        self.notifier = notifier
        self.module_id = module_id
        self.enabled = True

    def _publish(self, topic: KitchenTopic, payload: Dict[str, Any]) -> Dict[str, Any]:
        if not self.enabled:
            logger.debug(f"Publisher for {self.module_id} disabled, dropping {topic.value}")
            return payload
        self.notifier.publish(topic.value, payload)
        return payload

    def order_status_changed(self, order: Order) -> Dict[str, Any]:
        event = OrderStatusChanged(
            source=self.module_id,
            updated_by=order.updated_by,
            timestamp=order.updated_at,
            order=OrderSnapshot.from_order(order),
        )
        logger.debug(
            f"{self.module_id} publishing order {order.order_id} status {order.status.value}"
        )
        return self._publish(
            KitchenTopic.ORDER_STATUS_CHANGED, event.model_dump(mode="json")
        )

    def item_status_changed(self, order: Order, item: OrderItem) -> Dict[str, Any]:
        event = OrderItemStatusChanged(
            source=self.module_id,
            updated_by=order.updated_by,
            timestamp=order.updated_at,
            item_id=item.item_id,
            item_status=item.status,
            order=OrderSnapshot.from_order(order),
        )
        return self._publish(
            KitchenTopic.ORDER_ITEM_STATUS_CHANGED, event.model_dump(mode="json")
        )

    def timer_state_changed(self, timer: Timer, deleted: bool = False) -> Dict[str, Any]:
        event = TimerStateChanged(
            source=self.module_id,
            updated_by=timer.updated_by,
            timestamp=timer.updated_at,
            timer=TimerSnapshot.from_timer(timer),
            deleted=deleted,
        )
        return self._publish(
            KitchenTopic.TIMER_STATE_CHANGED, event.model_dump(mode="json")
        )
