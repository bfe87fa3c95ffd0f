# backend/modules/kitchen/services/reconciliation_service.py

"""
Applies inbound notifier events to an engine's local store.

Every kitchen event is a full snapshot of its entity and is applied with
last-write-wins on the event timestamp. Domain rules are never re-run on a
received snapshot; the publisher already applied them.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError

from ..config.kitchen_config import KitchenEngineConfig
from ..enums.kitchen_enums import ChangeOrigin, KitchenTopic
from ..exceptions.kitchen_exceptions import (
    StaleSnapshot,
    EntityNotFound,
    MalformedEvent,
)
from ..metrics.kitchen_metrics import KitchenMetricsCollector
from ..models.kitchen_models import TransitionResult
from ..schemas.kitchen_event_schemas import (
    OrderCreated,
    OrderUpdated,
    MenuItemUpdated,
    OrderStatusChanged,
    OrderItemStatusChanged,
    TimerStateChanged,
    OrderSnapshot,
)
from .kitchen_store import KitchenStore
from .order_lifecycle_service import OrderLifecycleService

logger = logging.getLogger(__name__)


def _wins_tie(incoming_source: Optional[str], local_source: Optional[str]) -> bool:
    if incoming_source == local_source:
        return True
    return (incoming_source or "") > (local_source or "")


class ReconciliationService:
    def __init__(
        self,
        store: KitchenStore,
        module_id: str,
        config: KitchenEngineConfig,
        metrics: KitchenMetricsCollector,
        orders: OrderLifecycleService,
    ):
        self.store = store
        self.module_id = module_id
        self.config = config
        self.metrics = metrics
        self.orders = orders

        self.stale_snapshot_count = 0
        self.malformed_event_count = 0

        self._appliers: Dict[str, Callable[[Dict[str, Any]], Optional[TransitionResult]]] = {
            KitchenTopic.ORDER_CREATED.value: self._apply_order_created,
            KitchenTopic.ORDER_UPDATED.value: self._apply_order_updated,
            KitchenTopic.MENU_ITEM_UPDATED.value: self._apply_menu_item_updated,
            KitchenTopic.ORDER_STATUS_CHANGED.value: self._apply_order_status_changed,
            KitchenTopic.ORDER_ITEM_STATUS_CHANGED.value: self._apply_item_status_changed,
            KitchenTopic.TIMER_STATE_CHANGED.value: self._apply_timer_state_changed,
        }

    @property
    def topics(self):
        return list(self._appliers)

    def apply(self, topic: str, event: Dict[str, Any]) -> Optional[TransitionResult]:
        """
        Apply one inbound event.

        Returns None when the event was ignored (own echo or unknown topic),
        otherwise a TransitionResult; stale and malformed events come back
        as failures and leave local state untouched.
        """
        applier = self._appliers.get(topic)
        if applier is None:
            logger.debug(f"{self.module_id} ignoring event on unhandled topic {topic}")
            return None

        if isinstance(event, dict) and event.get("source") == self.module_id:
            return None

        try:
            return applier(event)
        except ValidationError as e:
            return self._malformed(topic, str(e))

    # Inbound from order intake and menu

    def _apply_order_created(self, event: Dict[str, Any]) -> TransitionResult:
        return self.orders.ingest_order(OrderCreated.model_validate(event))

    def _apply_order_updated(self, event: Dict[str, Any]) -> TransitionResult:
        payload = OrderUpdated.model_validate(event)

        order = self.store.get_order(payload.order_id)
        if order is None:
            logger.warning(f"{self.module_id} dropped update for unknown order {payload.order_id}")
            return TransitionResult.failed(EntityNotFound("order", payload.order_id))

        stale = self._check_stale(
            "order", order.order_id, payload.timestamp, order.updated_at,
            incoming_source=payload.source, local_source=order.updated_source,
        )
        if stale:
            return stale

        item = None
        if payload.item_id is not None:
            item = order.get_item(payload.item_id)
            if item is None:
                logger.warning(
                    f"{self.module_id} dropped update for unknown item "
                    f"{payload.item_id} of order {order.order_id}"
                )
                return TransitionResult.failed(EntityNotFound("item", payload.item_id), order)

        order.status = payload.status
        if item is not None:
            item.status = payload.item_status
        order.updated_at = payload.timestamp
        order.updated_by = payload.updated_by
        order.updated_source = payload.source
        order.origin = ChangeOrigin.RECONCILED

        return self._applied("order", order.order_id, order)

    def _apply_menu_item_updated(self, event: Dict[str, Any]) -> TransitionResult:
        payload = MenuItemUpdated.model_validate(event)
        cached = self.store.menu_items.setdefault(payload.item_id, {"item_id": payload.item_id})
        cached.update(payload.model_dump(exclude_none=True, exclude={"source"}))
        logger.debug(f"Menu item {payload.item_id} cached: {cached}")
        return TransitionResult(success=True, entity=cached, origin=ChangeOrigin.RECONCILED)

    # Peer kitchen snapshots

    def _apply_order_status_changed(self, event: Dict[str, Any]) -> TransitionResult:
        payload = OrderStatusChanged.model_validate(event)
        return self._replace_order(
            payload.order, payload.timestamp, payload.updated_by, payload.source
        )

    def _apply_item_status_changed(self, event: Dict[str, Any]) -> TransitionResult:
        payload = OrderItemStatusChanged.model_validate(event)
        return self._replace_order(
            payload.order, payload.timestamp, payload.updated_by, payload.source
        )

    def _replace_order(
        self,
        snapshot: OrderSnapshot,
        timestamp: datetime,
        updated_by: str,
        source: Optional[str],
    ) -> TransitionResult:
        local = self.store.get_order(snapshot.order_id)
        local_at = local.updated_at if local else self.store.removed_at("order", snapshot.order_id)
        stale = self._check_stale(
            "order", snapshot.order_id, timestamp, local_at, removed=local is None,
            incoming_source=source, local_source=local.updated_source if local else None,
        )
        if stale:
            return stale

        order = snapshot.to_order(timestamp, updated_by, updated_source=source)
        self.store.put_order(order)
        return self._applied("order", order.order_id, order)

    def _apply_timer_state_changed(self, event: Dict[str, Any]) -> TransitionResult:
        payload = TimerStateChanged.model_validate(event)
        timer_id = payload.timer.timer_id

        local = self.store.get_timer(timer_id)
        local_at = local.updated_at if local else self.store.removed_at("timer", timer_id)
        stale = self._check_stale(
            "timer", timer_id, payload.timestamp, local_at, removed=local is None,
            incoming_source=payload.source, local_source=local.updated_source if local else None,
        )
        if stale:
            return stale

        timer = payload.timer.to_timer(
            payload.timestamp, payload.updated_by, updated_source=payload.source
        )
        if payload.deleted:
            self.store.remove_timer(timer_id)
            self.store.mark_removed("timer", timer_id, payload.timestamp)
            logger.info(f"{self.module_id} removed timer {timer_id} deleted by {payload.updated_by}")
        else:
            self.store.put_timer(timer)
        return self._applied("timer", timer_id, timer)

    # Helpers

    def _check_stale(
        self,
        entity_type: str,
        entity_id: str,
        incoming: datetime,
        local: Optional[datetime],
        removed: bool = False,
        incoming_source: Optional[str] = None,
        local_source: Optional[str] = None,
    ) -> Optional[TransitionResult]:
        """
        Last write wins.

        Equal timestamps on a live entity are broken by source module id:
        a redelivery from the same source is accepted, otherwise the higher
        id wins, so every instance keeps the same snapshot. For removed
        entities an equal timestamp is a redelivery and is dropped.
        """
        if local is None or incoming > local:
            return None
        if incoming == local and not removed and _wins_tie(incoming_source, local_source):
            return None

        self.stale_snapshot_count += 1
        self.metrics.record_stale_snapshot(entity_type)
        error = StaleSnapshot(entity_type, entity_id, incoming, local)
        if self.config.LOG_STALE_SNAPSHOTS:
            logger.debug(f"{self.module_id} dropped {error.message}")
        result = TransitionResult.failed(error)
        result.origin = ChangeOrigin.RECONCILED
        return result

    def _applied(self, entity_type: str, entity_id: str, entity) -> TransitionResult:
        self.metrics.record_reconciled(entity_type)
        logger.debug(f"{self.module_id} reconciled {entity_type} {entity_id}")
        return TransitionResult(success=True, entity=entity, origin=ChangeOrigin.RECONCILED)

    def _malformed(self, topic: str, reason: str) -> TransitionResult:
        self.malformed_event_count += 1
        self.metrics.record_malformed_event(topic)
        error = MalformedEvent(topic, reason)
        logger.warning(f"{self.module_id} dropped malformed event on {topic}: {reason}")
        return TransitionResult.failed(error)
