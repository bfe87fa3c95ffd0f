# backend/modules/kitchen/services/order_lifecycle_service.py

"""
Order lifecycle state machine.

Orders move CREATED -> PAID -> PREPARING -> READY -> COMPLETED, with
CANCELLED reachable from any non-terminal state. Items move
pending -> preparing -> ready underneath. Every successful transition
stamps the order, publishes the full post-transition snapshot, and returns
a TransitionResult; failures come back as values carrying the error.
"""

import logging
from datetime import timedelta
from typing import List, Optional, Union

from ..config.kitchen_config import KitchenEngineConfig
from ..enums.kitchen_enums import (
    OrderStatus,
    ItemStatus,
    OrderPriority,
    ChangeOrigin,
    ForceReadyKind,
)
from ..exceptions.kitchen_exceptions import (
    KitchenEngineError,
    InvalidTransition,
    PreconditionFailed,
    EntityNotFound,
)
from ..metrics.kitchen_metrics import KitchenMetricsCollector
from ..models.kitchen_models import (
    Order,
    OrderItem,
    PrepStep,
    ForceReadyRecord,
    TransitionResult,
)
from ..schemas.kitchen_event_schemas import OrderCreated
from .clock import Clock
from .event_publisher import KitchenEventPublisher
from .kitchen_store import KitchenStore

logger = logging.getLogger(__name__)


VALID_TRANSITIONS = {
    OrderStatus.CREATED: [OrderStatus.PAID, OrderStatus.CANCELLED],
    OrderStatus.PAID: [OrderStatus.PREPARING, OrderStatus.CANCELLED],
    OrderStatus.PREPARING: [OrderStatus.READY, OrderStatus.CANCELLED],
    OrderStatus.READY: [OrderStatus.COMPLETED, OrderStatus.CANCELLED],
    OrderStatus.COMPLETED: [],
    OrderStatus.CANCELLED: [],
}

# Order statuses in which item and step work may be recorded
ITEM_WORK_STATUSES = frozenset(
    [OrderStatus.PAID, OrderStatus.PREPARING, OrderStatus.READY]
)


class OrderLifecycleService:
    def __init__(
        self,
        store: KitchenStore,
        publisher: KitchenEventPublisher,
        clock: Clock,
        config: KitchenEngineConfig,
        metrics: KitchenMetricsCollector,
    ):
        self.store = store
        self.publisher = publisher
        self.clock = clock
        self.config = config
        self.metrics = metrics

    # Intake

    def ingest_order(self, payload: Union[OrderCreated, dict]) -> TransitionResult:
        """
        Seed an order from an order-intake event.

        Every kitchen instance receives the intake event itself, so nothing
        is published here. Repeated deliveries of the same order, and intake for
        an order already acknowledged and removed here, are no-ops.
        """
        if isinstance(payload, dict):
            payload = OrderCreated.model_validate(payload)

        existing = self.store.get_order(payload.order_id)
        if existing is not None:
            logger.debug(f"Order {payload.order_id} already known, ignoring duplicate intake")
            return TransitionResult.unchanged(existing)

        if self.store.removed_at("order", payload.order_id) is not None:
            logger.debug(f"Order {payload.order_id} already closed here, ignoring intake")
            return TransitionResult.unchanged(None)

        created_at = payload.created_at or self.clock.now()

        items = []
        for line in payload.items:
            steps = [
                PrepStep(
                    step_id=step.step_id,
                    name=step.name,
                    description=step.description,
                    station=step.station or line.station,
                    estimated_minutes=step.estimated_minutes,
                )
                for step in line.prep_steps
            ]
            estimated = line.estimated_minutes or sum(s.estimated_minutes for s in steps)
            items.append(
                OrderItem(
                    item_id=line.item_id,
                    name=line.name,
                    quantity=line.quantity,
                    station=line.station,
                    estimated_minutes=estimated,
                    prep_steps=steps,
                    special_instructions=line.special_instructions,
                )
            )

        # Items are cooked in parallel, so the slowest one sets the pace
        total_minutes = payload.total_estimated_minutes
        if total_minutes is None:
            slowest = max((item.estimated_minutes for item in items), default=0)
            total_minutes = slowest or self.config.DEFAULT_ORDER_TARGET_MINUTES

        target = payload.estimated_completion_time or (
            created_at + timedelta(minutes=total_minutes)
        )

        order = Order(
            order_id=payload.order_id,
            order_number=payload.order_number,
            order_type=payload.order_type,
            priority=payload.priority,
            status=OrderStatus.PAID,
            created_at=created_at,
            estimated_completion_time=target,
            total_estimated_minutes=total_minutes,
            items=items,
            special_instructions=payload.special_instructions,
            updated_at=created_at,
            updated_by=payload.source or self.config.DEFAULT_UPDATED_BY,
            updated_source=payload.source,
            origin=ChangeOrigin.RECONCILED,
        )
        self.store.put_order(order)

        logger.info(
            f"Order {order.order_number} ({order.order_id}) entered kitchen with "
            f"{len(items)} items, due {target.isoformat()}"
        )
        self.metrics.record_transition("order", "ingest", "success")
        return TransitionResult(success=True, entity=order, origin=ChangeOrigin.RECONCILED)

    # Order-level transitions

    def mark_paid(self, order_id: str, updated_by: Optional[str] = None) -> TransitionResult:
        return self._move_order(order_id, OrderStatus.PAID, "mark_paid", updated_by)

    def start_order(self, order_id: str, updated_by: Optional[str] = None) -> TransitionResult:
        """Move a paid order into preparation and start every pending item"""
        order = self.store.get_order(order_id)
        if order is None:
            return self._not_found("start_order", "order", order_id)

        if order.status == OrderStatus.PREPARING:
            return self._noop("start_order", order)

        error = self._check_transition(order, OrderStatus.PREPARING)
        if error:
            return self._reject("start_order", error, order)

        now = self.clock.now()
        order.status = OrderStatus.PREPARING
        order.started_at = order.started_at or now

        started = []
        for item in order.items:
            if item.status == ItemStatus.PENDING:
                self._start_item(item, now)
                started.append(item)

        return self._commit("start_order", order, updated_by, True, started)

    def mark_ready(self, order_id: str, updated_by: Optional[str] = None) -> TransitionResult:
        order = self.store.get_order(order_id)
        if order is None:
            return self._not_found("mark_ready", "order", order_id)

        if order.status == OrderStatus.READY:
            return self._noop("mark_ready", order)

        error = self._check_transition(order, OrderStatus.READY)
        if error:
            return self._reject("mark_ready", error, order)

        unready = order.unready_item_ids()
        if unready:
            return self._reject(
                "mark_ready",
                PreconditionFailed("order", order.order_id, OrderStatus.READY.value, unready),
                order,
            )

        order.status = OrderStatus.READY
        return self._commit("mark_ready", order, updated_by, True)

    def force_ready(
        self, order_id: str, forced_by: str, reason: Optional[str] = None
    ) -> TransitionResult:
        """
        Mark an order READY even though some items are not.

        Items are left as they are; the unready item ids are kept in a
        ForceReadyRecord on the order.
        """
        order = self.store.get_order(order_id)
        if order is None:
            return self._not_found("force_ready", "order", order_id)

        if not forced_by:
            return self._reject(
                "force_ready",
                InvalidTransition(
                    "order", order.order_id, order.status.value,
                    OrderStatus.READY.value, reason="forced_by is required",
                ),
                order,
            )

        if order.status == OrderStatus.READY:
            return self._noop("force_ready", order)

        error = self._check_transition(order, OrderStatus.READY)
        if error:
            return self._reject("force_ready", error, order)

        unready = order.unready_item_ids()
        if unready:
            record = ForceReadyRecord(
                kind=ForceReadyKind.ORDER,
                order_id=order.order_id,
                entity_id=order.order_id,
                unfinished_ids=unready,
                forced_by=forced_by,
                forced_at=self.clock.now(),
                reason=reason,
            )
            order.force_ready_records.append(record)
            self.metrics.record_force_ready(ForceReadyKind.ORDER.value)
            logger.warning(
                f"Order {order.order_number} forced READY by {forced_by} with "
                f"unready items {', '.join(unready)}"
                + (f": {reason}" if reason else "")
            )

        order.status = OrderStatus.READY
        return self._commit("force_ready", order, forced_by, True)

    def complete_order(self, order_id: str, updated_by: Optional[str] = None) -> TransitionResult:
        order = self.store.get_order(order_id)
        if order is None:
            return self._not_found("complete_order", "order", order_id)

        if order.status == OrderStatus.COMPLETED:
            return self._noop("complete_order", order)

        error = self._check_transition(order, OrderStatus.COMPLETED)
        if error:
            return self._reject("complete_order", error, order)

        order.status = OrderStatus.COMPLETED
        order.completed_at = self.clock.now()
        return self._commit("complete_order", order, updated_by, True)

    def cancel_order(
        self,
        order_id: str,
        updated_by: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> TransitionResult:
        order = self.store.get_order(order_id)
        if order is None:
            return self._not_found("cancel_order", "order", order_id)

        if order.status == OrderStatus.CANCELLED:
            return self._noop("cancel_order", order)

        error = self._check_transition(order, OrderStatus.CANCELLED)
        if error:
            return self._reject("cancel_order", error, order)

        order.status = OrderStatus.CANCELLED
        order.completed_at = self.clock.now()
        if reason:
            logger.info(f"Order {order.order_number} cancelled: {reason}")
        return self._commit("cancel_order", order, updated_by, True)

    def set_priority(
        self,
        order_id: str,
        priority: OrderPriority,
        updated_by: Optional[str] = None,
    ) -> TransitionResult:
        order = self.store.get_order(order_id)
        if order is None:
            return self._not_found("set_priority", "order", order_id)

        priority = OrderPriority(priority)
        if order.is_terminal:
            return self._reject(
                "set_priority",
                InvalidTransition(
                    "order", order.order_id, order.status.value, order.status.value,
                    reason="priority cannot change on a closed order",
                ),
                order,
            )

        if order.priority == priority:
            return self._noop("set_priority", order)

        order.priority = priority
        return self._commit("set_priority", order, updated_by, True)

    def _move_order(
        self,
        order_id: str,
        target: OrderStatus,
        transition: str,
        updated_by: Optional[str],
    ) -> TransitionResult:
        order = self.store.get_order(order_id)
        if order is None:
            return self._not_found(transition, "order", order_id)

        if order.status == target:
            return self._noop(transition, order)

        error = self._check_transition(order, target)
        if error:
            return self._reject(transition, error, order)

        order.status = target
        return self._commit(transition, order, updated_by, True)

    # Item sub-machine

    def start_item(
        self, order_id: str, item_id: str, updated_by: Optional[str] = None
    ) -> TransitionResult:
        order, item, failure = self._lookup_item("start_item", order_id, item_id, ItemStatus.PREPARING)
        if failure:
            return failure

        if item.status == ItemStatus.PREPARING:
            return self._noop("start_item", order)
        if item.status == ItemStatus.READY:
            return self._reject(
                "start_item",
                InvalidTransition(
                    "item", item.item_id, item.status.value, ItemStatus.PREPARING.value
                ),
                order,
            )

        order_changed = self._start_item_in_order(order, item)
        return self._commit("start_item", order, updated_by, order_changed, [item])

    def complete_item(
        self, order_id: str, item_id: str, updated_by: Optional[str] = None
    ) -> TransitionResult:
        order, item, failure = self._lookup_item("complete_item", order_id, item_id, ItemStatus.READY)
        if failure:
            return failure

        if item.status == ItemStatus.READY:
            return self._noop("complete_item", order)
        if item.status == ItemStatus.PENDING:
            return self._reject(
                "complete_item",
                InvalidTransition(
                    "item", item.item_id, item.status.value, ItemStatus.READY.value,
                    reason="item has not been started",
                ),
                order,
            )

        unfinished = item.unfinished_step_ids()
        if unfinished:
            return self._reject(
                "complete_item",
                PreconditionFailed("item", item.item_id, ItemStatus.READY.value, unfinished),
                order,
            )

        order_changed = self._ready_item_in_order(order, item)
        return self._commit("complete_item", order, updated_by, order_changed, [item])

    def force_item_ready(
        self,
        order_id: str,
        item_id: str,
        forced_by: str,
        reason: Optional[str] = None,
    ) -> TransitionResult:
        order, item, failure = self._lookup_item(
            "force_item_ready", order_id, item_id, ItemStatus.READY
        )
        if failure:
            return failure

        if not forced_by:
            return self._reject(
                "force_item_ready",
                InvalidTransition(
                    "item", item.item_id, item.status.value, ItemStatus.READY.value,
                    reason="forced_by is required",
                ),
                order,
            )

        if item.status == ItemStatus.READY:
            return self._noop("force_item_ready", order)
        if item.status == ItemStatus.PENDING:
            return self._reject(
                "force_item_ready",
                InvalidTransition(
                    "item", item.item_id, item.status.value, ItemStatus.READY.value,
                    reason="item has not been started",
                ),
                order,
            )

        unfinished = item.unfinished_step_ids()
        if unfinished:
            order.force_ready_records.append(
                ForceReadyRecord(
                    kind=ForceReadyKind.ITEM,
                    order_id=order.order_id,
                    entity_id=item.item_id,
                    unfinished_ids=unfinished,
                    forced_by=forced_by,
                    forced_at=self.clock.now(),
                    reason=reason,
                )
            )
            self.metrics.record_force_ready(ForceReadyKind.ITEM.value)
            logger.warning(
                f"Item {item.item_id} of order {order.order_number} forced ready by "
                f"{forced_by} with unfinished steps {', '.join(unfinished)}"
            )

        order_changed = self._ready_item_in_order(order, item)
        return self._commit("force_item_ready", order, forced_by, order_changed, [item])

    # Prep steps

    def start_step(
        self,
        order_id: str,
        item_id: str,
        step_id: str,
        updated_by: Optional[str] = None,
    ) -> TransitionResult:
        order, item, step, failure = self._lookup_step("start_step", order_id, item_id, step_id)
        if failure:
            return failure

        if step.started_at is not None or step.completed:
            return self._noop("start_step", order)

        step.started_at = self.clock.now()
        order_changed, changed_items = self._ensure_item_started(order, item)
        return self._commit("start_step", order, updated_by, order_changed, changed_items, item)

    def complete_step(
        self,
        order_id: str,
        item_id: str,
        step_id: str,
        updated_by: Optional[str] = None,
    ) -> TransitionResult:
        """Complete a step; completing the last open step readies the item"""
        order, item, step, failure = self._lookup_step("complete_step", order_id, item_id, step_id)
        if failure:
            return failure

        if step.completed:
            return self._noop("complete_step", order)

        now = self.clock.now()
        step.started_at = step.started_at or now
        step.completed_at = now
        step.completed = True

        order_changed, changed_items = self._ensure_item_started(order, item)
        if item.status == ItemStatus.PREPARING and not item.unfinished_step_ids():
            order_changed = self._ready_item_in_order(order, item) or order_changed
            changed_items = [item]
            logger.info(f"All steps done, item {item.item_id} of order {order.order_number} ready")

        return self._commit("complete_step", order, updated_by, order_changed, changed_items, item)

    # Removal

    def acknowledge_order(self, order_id: str, view_id: str) -> TransitionResult:
        """
        Record that ``view_id`` has seen a terminal order.

        The order leaves memory once every registered view has acknowledged
        it, or on the first acknowledgement when no views are registered.
        """
        order = self.store.get_order(order_id)
        if order is None:
            return self._not_found("acknowledge_order", "order", order_id)

        if not order.is_terminal:
            return self._reject(
                "acknowledge_order",
                InvalidTransition(
                    "order", order.order_id, order.status.value, "acknowledged",
                    reason="only completed or cancelled orders can be acknowledged",
                ),
                order,
            )

        acknowledged = self.store.acknowledgements.setdefault(order_id, set())
        if view_id in acknowledged:
            return self._noop("acknowledge_order", order)
        acknowledged.add(view_id)

        if self.store.views <= acknowledged:
            self.store.remove_order(order_id)
            self.store.mark_removed("order", order_id, self.clock.now())
            logger.info(f"Order {order.order_number} acknowledged by all views, removed")
        else:
            pending = sorted(self.store.views - acknowledged)
            logger.debug(f"Order {order.order_number} awaiting acknowledgement from {pending}")

        self.metrics.record_transition("order", "acknowledge_order", "success")
        return TransitionResult(success=True, entity=order)

    # Helpers

    def _check_transition(self, order: Order, target: OrderStatus) -> Optional[InvalidTransition]:
        if target not in VALID_TRANSITIONS.get(order.status, []):
            return InvalidTransition(
                "order", order.order_id, order.status.value, target.value
            )
        return None

    def _lookup_item(self, transition: str, order_id: str, item_id: str, requested: ItemStatus):
        order = self.store.get_order(order_id)
        if order is None:
            return None, None, self._not_found(transition, "order", order_id)

        item = order.get_item(item_id)
        if item is None:
            return order, None, self._not_found(transition, "item", item_id)

        if order.status not in ITEM_WORK_STATUSES:
            reason = (
                "order has not been paid"
                if order.status == OrderStatus.CREATED
                else "order is closed"
            )
            error = InvalidTransition(
                "item", item.item_id, item.status.value, requested.value, reason=reason
            )
            return order, item, self._reject(transition, error, order)

        return order, item, None

    def _lookup_step(self, transition: str, order_id: str, item_id: str, step_id: str):
        order, item, failure = self._lookup_item(transition, order_id, item_id, ItemStatus.PREPARING)
        if failure:
            return order, item, None, failure

        step = item.get_step(step_id)
        if step is None:
            return order, item, None, self._not_found(transition, "step", step_id)
        return order, item, step, None

    def _start_item(self, item: OrderItem, now) -> None:
        item.status = ItemStatus.PREPARING
        item.started_at = item.started_at or now

    def _start_item_in_order(self, order: Order, item: OrderItem) -> bool:
        """Start an item; returns True if that also moved the order"""
        now = self.clock.now()
        self._start_item(item, now)
        if order.status == OrderStatus.PAID:
            order.status = OrderStatus.PREPARING
            order.started_at = order.started_at or now
            logger.info(f"Order {order.order_number} moved to PREPARING by item {item.item_id}")
            return True
        return False

    def _ensure_item_started(self, order: Order, item: OrderItem):
        if item.status == ItemStatus.PENDING:
            return self._start_item_in_order(order, item), [item]
        return False, []

    def _ready_item_in_order(self, order: Order, item: OrderItem) -> bool:
        """Mark an item ready; returns True if that readied the whole order"""
        item.status = ItemStatus.READY
        item.completed_at = self.clock.now()
        if order.status == OrderStatus.PREPARING and not order.unready_item_ids():
            order.status = OrderStatus.READY
            logger.info(f"Last item ready, order {order.order_number} moved to READY")
            return True
        return False

    def _commit(
        self,
        transition: str,
        order: Order,
        updated_by: Optional[str],
        order_changed: bool,
        changed_items: Optional[List[OrderItem]] = None,
        touched_item: Optional[OrderItem] = None,
    ) -> TransitionResult:
        order.updated_at = self.clock.now()
        order.updated_by = updated_by or self.config.DEFAULT_UPDATED_BY
        order.updated_source = self.publisher.module_id
        order.origin = ChangeOrigin.LOCAL

        events = []
        if order_changed:
            events.append(self.publisher.order_status_changed(order))
        for item in changed_items or []:
            events.append(self.publisher.item_status_changed(order, item))
        # Step-only changes still need their snapshot to reach peers
        if not events:
            item = touched_item or (changed_items or [None])[0]
            if item is not None:
                events.append(self.publisher.item_status_changed(order, item))
            else:
                events.append(self.publisher.order_status_changed(order))

        logger.info(
            f"{transition} on order {order.order_number} by {order.updated_by}: "
            f"now {order.status.value}"
        )
        self.metrics.record_transition("order", transition, "success")
        return TransitionResult.ok(order, events)

    def _noop(self, transition: str, order: Order) -> TransitionResult:
        logger.debug(f"{transition} on order {order.order_number} is a no-op")
        self.metrics.record_transition("order", transition, "noop")
        return TransitionResult.unchanged(order)

    def _reject(
        self, transition: str, error: KitchenEngineError, order: Optional[Order] = None
    ) -> TransitionResult:
        logger.info(f"{transition} rejected: {error.message}")
        self.metrics.record_transition("order", transition, "rejected")
        return TransitionResult.failed(error, order)

    def _not_found(self, transition: str, entity_type: str, entity_id: str) -> TransitionResult:
        return self._reject(transition, EntityNotFound(entity_type, entity_id))
