# backend/modules/kitchen/services/kitchen_engine.py

"""
Per-module kitchen engine.

One engine backs one board (queue, station, timers, preparation). It owns an
isolated store, wires the order and timer state machines to the injected
notifier, reconciles peer snapshots, and exposes the periodic tick.
"""

import logging
from datetime import timedelta
from functools import partial
from typing import Any, Dict, List, Optional

from ..config.kitchen_config import KitchenEngineConfig, get_kitchen_config
from ..enums.kitchen_enums import (
    OrderPriority,
    TimerStatus,
    TimerCategory,
    Station,
    DONE_ORDER_STATUSES,
)
from ..exceptions.kitchen_exceptions import EntityNotFound
from ..metrics.kitchen_metrics import KitchenMetricsCollector
from ..models.kitchen_models import (
    Order,
    Timer,
    TransitionResult,
    OrderTiming,
    TimerTiming,
    TickReport,
)
from . import duration_service
from .clock import Clock, SystemClock
from .event_publisher import KitchenEventPublisher
from .kitchen_store import KitchenStore
from .notifier import Notifier, Subscription
from .order_lifecycle_service import OrderLifecycleService
from .reconciliation_service import ReconciliationService
from .timer_lifecycle_service import TimerLifecycleService

logger = logging.getLogger(__name__)


class KitchenEngine:
    def __init__(
        self,
        notifier: Notifier,
        module_id: str,
        clock: Optional[Clock] = None,
        config: Optional[KitchenEngineConfig] = None,
    ):
        self.notifier = notifier
        self.module_id = module_id
        self.clock = clock or SystemClock()
        self.config = config or get_kitchen_config()

        self.store = KitchenStore()
        self.metrics = KitchenMetricsCollector(module_id)
        self.publisher = KitchenEventPublisher(notifier, module_id)

        self.order_service = OrderLifecycleService(
            self.store, self.publisher, self.clock, self.config, self.metrics
        )
        self.timer_service = TimerLifecycleService(
            self.store, self.publisher, self.clock, self.config, self.metrics,
            self.order_service,
        )
        self.reconciliation = ReconciliationService(
            self.store, module_id, self.config, self.metrics, self.order_service
        )

        self._subscriptions: List[Subscription] = []
        self.is_running = False
        self.start()

    # Lifecycle

    def start(self):
        """Subscribe to every topic the engine reconciles"""
        if self.is_running:
            return

        for topic in self.reconciliation.topics:
            self._subscriptions.append(
                self.notifier.subscribe(topic, partial(self._on_event, topic))
            )
        self.publisher.enabled = True
        self.is_running = True
        logger.info(f"Kitchen engine {self.module_id} started")

    def shutdown(self):
        """Unsubscribe and stop publishing; later ticks do nothing"""
        if not self.is_running:
            return

        for subscription in self._subscriptions:
            self.notifier.unsubscribe(subscription)
        self._subscriptions.clear()
        self.publisher.enabled = False
        self.is_running = False
        logger.info(f"Kitchen engine {self.module_id} shut down")

    def _on_event(self, topic: str, event: Dict[str, Any]) -> None:
        self.reconciliation.apply(topic, event)

    def receive(self, topic: str, event: Dict[str, Any]) -> Optional[TransitionResult]:
        """Apply an inbound event directly, bypassing the notifier"""
        return self.reconciliation.apply(topic, event)

    # State

    @property
    def orders(self) -> Dict[str, Order]:
        return self.store.orders

    @property
    def timers(self) -> Dict[str, Timer]:
        return self.store.timers

    @property
    def menu_items(self) -> Dict[str, Dict[str, Any]]:
        return self.store.menu_items

    @property
    def stale_snapshot_count(self) -> int:
        return self.reconciliation.stale_snapshot_count

    @property
    def malformed_event_count(self) -> int:
        return self.reconciliation.malformed_event_count

    def register_view(self, view_id: str) -> None:
        """Require ``view_id`` to acknowledge terminal orders before removal"""
        self.store.views.add(view_id)

    def unregister_view(self, view_id: str) -> None:
        self.store.views.discard(view_id)

    # Orders

    def ingest_order(self, payload) -> TransitionResult:
        return self.order_service.ingest_order(payload)

    def mark_paid(self, order_id: str, updated_by: Optional[str] = None) -> TransitionResult:
        return self.order_service.mark_paid(order_id, updated_by)

    def start_order(self, order_id: str, updated_by: Optional[str] = None) -> TransitionResult:
        return self.order_service.start_order(order_id, updated_by)

    def mark_ready(self, order_id: str, updated_by: Optional[str] = None) -> TransitionResult:
        return self.order_service.mark_ready(order_id, updated_by)

    def force_ready(
        self, order_id: str, forced_by: str, reason: Optional[str] = None
    ) -> TransitionResult:
        return self.order_service.force_ready(order_id, forced_by, reason)

    def complete_order(self, order_id: str, updated_by: Optional[str] = None) -> TransitionResult:
        return self.order_service.complete_order(order_id, updated_by)

    def cancel_order(
        self, order_id: str, updated_by: Optional[str] = None, reason: Optional[str] = None
    ) -> TransitionResult:
        return self.order_service.cancel_order(order_id, updated_by, reason)

    def set_priority(
        self, order_id: str, priority: OrderPriority, updated_by: Optional[str] = None
    ) -> TransitionResult:
        return self.order_service.set_priority(order_id, priority, updated_by)

    def start_item(
        self, order_id: str, item_id: str, updated_by: Optional[str] = None
    ) -> TransitionResult:
        return self.order_service.start_item(order_id, item_id, updated_by)

    def complete_item(
        self, order_id: str, item_id: str, updated_by: Optional[str] = None
    ) -> TransitionResult:
        return self.order_service.complete_item(order_id, item_id, updated_by)

    def force_item_ready(
        self, order_id: str, item_id: str, forced_by: str, reason: Optional[str] = None
    ) -> TransitionResult:
        return self.order_service.force_item_ready(order_id, item_id, forced_by, reason)

    def start_step(
        self, order_id: str, item_id: str, step_id: str, updated_by: Optional[str] = None
    ) -> TransitionResult:
        return self.order_service.start_step(order_id, item_id, step_id, updated_by)

    def complete_step(
        self, order_id: str, item_id: str, step_id: str, updated_by: Optional[str] = None
    ) -> TransitionResult:
        return self.order_service.complete_step(order_id, item_id, step_id, updated_by)

    def acknowledge_order(self, order_id: str, view_id: str) -> TransitionResult:
        return self.order_service.acknowledge_order(order_id, view_id)

    # Timers

    def create_timer(
        self,
        duration_seconds: int,
        category: TimerCategory = TimerCategory.CUSTOM,
        label: str = "",
        station: Optional[Station] = None,
        notes: Optional[str] = None,
        updated_by: Optional[str] = None,
        timer_id: Optional[str] = None,
    ) -> TransitionResult:
        return self.timer_service.create_timer(
            duration_seconds, category, label, station, notes, updated_by, timer_id
        )

    def create_order_timer(
        self,
        order_id: str,
        category: TimerCategory = TimerCategory.COOKING,
        label: Optional[str] = None,
        updated_by: Optional[str] = None,
        timer_id: Optional[str] = None,
    ) -> TransitionResult:
        return self.timer_service.create_order_timer(
            order_id, category, label, updated_by, timer_id
        )

    def create_step_timer(
        self,
        order_id: str,
        item_id: str,
        step_id: str,
        updated_by: Optional[str] = None,
        timer_id: Optional[str] = None,
    ) -> TransitionResult:
        return self.timer_service.create_step_timer(
            order_id, item_id, step_id, updated_by, timer_id
        )

    def create_from_preset(
        self,
        preset_id: str,
        updated_by: Optional[str] = None,
        order_id: Optional[str] = None,
        timer_id: Optional[str] = None,
    ) -> TransitionResult:
        return self.timer_service.create_from_preset(preset_id, updated_by, order_id, timer_id)

    def pause_timer(self, timer_id: str, updated_by: Optional[str] = None) -> TransitionResult:
        return self.timer_service.pause(timer_id, updated_by)

    def resume_timer(self, timer_id: str, updated_by: Optional[str] = None) -> TransitionResult:
        return self.timer_service.resume(timer_id, updated_by)

    def complete_timer(self, timer_id: str, updated_by: Optional[str] = None) -> TransitionResult:
        return self.timer_service.complete(timer_id, updated_by)

    def delete_timer(self, timer_id: str, updated_by: Optional[str] = None) -> TransitionResult:
        return self.timer_service.delete(timer_id, updated_by)

    def acknowledge_timer(self, timer_id: str) -> TransitionResult:
        return self.timer_service.acknowledge(timer_id)

    # Derived timing

    def order_timing(self, order_id: str) -> OrderTiming:
        """Elapsed/remaining for an order, computed fresh from the clock"""
        order = self.store.get_order(order_id)
        if order is None:
            raise EntityNotFound("order", order_id)
        return self._order_timing(order, self.clock.now())

    def _order_timing(self, order: Order, now) -> OrderTiming:
        remaining = duration_service.remaining_seconds(order.estimated_completion_time, now)
        remaining_minutes = duration_service.minutes_from_seconds(remaining)
        return OrderTiming(
            order_id=order.order_id,
            elapsed_minutes=duration_service.elapsed_minutes(order.created_at, now),
            remaining_minutes=remaining_minutes,
            remaining_seconds=remaining,
            countdown=duration_service.format_countdown(remaining),
            flag=duration_service.classify_deadline(
                remaining_minutes,
                completed=order.status in DONE_ORDER_STATUSES,
                urgent_threshold=self.config.URGENT_THRESHOLD_MINUTES,
            ),
        )

    def timer_timing(self, timer_id: str) -> TimerTiming:
        timer = self.store.get_timer(timer_id)
        if timer is None:
            raise EntityNotFound("timer", timer_id)

        now = self.clock.now()
        elapsed = timer.elapsed_seconds(now)
        remaining = timer.remaining_seconds(now)
        remaining_minutes = duration_service.minutes_from_seconds(remaining)
        return TimerTiming(
            timer_id=timer.timer_id,
            elapsed_seconds=elapsed,
            remaining_seconds=remaining,
            remaining_minutes=remaining_minutes,
            countdown=duration_service.format_countdown(remaining),
            progress_percent=duration_service.progress_percent(elapsed, timer.duration_seconds),
            is_overdue=duration_service.is_overdue(
                remaining_minutes, completed=timer.status == TimerStatus.COMPLETED
            ),
        )

    # Tick

    def tick(self) -> Optional[TickReport]:
        """
        Re-evaluate every live timer and order against the clock.

        Running timers with no time left become overdue and removal markers
        past their retention are dropped. Order flags are recomputed and
        reported, never stored. Does nothing after shutdown.
        """
        if not self.is_running:
            return None

        now = self.clock.now()
        report = TickReport(ticked_at=now)
        report.reclassified_timer_ids = self.timer_service.reclassify_overdue()
        report.evicted_tombstones = self.store.evict_tombstones(
            now - timedelta(seconds=self.config.TOMBSTONE_RETENTION_SECONDS)
        )
        report.overdue_timer_ids = [
            timer.timer_id
            for timer in self.store.timers.values()
            if timer.status == TimerStatus.OVERDUE
        ]

        active_orders = 0
        for order in self.store.orders.values():
            if not order.is_terminal:
                active_orders += 1
            timing = self._order_timing(order, now)
            if timing.is_urgent:
                report.urgent_order_ids.append(order.order_id)
            elif timing.is_overdue:
                report.overdue_order_ids.append(order.order_id)

        self.metrics.update_tick_gauges(len(report.overdue_timer_ids), active_orders)
        return report
