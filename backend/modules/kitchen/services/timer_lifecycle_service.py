# backend/modules/kitchen/services/timer_lifecycle_service.py

"""
Timer lifecycle state machine.

running <-> paused, running -> overdue (by tick), running/overdue -> completed.
Elapsed and remaining are never stored; they are derived from
``started_at`` and, while paused, ``paused_at``.
"""

import logging
import uuid
from typing import List, Optional

from ..config.kitchen_config import KitchenEngineConfig
from ..enums.kitchen_enums import (
    TimerStatus,
    TimerCategory,
    Station,
    ChangeOrigin,
)
from ..exceptions.kitchen_exceptions import (
    KitchenEngineError,
    InvalidTransition,
    EntityNotFound,
)
from ..metrics.kitchen_metrics import KitchenMetricsCollector
from ..models.kitchen_models import Timer, TransitionResult, TIMER_PRESETS
from .clock import Clock
from .duration_service import minutes_from_seconds, remaining_seconds
from .event_publisher import KitchenEventPublisher
from .kitchen_store import KitchenStore
from .order_lifecycle_service import OrderLifecycleService

logger = logging.getLogger(__name__)


class TimerLifecycleService:
    def __init__(
        self,
        store: KitchenStore,
        publisher: KitchenEventPublisher,
        clock: Clock,
        config: KitchenEngineConfig,
        metrics: KitchenMetricsCollector,
        orders: OrderLifecycleService,
    ):
        self.store = store
        self.publisher = publisher
        self.clock = clock
        self.config = config
        self.metrics = metrics
        self.orders = orders

    # Creation

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
        """Start a standalone timer with an explicit duration"""
        if duration_seconds <= 0:
            return self._reject(
                "create_timer",
                InvalidTransition(
                    "timer", timer_id or "new", "none", TimerStatus.RUNNING.value,
                    reason="duration must be positive",
                ),
            )

        timer = Timer(
            timer_id=timer_id or str(uuid.uuid4()),
            category=TimerCategory(category),
            duration_seconds=int(duration_seconds),
            started_at=self.clock.now(),
            label=label,
            station=Station(station) if station else None,
            notes=notes,
        )
        return self._start(timer, "create_timer", updated_by)

    def create_order_timer(
        self,
        order_id: str,
        category: TimerCategory = TimerCategory.COOKING,
        label: Optional[str] = None,
        updated_by: Optional[str] = None,
        timer_id: Optional[str] = None,
    ) -> TransitionResult:
        """Start a timer counting down to an order's target completion time"""
        order = self.store.get_order(order_id)
        if order is None:
            return self._reject("create_order_timer", EntityNotFound("order", order_id))
        if order.is_terminal:
            return self._reject(
                "create_order_timer",
                InvalidTransition(
                    "timer", timer_id or "new", "none", TimerStatus.RUNNING.value,
                    reason=f"order {order.order_number} is {order.status.value}",
                ),
            )

        now = self.clock.now()
        duration = max(0, remaining_seconds(order.estimated_completion_time, now))
        timer = Timer(
            timer_id=timer_id or str(uuid.uuid4()),
            category=TimerCategory(category),
            duration_seconds=duration,
            started_at=now,
            label=label or f"Order {order.order_number}",
            order_id=order.order_id,
        )
        return self._start(timer, "create_order_timer", updated_by)

    def create_step_timer(
        self,
        order_id: str,
        item_id: str,
        step_id: str,
        updated_by: Optional[str] = None,
        timer_id: Optional[str] = None,
    ) -> TransitionResult:
        """Start a timer for a prep step's estimate, starting the step too"""
        started = self.orders.start_step(order_id, item_id, step_id, updated_by)
        if not started.success:
            return started

        order = started.entity
        step = order.get_item(item_id).get_step(step_id)
        timer = Timer(
            timer_id=timer_id or str(uuid.uuid4()),
            category=TimerCategory.PREP,
            duration_seconds=step.estimated_minutes * 60,
            started_at=self.clock.now(),
            label=f"{step.name} ({order.order_number})",
            station=step.station,
            order_id=order.order_id,
            item_id=item_id,
            step_id=step_id,
        )
        return self._start(timer, "create_step_timer", updated_by)

    def create_from_preset(
        self,
        preset_id: str,
        updated_by: Optional[str] = None,
        order_id: Optional[str] = None,
        timer_id: Optional[str] = None,
    ) -> TransitionResult:
        preset = next((p for p in TIMER_PRESETS if p.preset_id == preset_id), None)
        if preset is None:
            return self._reject("create_from_preset", EntityNotFound("preset", preset_id))

        timer = Timer(
            timer_id=timer_id or str(uuid.uuid4()),
            category=preset.category,
            duration_seconds=preset.duration_seconds,
            started_at=self.clock.now(),
            label=preset.name,
            station=preset.station,
            order_id=order_id,
            notes=preset.description,
        )
        return self._start(timer, "create_from_preset", updated_by)

    # Transitions

    def pause(self, timer_id: str, updated_by: Optional[str] = None) -> TransitionResult:
        timer = self.store.get_timer(timer_id)
        if timer is None:
            return self._reject("pause", EntityNotFound("timer", timer_id))

        if timer.status == TimerStatus.PAUSED:
            return self._noop("pause", timer)
        if timer.status == TimerStatus.COMPLETED:
            return self._reject(
                "pause",
                InvalidTransition("timer", timer_id, timer.status.value, TimerStatus.PAUSED.value),
                timer,
            )

        timer.status = TimerStatus.PAUSED
        timer.paused_at = self.clock.now()
        return self._commit("pause", timer, updated_by)

    def resume(self, timer_id: str, updated_by: Optional[str] = None) -> TransitionResult:
        """Resume a paused timer, shifting its start so elapsed is unchanged"""
        timer = self.store.get_timer(timer_id)
        if timer is None:
            return self._reject("resume", EntityNotFound("timer", timer_id))

        if timer.status in (TimerStatus.RUNNING, TimerStatus.OVERDUE):
            return self._noop("resume", timer)
        if timer.status == TimerStatus.COMPLETED:
            return self._reject(
                "resume",
                InvalidTransition("timer", timer_id, timer.status.value, TimerStatus.RUNNING.value),
                timer,
            )

        now = self.clock.now()
        if timer.paused_at is not None:
            timer.started_at = timer.started_at + (now - timer.paused_at)
        timer.paused_at = None
        timer.status = TimerStatus.RUNNING
        self._classify(timer, now)
        return self._commit("resume", timer, updated_by)

    def complete(self, timer_id: str, updated_by: Optional[str] = None) -> TransitionResult:
        timer = self.store.get_timer(timer_id)
        if timer is None:
            return self._reject("complete", EntityNotFound("timer", timer_id))

        if timer.status == TimerStatus.COMPLETED:
            return self._noop("complete", timer)
        if timer.status == TimerStatus.PAUSED:
            return self._reject(
                "complete",
                InvalidTransition(
                    "timer", timer_id, timer.status.value, TimerStatus.COMPLETED.value,
                    reason="resume the timer before completing it",
                ),
                timer,
            )

        timer.status = TimerStatus.COMPLETED
        timer.completed_at = self.clock.now()
        return self._commit("complete", timer, updated_by)

    def delete(self, timer_id: str, updated_by: Optional[str] = None) -> TransitionResult:
        """Remove a timer in any state and tell peers to drop it too"""
        timer = self.store.remove_timer(timer_id)
        if timer is None:
            return self._reject("delete", EntityNotFound("timer", timer_id))

        self._touch(timer, updated_by)
        self.store.mark_removed("timer", timer_id, timer.updated_at)
        event = self.publisher.timer_state_changed(timer, deleted=True)
        logger.info(f"Timer {timer.timer_id} ({timer.label}) deleted by {timer.updated_by}")
        self.metrics.record_transition("timer", "delete", "success")
        return TransitionResult.ok(timer, [event])

    def acknowledge(self, timer_id: str) -> TransitionResult:
        """Dismiss a completed timer from this engine"""
        timer = self.store.get_timer(timer_id)
        if timer is None:
            return self._reject("acknowledge", EntityNotFound("timer", timer_id))

        if timer.status != TimerStatus.COMPLETED:
            return self._reject(
                "acknowledge",
                InvalidTransition(
                    "timer", timer_id, timer.status.value, "acknowledged",
                    reason="only completed timers can be acknowledged",
                ),
                timer,
            )

        self.store.remove_timer(timer_id)
        self.store.mark_removed("timer", timer_id, timer.updated_at or self.clock.now())
        self.metrics.record_transition("timer", "acknowledge", "success")
        return TransitionResult(success=True, entity=timer)

    # Tick

    def reclassify_overdue(self) -> List[str]:
        """
        Flip running timers with no time left to overdue.

        Idempotent and never published; each instance reclassifies its own
        copy on its own tick.
        """
        now = self.clock.now()
        reclassified = []
        for timer in self.store.timers.values():
            if self._classify(timer, now):
                reclassified.append(timer.timer_id)

        if reclassified:
            logger.info(f"Timers now overdue: {', '.join(reclassified)}")
        return reclassified

    # Helpers

    def _classify(self, timer: Timer, now) -> bool:
        if timer.status != TimerStatus.RUNNING:
            return False
        if minutes_from_seconds(timer.remaining_seconds(now)) <= 0:
            timer.status = TimerStatus.OVERDUE
            return True
        return False

    def _start(self, timer: Timer, transition: str, updated_by: Optional[str]) -> TransitionResult:
        self._classify(timer, timer.started_at)
        self.store.put_timer(timer)
        return self._commit(transition, timer, updated_by)

    def _touch(self, timer: Timer, updated_by: Optional[str]) -> None:
        timer.updated_at = self.clock.now()
        timer.updated_by = updated_by or self.config.DEFAULT_UPDATED_BY
        timer.updated_source = self.publisher.module_id
        timer.origin = ChangeOrigin.LOCAL

    def _commit(self, transition: str, timer: Timer, updated_by: Optional[str]) -> TransitionResult:
        self._touch(timer, updated_by)
        event = self.publisher.timer_state_changed(timer)
        logger.info(
            f"{transition} on timer {timer.timer_id} ({timer.label}) by "
            f"{timer.updated_by}: now {timer.status.value}"
        )
        self.metrics.record_transition("timer", transition, "success")
        return TransitionResult.ok(timer, [event])

    def _noop(self, transition: str, timer: Timer) -> TransitionResult:
        logger.debug(f"{transition} on timer {timer.timer_id} is a no-op")
        self.metrics.record_transition("timer", transition, "noop")
        return TransitionResult.unchanged(timer)

    def _reject(
        self, transition: str, error: KitchenEngineError, timer: Optional[Timer] = None
    ) -> TransitionResult:
        logger.info(f"{transition} rejected: {error.message}")
        self.metrics.record_transition("timer", transition, "rejected")
        return TransitionResult.failed(error, timer)
