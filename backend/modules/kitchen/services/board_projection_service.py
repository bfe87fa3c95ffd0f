# backend/modules/kitchen/services/board_projection_service.py

"""
Read-only projections the kitchen boards display.

Nothing here mutates engine state; every number is derived on demand from
the store and the engine clock.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

from ..enums.kitchen_enums import (
    OrderStatus,
    OrderPriority,
    Station,
    TimerStatus,
    CountdownLevel,
)
from ..exceptions.kitchen_exceptions import EntityNotFound
from ..models.kitchen_models import Order, PrepStep, Timer
from . import duration_service
from .kitchen_engine import KitchenEngine

PRIORITY_RANK = {
    OrderPriority.HIGH: 0,
    OrderPriority.MEDIUM: 1,
    OrderPriority.LOW: 2,
}


@dataclass
class TimerBoardSummary:
    running: int
    overdue: int
    paused: int
    completed: int


class BoardProjectionService:
    def __init__(self, engine: KitchenEngine):
        self.engine = engine

    @property
    def store(self):
        return self.engine.store

    def _now(self) -> datetime:
        return self.engine.clock.now()

    # Queue and station boards

    def station_queue(self, station: Optional[Station] = None) -> List[Order]:
        """
        Orders with at least one item for ``station`` (all orders when None),
        highest priority first, then oldest first.
        """
        orders = list(self.store.orders.values())
        if station is not None:
            orders = [order for order in orders if order.items_for_station(Station(station))]
        return sorted(
            orders, key=lambda order: (PRIORITY_RANK[order.priority], order.created_at)
        )

    def queue_counts(self) -> Dict[str, int]:
        """Counts shown in the queue header: waiting, in progress, ready"""
        counts = {
            OrderStatus.PAID.value: 0,
            OrderStatus.PREPARING.value: 0,
            OrderStatus.READY.value: 0,
        }
        for order in self.store.orders.values():
            if order.status.value in counts:
                counts[order.status.value] += 1
        return counts

    def order_progress(self, order_id: str) -> int:
        """Completed prep steps as a rounded percentage of all steps"""
        order = self.store.get_order(order_id)
        if order is None:
            raise EntityNotFound("order", order_id)

        total = sum(len(item.prep_steps) for item in order.items)
        if total == 0:
            return 0
        completed = sum(
            1 for item in order.items for step in item.prep_steps if step.completed
        )
        return round(completed / total * 100)

    @staticmethod
    def step_state(step: PrepStep) -> str:
        if step.completed:
            return "completed"
        if step.started_at is not None:
            return "current"
        return "pending"

    def step_duration_minutes(self, step: PrepStep) -> Optional[int]:
        """Minutes spent on a step so far, or in total once completed"""
        if step.started_at is None:
            return None
        end = step.completed_at or self._now()
        return duration_service.elapsed_minutes(step.started_at, end)

    # Timer board

    def filter_timers(
        self, station: Optional[Station] = None, show_completed: bool = False
    ) -> List[Timer]:
        timers = []
        for timer in self.store.timers.values():
            if station is not None and timer.station != Station(station):
                continue
            if not show_completed and timer.status == TimerStatus.COMPLETED:
                continue
            timers.append(timer)
        return timers

    def timer_board_summary(self, station: Optional[Station] = None) -> TimerBoardSummary:
        timers = self.filter_timers(station, show_completed=True)
        return TimerBoardSummary(
            running=sum(1 for t in timers if t.status == TimerStatus.RUNNING),
            overdue=sum(1 for t in timers if t.status == TimerStatus.OVERDUE),
            paused=sum(1 for t in timers if t.status == TimerStatus.PAUSED),
            completed=sum(1 for t in timers if t.status == TimerStatus.COMPLETED),
        )

    def countdown_level(self, timer_id: str) -> CountdownLevel:
        timer = self.store.get_timer(timer_id)
        if timer is None:
            raise EntityNotFound("timer", timer_id)

        config = self.engine.config
        return duration_service.countdown_level(
            timer.remaining_seconds(self._now()),
            warning_seconds=config.TIMER_WARNING_SECONDS,
            critical_seconds=config.TIMER_CRITICAL_SECONDS,
        )
