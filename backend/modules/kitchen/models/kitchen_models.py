# backend/modules/kitchen/models/kitchen_models.py

"""
In-memory domain models for the kitchen order and timer lifecycle engine.

Each engine instance owns its own copies of these objects; peers only ever
see them as snapshots (see ``schemas.kitchen_event_schemas``).
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..enums.kitchen_enums import (
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
    TERMINAL_ORDER_STATUSES,
)
from ..exceptions.kitchen_exceptions import KitchenEngineError


@dataclass
class PrepStep:
    """One discrete action within preparing an order item"""

    step_id: str
    name: str
    station: Station
    estimated_minutes: int
    description: str = ""
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    completed: bool = False


@dataclass
class OrderItem:
    """One line within an order, prepared at a single station"""

    item_id: str
    name: str
    quantity: int
    station: Station
    estimated_minutes: int
    status: ItemStatus = ItemStatus.PENDING
    prep_steps: List[PrepStep] = field(default_factory=list)
    special_instructions: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    def get_step(self, step_id: str) -> Optional[PrepStep]:
        for step in self.prep_steps:
            if step.step_id == step_id:
                return step
        return None

    def unfinished_step_ids(self) -> List[str]:
        return [step.step_id for step in self.prep_steps if not step.completed]


@dataclass
class ForceReadyRecord:
    """Audit entry for a ready transition that bypassed its guard"""

    kind: ForceReadyKind
    order_id: str
    entity_id: str
    unfinished_ids: List[str]
    forced_by: str
    forced_at: datetime
    reason: Optional[str] = None


@dataclass
class Order:
    """A customer's order as tracked by the kitchen"""

    order_id: str
    order_number: str
    order_type: OrderType
    priority: OrderPriority
    status: OrderStatus
    created_at: datetime
    estimated_completion_time: datetime
    total_estimated_minutes: int
    items: List[OrderItem] = field(default_factory=list)
    special_instructions: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    force_ready_records: List[ForceReadyRecord] = field(default_factory=list)

    # Last write wins bookkeeping
    updated_at: Optional[datetime] = None
    updated_by: Optional[str] = None
    updated_source: Optional[str] = None
    origin: ChangeOrigin = ChangeOrigin.LOCAL

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_ORDER_STATUSES

    def get_item(self, item_id: str) -> Optional[OrderItem]:
        for item in self.items:
            if item.item_id == item_id:
                return item
        return None

    def unready_item_ids(self) -> List[str]:
        return [item.item_id for item in self.items if item.status != ItemStatus.READY]

    def items_for_station(self, station: Station) -> List[OrderItem]:
        return [item for item in self.items if item.station == station]


@dataclass
class Timer:
    """
    A countdown attached to an order/step or standing alone.

    Only ``started_at`` is stored; elapsed and remaining are always derived
    from it. Pausing records ``paused_at`` and resuming shifts
    ``started_at`` forward by the paused interval.
    """

    timer_id: str
    category: TimerCategory
    duration_seconds: int
    started_at: datetime
    status: TimerStatus = TimerStatus.RUNNING
    label: str = ""
    station: Optional[Station] = None
    order_id: Optional[str] = None
    item_id: Optional[str] = None
    step_id: Optional[str] = None
    notes: Optional[str] = None
    paused_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    updated_at: Optional[datetime] = None
    updated_by: Optional[str] = None
    updated_source: Optional[str] = None
    origin: ChangeOrigin = ChangeOrigin.LOCAL

    def elapsed_seconds(self, now: datetime) -> int:
        if self.status == TimerStatus.PAUSED and self.paused_at is not None:
            reference = self.paused_at
        elif self.status == TimerStatus.COMPLETED and self.completed_at is not None:
            reference = self.completed_at
        else:
            reference = now
        return max(0, int((reference - self.started_at).total_seconds()))

    def remaining_seconds(self, now: datetime) -> int:
        return self.duration_seconds - self.elapsed_seconds(now)


@dataclass(frozen=True)
class TimerPreset:
    """Quick-create template offered on the timer board"""

    preset_id: str
    name: str
    station: Station
    duration_seconds: int
    description: str
    category: TimerCategory


TIMER_PRESETS: List[TimerPreset] = [
    TimerPreset("grill_steak", "Steak (Medium)", Station.GRILL, 480, "8 minutes total", TimerCategory.COOKING),
    TimerPreset("grill_chicken", "Chicken Breast", Station.GRILL, 720, "12 minutes", TimerCategory.COOKING),
    TimerPreset("grill_salmon", "Salmon Fillet", Station.GRILL, 600, "10 minutes", TimerCategory.COOKING),
    TimerPreset("prep_pasta", "Pasta Cooking", Station.PREP, 480, "8-10 minutes", TimerCategory.COOKING),
    TimerPreset("prep_sauce", "Sauce Reduction", Station.PREP, 900, "15 minutes", TimerCategory.COOKING),
    TimerPreset("prep_marinade", "Quick Marinade", Station.PREP, 300, "5 minutes", TimerCategory.PREP),
    TimerPreset("salad_dressing", "Dressing Rest", Station.SALAD, 180, "3 minutes", TimerCategory.RESTING),
    TimerPreset("dessert_ice_cream", "Ice Cream Tempering", Station.DESSERT, 300, "5 minutes", TimerCategory.PREP),
    TimerPreset("drinks_cold_brew", "Cold Brew Steeping", Station.DRINKS, 240, "4 minutes", TimerCategory.PREP),
]


@dataclass
class TransitionResult:
    """
    Outcome of a lifecycle operation.

    Failures are carried as values so a view can disable an action and
    explain why instead of crashing. ``changed`` is False for idempotent
    no-ops, which still count as successes.
    """

    success: bool
    entity: Any = None
    error: Optional[KitchenEngineError] = None
    changed: bool = True
    origin: ChangeOrigin = ChangeOrigin.LOCAL
    events: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def ok(cls, entity: Any, events: Optional[List[Dict[str, Any]]] = None) -> "TransitionResult":
        return cls(success=True, entity=entity, events=events or [])

    @classmethod
    def unchanged(cls, entity: Any) -> "TransitionResult":
        return cls(success=True, entity=entity, changed=False)

    @classmethod
    def failed(cls, error: KitchenEngineError, entity: Any = None) -> "TransitionResult":
        return cls(success=False, entity=entity, error=error, changed=False)

    @property
    def error_code(self) -> Optional[str]:
        return self.error.error_code if self.error else None

    @property
    def blocking_ids(self) -> List[str]:
        return list(getattr(self.error, "blocking_ids", []))

    def unwrap(self) -> Any:
        """Return the entity, raising the carried error on failure."""
        if self.error is not None:
            raise self.error
        return self.entity


@dataclass
class OrderTiming:
    order_id: str
    elapsed_minutes: int
    remaining_minutes: int
    remaining_seconds: int
    countdown: str
    flag: DeadlineFlag

    @property
    def is_urgent(self) -> bool:
        return self.flag == DeadlineFlag.URGENT

    @property
    def is_overdue(self) -> bool:
        return self.flag == DeadlineFlag.OVERDUE


@dataclass
class TimerTiming:
    timer_id: str
    elapsed_seconds: int
    remaining_seconds: int
    remaining_minutes: int
    countdown: str
    progress_percent: float
    is_overdue: bool


@dataclass
class TickReport:
    """What one tick derived; flags are recomputed on every tick, never stored"""

    ticked_at: datetime
    reclassified_timer_ids: List[str] = field(default_factory=list)
    overdue_timer_ids: List[str] = field(default_factory=list)
    urgent_order_ids: List[str] = field(default_factory=list)
    overdue_order_ids: List[str] = field(default_factory=list)
    evicted_tombstones: int = 0
