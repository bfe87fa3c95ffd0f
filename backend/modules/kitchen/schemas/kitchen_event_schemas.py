# backend/modules/kitchen/schemas/kitchen_event_schemas.py

"""
Pydantic schemas for events exchanged over the notifier.

Outbound events always carry a full snapshot of the entity so that a
subscriber can replace its copy wholesale. Events travel as plain dicts
produced by ``model_dump(mode="json")`` and are validated again on receipt.
"""

from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

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
    KitchenTopic,
)
from ..models.kitchen_models import (
    PrepStep,
    OrderItem,
    Order,
    ForceReadyRecord,
    Timer,
)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive timestamps as UTC so they compare with engine instants"""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class _SnapshotModel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    @field_validator("*", mode="after")
    @classmethod
    def normalise_datetimes(cls, v):
        if isinstance(v, datetime):
            return _as_utc(v)
        return v


# Snapshots


class PrepStepSnapshot(_SnapshotModel):
    step_id: str = Field(..., min_length=1)
    name: str
    description: str = ""
    station: Station
    estimated_minutes: int = Field(0, ge=0)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    completed: bool = False

    @model_validator(mode="after")
    def check_completion(self):
        if self.completed and self.completed_at is None:
            raise ValueError(f"Completed step {self.step_id} has no completed_at")
        if (
            self.completed_at is not None
            and self.started_at is not None
            and self.completed_at < self.started_at
        ):
            raise ValueError(f"Step {self.step_id} completed before it started")
        return self

    @classmethod
    def from_step(cls, step: PrepStep) -> "PrepStepSnapshot":
        return cls(
            step_id=step.step_id,
            name=step.name,
            description=step.description,
            station=step.station,
            estimated_minutes=step.estimated_minutes,
            started_at=step.started_at,
            completed_at=step.completed_at,
            completed=step.completed,
        )

    def to_step(self) -> PrepStep:
        return PrepStep(
            step_id=self.step_id,
            name=self.name,
            description=self.description,
            station=self.station,
            estimated_minutes=self.estimated_minutes,
            started_at=self.started_at,
            completed_at=self.completed_at,
            completed=self.completed,
        )


class OrderItemSnapshot(_SnapshotModel):
    item_id: str = Field(..., min_length=1)
    name: str
    quantity: int = Field(1, ge=1)
    station: Station
    status: ItemStatus = ItemStatus.PENDING
    estimated_minutes: int = Field(0, ge=0)
    prep_steps: List[PrepStepSnapshot] = Field(default_factory=list)
    special_instructions: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @model_validator(mode="after")
    def check_unique_steps(self):
        step_ids = [step.step_id for step in self.prep_steps]
        if len(step_ids) != len(set(step_ids)):
            raise ValueError(f"Duplicate step ids in item {self.item_id}")
        return self

    @classmethod
    def from_item(cls, item: OrderItem) -> "OrderItemSnapshot":
        return cls(
            item_id=item.item_id,
            name=item.name,
            quantity=item.quantity,
            station=item.station,
            status=item.status,
            estimated_minutes=item.estimated_minutes,
            prep_steps=[PrepStepSnapshot.from_step(step) for step in item.prep_steps],
            special_instructions=item.special_instructions,
            started_at=item.started_at,
            completed_at=item.completed_at,
        )

    def to_item(self) -> OrderItem:
        return OrderItem(
            item_id=self.item_id,
            name=self.name,
            quantity=self.quantity,
            station=self.station,
            status=self.status,
            estimated_minutes=self.estimated_minutes,
            prep_steps=[step.to_step() for step in self.prep_steps],
            special_instructions=self.special_instructions,
            started_at=self.started_at,
            completed_at=self.completed_at,
        )


class ForceReadySnapshot(_SnapshotModel):
    kind: ForceReadyKind
    order_id: str
    entity_id: str
    unfinished_ids: List[str] = Field(default_factory=list)
    forced_by: str
    forced_at: datetime
    reason: Optional[str] = None

    @classmethod
    def from_record(cls, record: ForceReadyRecord) -> "ForceReadySnapshot":
        return cls(
            kind=record.kind,
            order_id=record.order_id,
            entity_id=record.entity_id,
            unfinished_ids=list(record.unfinished_ids),
            forced_by=record.forced_by,
            forced_at=record.forced_at,
            reason=record.reason,
        )

    def to_record(self) -> ForceReadyRecord:
        return ForceReadyRecord(
            kind=self.kind,
            order_id=self.order_id,
            entity_id=self.entity_id,
            unfinished_ids=list(self.unfinished_ids),
            forced_by=self.forced_by,
            forced_at=self.forced_at,
            reason=self.reason,
        )


def _check_unique_items(items: List[BaseModel], order_id: str) -> None:
    item_ids = [item.item_id for item in items]
    if len(item_ids) != len(set(item_ids)):
        raise ValueError(f"Duplicate item ids in order {order_id}")


class OrderSnapshot(_SnapshotModel):
    order_id: str = Field(..., min_length=1)
    order_number: str
    order_type: OrderType
    priority: OrderPriority
    status: OrderStatus
    created_at: datetime
    estimated_completion_time: datetime
    total_estimated_minutes: int = Field(0, ge=0)
    items: List[OrderItemSnapshot] = Field(default_factory=list)
    special_instructions: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    force_ready_records: List[ForceReadySnapshot] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_unique_items(self):
        _check_unique_items(self.items, self.order_id)
        return self

    @classmethod
    def from_order(cls, order: Order) -> "OrderSnapshot":
        return cls(
            order_id=order.order_id,
            order_number=order.order_number,
            order_type=order.order_type,
            priority=order.priority,
            status=order.status,
            created_at=order.created_at,
            estimated_completion_time=order.estimated_completion_time,
            total_estimated_minutes=order.total_estimated_minutes,
            items=[OrderItemSnapshot.from_item(item) for item in order.items],
            special_instructions=order.special_instructions,
            started_at=order.started_at,
            completed_at=order.completed_at,
            force_ready_records=[
                ForceReadySnapshot.from_record(record)
                for record in order.force_ready_records
            ],
        )

    def to_order(
        self,
        updated_at: datetime,
        updated_by: Optional[str],
        origin: ChangeOrigin = ChangeOrigin.RECONCILED,
        updated_source: Optional[str] = None,
    ) -> Order:
        return Order(
            order_id=self.order_id,
            order_number=self.order_number,
            order_type=self.order_type,
            priority=self.priority,
            status=self.status,
            created_at=self.created_at,
            estimated_completion_time=self.estimated_completion_time,
            total_estimated_minutes=self.total_estimated_minutes,
            items=[item.to_item() for item in self.items],
            special_instructions=self.special_instructions,
            started_at=self.started_at,
            completed_at=self.completed_at,
            force_ready_records=[r.to_record() for r in self.force_ready_records],
            updated_at=updated_at,
            updated_by=updated_by,
            updated_source=updated_source,
            origin=origin,
        )


class TimerSnapshot(_SnapshotModel):
    timer_id: str = Field(..., min_length=1)
    category: TimerCategory
    duration_seconds: int = Field(..., ge=0)
    started_at: datetime
    status: TimerStatus
    label: str = ""
    station: Optional[Station] = None
    order_id: Optional[str] = None
    item_id: Optional[str] = None
    step_id: Optional[str] = None
    notes: Optional[str] = None
    paused_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @classmethod
    def from_timer(cls, timer: Timer) -> "TimerSnapshot":
        return cls(
            timer_id=timer.timer_id,
            category=timer.category,
            duration_seconds=timer.duration_seconds,
            started_at=timer.started_at,
            status=timer.status,
            label=timer.label,
            station=timer.station,
            order_id=timer.order_id,
            item_id=timer.item_id,
            step_id=timer.step_id,
            notes=timer.notes,
            paused_at=timer.paused_at,
            completed_at=timer.completed_at,
        )

    def to_timer(
        self,
        updated_at: datetime,
        updated_by: Optional[str],
        origin: ChangeOrigin = ChangeOrigin.RECONCILED,
        updated_source: Optional[str] = None,
    ) -> Timer:
        return Timer(
            timer_id=self.timer_id,
            category=self.category,
            duration_seconds=self.duration_seconds,
            started_at=self.started_at,
            status=self.status,
            label=self.label,
            station=self.station,
            order_id=self.order_id,
            item_id=self.item_id,
            step_id=self.step_id,
            notes=self.notes,
            paused_at=self.paused_at,
            completed_at=self.completed_at,
            updated_at=updated_at,
            updated_by=updated_by,
            updated_source=updated_source,
            origin=origin,
        )


# Outbound (and peer-to-peer) events


class KitchenEvent(_SnapshotModel):
    """Envelope shared by every event the engine publishes"""

    event_type: str
    source: Optional[str] = None
    updated_by: str
    timestamp: datetime


class OrderStatusChanged(KitchenEvent):
    event_type: Literal["kitchen.order.status.changed"] = KitchenTopic.ORDER_STATUS_CHANGED.value
    order: OrderSnapshot


class OrderItemStatusChanged(KitchenEvent):
    event_type: Literal["kitchen.item.status.changed"] = KitchenTopic.ORDER_ITEM_STATUS_CHANGED.value
    item_id: str
    item_status: ItemStatus
    order: OrderSnapshot


class TimerStateChanged(KitchenEvent):
    event_type: Literal["kitchen.timer.state.changed"] = KitchenTopic.TIMER_STATE_CHANGED.value
    timer: TimerSnapshot
    deleted: bool = False


# Inbound events from order intake and the menu module


class PrepStepPayload(_SnapshotModel):
    step_id: str = Field(..., min_length=1)
    name: str
    description: str = ""
    station: Optional[Station] = None
    estimated_minutes: int = Field(0, ge=0)


class OrderCreatedItem(_SnapshotModel):
    item_id: str = Field(..., min_length=1)
    name: str
    quantity: int = Field(1, ge=1)
    station: Station
    estimated_minutes: int = Field(0, ge=0)
    special_instructions: Optional[str] = None
    prep_steps: List[PrepStepPayload] = Field(default_factory=list)


class OrderCreated(_SnapshotModel):
    order_id: str = Field(..., min_length=1)
    order_number: str
    items: List[OrderCreatedItem] = Field(..., min_length=1)
    order_type: OrderType
    priority: OrderPriority = OrderPriority.MEDIUM
    source: Optional[str] = None
    created_at: Optional[datetime] = None
    estimated_completion_time: Optional[datetime] = None
    total_estimated_minutes: Optional[int] = Field(None, ge=0)
    special_instructions: Optional[str] = None

    @model_validator(mode="after")
    def check_unique_items(self):
        _check_unique_items(self.items, self.order_id)
        return self


class OrderUpdated(_SnapshotModel):
    order_id: str = Field(..., min_length=1)
    status: OrderStatus
    item_id: Optional[str] = None
    item_status: Optional[ItemStatus] = None
    updated_by: str
    timestamp: datetime
    source: Optional[str] = None

    @model_validator(mode="after")
    def check_item_pair(self):
        if (self.item_id is None) != (self.item_status is None):
            raise ValueError("item_id and item_status must be given together")
        return self


class MenuItemUpdated(_SnapshotModel):
    item_id: str = Field(..., min_length=1)
    available: Optional[bool] = None
    price: Optional[float] = Field(None, ge=0)
    name: Optional[str] = None
    source: Optional[str] = None
