# backend/modules/kitchen/models/__init__.py

from .kitchen_models import (
    PrepStep,
    OrderItem,
    Order,
    ForceReadyRecord,
    Timer,
    TimerPreset,
    TIMER_PRESETS,
    TransitionResult,
    OrderTiming,
    TimerTiming,
    TickReport,
)

__all__ = [
    "PrepStep",
    "OrderItem",
    "Order",
    "ForceReadyRecord",
    "Timer",
    "TimerPreset",
    "TIMER_PRESETS",
    "TransitionResult",
    "OrderTiming",
    "TimerTiming",
    "TickReport",
]
