from .kitchen_exceptions import (
    KitchenEngineError,
    InvalidTransition,
    PreconditionFailed,
    StaleSnapshot,
    EntityNotFound,
    MalformedEvent,
)

__all__ = [
    "KitchenEngineError",
    "InvalidTransition",
    "PreconditionFailed",
    "StaleSnapshot",
    "EntityNotFound",
    "MalformedEvent",
]
