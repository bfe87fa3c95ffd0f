# backend/modules/kitchen/exceptions/kitchen_exceptions.py

from datetime import datetime
from typing import Dict, List, Optional, Sequence


class KitchenEngineError(Exception):
    """Base exception for all kitchen lifecycle errors"""

    def __init__(self, message: str, error_code: str, details: Optional[Dict] = None):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict:
        """Convert exception to dictionary for view layers"""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }


class InvalidTransition(KitchenEngineError):
    """Requested state change is not reachable from the current state"""

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        current_state: str,
        requested_state: str,
        reason: Optional[str] = None,
    ):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.current_state = current_state
        self.requested_state = requested_state

        message = (
            f"Invalid {entity_type} transition for {entity_id}: "
            f"{current_state} -> {requested_state}"
        )
        if reason:
            message = f"{message} ({reason})"
        details = {
            "entity_type": entity_type,
            "entity_id": entity_id,
            "current_state": current_state,
            "requested_state": requested_state,
        }

        super().__init__(message, "INVALID_TRANSITION", details)


class PreconditionFailed(KitchenEngineError):
    """
    Transition guard not satisfied.

    ``blocking_ids`` names the unfinished items (for an order) or steps
    (for an item) so the caller can explain the block or decide to force.
    """

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        requested_state: str,
        blocking_ids: Sequence[str],
    ):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.requested_state = requested_state
        self.blocking_ids: List[str] = list(blocking_ids)

        message = (
            f"Cannot move {entity_type} {entity_id} to {requested_state}: "
            f"{len(self.blocking_ids)} unfinished ({', '.join(self.blocking_ids)})"
        )
        details = {
            "entity_type": entity_type,
            "entity_id": entity_id,
            "requested_state": requested_state,
            "blocking_ids": self.blocking_ids,
        }

        super().__init__(message, "PRECONDITION_FAILED", details)


class StaleSnapshot(KitchenEngineError):
    """Inbound snapshot is older than the locally held state"""

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        incoming_timestamp: datetime,
        local_timestamp: datetime,
    ):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.incoming_timestamp = incoming_timestamp
        self.local_timestamp = local_timestamp

        message = (
            f"Stale {entity_type} snapshot for {entity_id}: "
            f"{incoming_timestamp.isoformat()} < {local_timestamp.isoformat()}"
        )
        details = {
            "entity_type": entity_type,
            "entity_id": entity_id,
            "incoming_timestamp": incoming_timestamp.isoformat(),
            "local_timestamp": local_timestamp.isoformat(),
        }

        super().__init__(message, "STALE_SNAPSHOT", details)


class EntityNotFound(KitchenEngineError):
    """Referenced order, item, step or timer is not held by this engine"""

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id

        super().__init__(
            f"{entity_type.capitalize()} {entity_id} not found",
            "NOT_FOUND",
            {"entity_type": entity_type, "entity_id": entity_id},
        )


class MalformedEvent(KitchenEngineError):
    """Inbound event payload failed validation"""

    def __init__(self, topic: str, reason: str):
        self.topic = topic
        self.reason = reason

        super().__init__(
            f"Malformed event on {topic}: {reason}",
            "MALFORMED_EVENT",
            {"topic": topic, "reason": reason},
        )
