# backend/modules/kitchen/metrics/kitchen_metrics.py

from prometheus_client import Counter, Gauge

# Counters
kitchen_transitions = Counter(
    "kitchen_transitions_total",
    "Total number of lifecycle transitions attempted",
    ["module_id", "entity_type", "transition", "outcome"],
)

kitchen_force_ready_overrides = Counter(
    "kitchen_force_ready_overrides_total",
    "Total number of ready transitions forced past unfinished work",
    ["module_id", "kind"],
)

kitchen_stale_snapshots = Counter(
    "kitchen_stale_snapshots_total",
    "Total number of inbound snapshots dropped as older than local state",
    ["module_id", "entity_type"],
)

kitchen_malformed_events = Counter(
    "kitchen_malformed_events_total",
    "Total number of inbound events dropped because validation failed",
    ["module_id", "topic"],
)

kitchen_reconciled_snapshots = Counter(
    "kitchen_reconciled_snapshots_total",
    "Total number of inbound snapshots applied to local state",
    ["module_id", "entity_type"],
)

# Gauges
kitchen_overdue_timers = Gauge(
    "kitchen_overdue_timers",
    "Current number of overdue timers",
    ["module_id"],
)

kitchen_active_orders = Gauge(
    "kitchen_active_orders",
    "Current number of non-terminal orders held",
    ["module_id"],
)


class KitchenMetricsCollector:
    """Collector for kitchen engine metrics, labelled by module id"""

    def __init__(self, module_id: str):
        self.module_id = module_id

    def record_transition(self, entity_type: str, transition: str, outcome: str):
        kitchen_transitions.labels(
            module_id=self.module_id,
            entity_type=entity_type,
            transition=transition,
            outcome=outcome,
        ).inc()

    def record_force_ready(self, kind: str):
        """Record an audited force-ready override"""
        kitchen_force_ready_overrides.labels(module_id=self.module_id, kind=kind).inc()

    def record_stale_snapshot(self, entity_type: str):
        kitchen_stale_snapshots.labels(
            module_id=self.module_id, entity_type=entity_type
        ).inc()

    def record_malformed_event(self, topic: str):
        kitchen_malformed_events.labels(module_id=self.module_id, topic=topic).inc()

    def record_reconciled(self, entity_type: str):
        kitchen_reconciled_snapshots.labels(
            module_id=self.module_id, entity_type=entity_type
        ).inc()

    def update_tick_gauges(self, overdue_timers: int, active_orders: int):
        """Update gauges from the latest tick"""
        kitchen_overdue_timers.labels(module_id=self.module_id).set(overdue_timers)
        kitchen_active_orders.labels(module_id=self.module_id).set(active_orders)


# Export all metrics for registration
__all__ = [
    "kitchen_transitions",
    "kitchen_force_ready_overrides",
    "kitchen_stale_snapshots",
    "kitchen_malformed_events",
    "kitchen_reconciled_snapshots",
    "kitchen_overdue_timers",
    "kitchen_active_orders",
    "KitchenMetricsCollector",
]
