"""
Tests for reconciling peer snapshots between kitchen engines.
"""

from datetime import datetime, timezone

from modules.kitchen.enums.kitchen_enums import (
    OrderStatus,
    ItemStatus,
    TimerStatus,
    ChangeOrigin,
    KitchenTopic,
)
from modules.kitchen.services.kitchen_engine import KitchenEngine
from modules.kitchen.services.notifier import InMemoryNotifier


class TestOrderConvergence:
    """Two engines holding the same order"""

    def test_peer_converges_without_local_call(self, engine, peer_engine, shared_order, clock):
        assert engine.orders[shared_order].status == OrderStatus.PAID
        assert peer_engine.orders[shared_order].status == OrderStatus.PAID

        clock.advance(minutes=1)
        engine.start_order(shared_order, updated_by="chef-anna")

        peer_order = peer_engine.orders[shared_order]
        assert peer_order.status == OrderStatus.PREPARING
        assert all(item.status == ItemStatus.PREPARING for item in peer_order.items)
        assert peer_order.origin == ChangeOrigin.RECONCILED
        assert peer_order.updated_at == clock.now()
        assert peer_order.updated_by == "chef-anna"
        assert peer_engine.stale_snapshot_count == 0

    def test_own_events_are_ignored(self, engine, peer_engine, shared_order):
        engine.start_order(shared_order)

        assert engine.orders[shared_order].origin == ChangeOrigin.LOCAL
        assert engine.stale_snapshot_count == 0

    def test_changes_flow_both_ways(self, engine, peer_engine, shared_order, clock):
        clock.advance(minutes=1)
        engine.start_order(shared_order)
        clock.advance(minutes=1)
        peer_engine.complete_item(shared_order, "item-fries")
        clock.advance(minutes=1)
        peer_engine.complete_item(shared_order, "item-burger")

        assert engine.orders[shared_order].status == OrderStatus.READY
        assert peer_engine.orders[shared_order].status == OrderStatus.READY

    def test_stale_snapshot_is_dropped(self, engine, peer_engine, shared_order, clock, notifier):
        clock.advance(minutes=1)
        engine.start_order(shared_order)
        start_event = notifier.get_history(KitchenTopic.ORDER_STATUS_CHANGED.value)[-1].payload

        clock.advance(minutes=1)
        peer_engine.complete_item(shared_order, "item-fries")

        result = peer_engine.receive(KitchenTopic.ORDER_STATUS_CHANGED.value, start_event)

        assert not result.success
        assert result.error_code == "STALE_SNAPSHOT"
        assert result.origin == ChangeOrigin.RECONCILED
        assert peer_engine.stale_snapshot_count == 1
        fries = peer_engine.orders[shared_order].get_item("item-fries")
        assert fries.status == ItemStatus.READY

    def test_equal_timestamp_redelivery_is_accepted(
        self, engine, peer_engine, shared_order, notifier
    ):
        engine.start_order(shared_order)
        start_event = notifier.get_history(KitchenTopic.ORDER_STATUS_CHANGED.value)[-1].payload

        result = peer_engine.receive(KitchenTopic.ORDER_STATUS_CHANGED.value, start_event)

        assert result.success
        assert result.origin == ChangeOrigin.RECONCILED
        assert peer_engine.stale_snapshot_count == 0

    def test_crossed_changes_at_same_instant_converge(self, clock, config, order_payload):
        queue_bus, station_bus = InMemoryNotifier(), InMemoryNotifier()
        queue = KitchenEngine(queue_bus, "queue-board", clock=clock, config=config)
        station = KitchenEngine(station_bus, "station-board", clock=clock, config=config)
        try:
            for kitchen in (queue, station):
                kitchen.ingest_order(order_payload())

            queue.start_order("order-1001")
            station.cancel_order("order-1001")

            for entry in queue_bus.get_history():
                station.receive(entry.topic, entry.payload)
            for entry in station_bus.get_history():
                queue.receive(entry.topic, entry.payload)

            assert queue.orders["order-1001"].status == OrderStatus.CANCELLED
            assert station.orders["order-1001"].status == OrderStatus.CANCELLED
            assert station.stale_snapshot_count >= 1
            assert queue.stale_snapshot_count == 0
        finally:
            queue.shutdown()
            station.shutdown()

    def test_snapshot_inserts_unknown_order(self, engine, peer_engine, order_payload, notifier):
        engine.ingest_order(order_payload(order_id="order-5001", order_number="#5001"))
        engine.start_order("order-5001")

        order = peer_engine.orders["order-5001"]
        assert order.status == OrderStatus.PREPARING
        assert order.origin == ChangeOrigin.RECONCILED

    def test_duplicate_order_created_is_idempotent(
        self, engine, peer_engine, shared_order, order_payload, notifier
    ):
        engine.start_order(shared_order)

        notifier.publish(
            KitchenTopic.ORDER_CREATED.value,
            order_payload(order_id="order-1002", order_number="#1002"),
        )

        assert engine.orders[shared_order].status == OrderStatus.PREPARING
        assert peer_engine.orders[shared_order].status == OrderStatus.PREPARING
        assert len(peer_engine.orders) == 1

    def test_acknowledged_order_is_not_resurrected(
        self, engine, peer_engine, shared_order, notifier, clock
    ):
        engine.cancel_order(shared_order)
        cancel_event = notifier.get_history(KitchenTopic.ORDER_STATUS_CHANGED.value)[-1].payload
        peer_engine.acknowledge_order(shared_order, "station-board")
        assert shared_order not in peer_engine.orders

        result = peer_engine.receive(KitchenTopic.ORDER_STATUS_CHANGED.value, cancel_event)

        assert result.error_code == "STALE_SNAPSHOT"
        assert shared_order not in peer_engine.orders


class TestInboundOrderUpdates:
    """order.updated and menu.item.updated"""

    def test_order_updated_applies_status_directly(self, peer_engine, shared_order):
        result = peer_engine.receive(
            KitchenTopic.ORDER_UPDATED.value,
            {
                "order_id": shared_order,
                "status": "PREPARING",
                "item_id": "item-burger",
                "item_status": "preparing",
                "updated_by": "pos-terminal",
                "timestamp": "2024-01-01T12:05:00",
            },
        )

        order = peer_engine.orders[shared_order]
        assert result.success
        assert order.status == OrderStatus.PREPARING
        assert order.get_item("item-burger").status == ItemStatus.PREPARING
        assert order.get_item("item-fries").status == ItemStatus.PENDING
        assert order.updated_at == datetime(2024, 1, 1, 12, 5, tzinfo=timezone.utc)
        assert order.updated_by == "pos-terminal"
        assert order.origin == ChangeOrigin.RECONCILED

    def test_order_updated_older_than_local_is_stale(self, peer_engine, shared_order):
        result = peer_engine.receive(
            KitchenTopic.ORDER_UPDATED.value,
            {
                "order_id": shared_order,
                "status": "CANCELLED",
                "updated_by": "pos-terminal",
                "timestamp": "2023-12-31T23:00:00Z",
            },
        )

        assert result.error_code == "STALE_SNAPSHOT"
        assert peer_engine.orders[shared_order].status == OrderStatus.PAID
        assert peer_engine.stale_snapshot_count == 1

    def test_order_updated_for_unknown_order(self, peer_engine):
        result = peer_engine.receive(
            KitchenTopic.ORDER_UPDATED.value,
            {
                "order_id": "order-404",
                "status": "PREPARING",
                "updated_by": "pos-terminal",
                "timestamp": "2024-01-01T12:05:00Z",
            },
        )
        assert result.error_code == "NOT_FOUND"

    def test_order_updated_for_unknown_item(self, peer_engine, shared_order):
        result = peer_engine.receive(
            KitchenTopic.ORDER_UPDATED.value,
            {
                "order_id": shared_order,
                "status": "PREPARING",
                "item_id": "item-404",
                "item_status": "ready",
                "updated_by": "pos-terminal",
                "timestamp": "2024-01-01T12:05:00Z",
            },
        )

        assert result.error_code == "NOT_FOUND"
        assert peer_engine.orders[shared_order].status == OrderStatus.PAID

    def test_menu_updates_are_cached(self, engine, notifier):
        notifier.publish(
            KitchenTopic.MENU_ITEM_UPDATED.value, {"item_id": "menu-7", "available": False}
        )
        notifier.publish(KitchenTopic.MENU_ITEM_UPDATED.value, {"item_id": "menu-7", "price": 12.5})

        assert engine.menu_items["menu-7"] == {
            "item_id": "menu-7",
            "available": False,
            "price": 12.5,
        }


class TestMalformedEvents:
    """Invalid payloads are dropped, never raised"""

    def test_malformed_snapshot_is_dropped(self, engine, peer_engine, shared_order, notifier):
        notifier.publish(
            KitchenTopic.ORDER_STATUS_CHANGED.value,
            {"source": "rogue-board", "order": {"order_id": ""}},
        )

        assert engine.malformed_event_count == 1
        assert peer_engine.malformed_event_count == 1
        assert peer_engine.orders[shared_order].status == OrderStatus.PAID

    def test_malformed_result(self, engine):
        result = engine.receive(KitchenTopic.ORDER_CREATED.value, {"order_id": "order-9"})

        assert result.error_code == "MALFORMED_EVENT"
        assert "order-9" not in engine.orders

    def test_unknown_topic_is_ignored(self, engine):
        assert engine.receive("payment.captured", {"amount": 10}) is None


class TestTimerConvergence:
    """Timers mirrored between engines"""

    def test_timer_lifecycle_mirrors_to_peer(self, engine, peer_engine, clock):
        engine.create_timer(300, timer_id="t-9", station="grill")
        mirrored = peer_engine.timers["t-9"]
        assert mirrored.status == TimerStatus.RUNNING
        assert mirrored.origin == ChangeOrigin.RECONCILED

        clock.advance(seconds=10)
        engine.pause_timer("t-9")
        assert peer_engine.timers["t-9"].status == TimerStatus.PAUSED

        clock.advance(seconds=10)
        engine.delete_timer("t-9")
        assert "t-9" not in peer_engine.timers

    def test_deleted_timer_is_not_resurrected(self, engine, peer_engine, clock, notifier):
        engine.create_timer(300, timer_id="t-9")
        created_event = notifier.get_history(KitchenTopic.TIMER_STATE_CHANGED.value)[-1].payload
        clock.advance(seconds=10)
        engine.delete_timer("t-9")

        result = peer_engine.receive(KitchenTopic.TIMER_STATE_CHANGED.value, created_event)

        assert result.error_code == "STALE_SNAPSHOT"
        assert "t-9" not in peer_engine.timers

    def test_acknowledged_timer_is_not_resurrected(self, engine, peer_engine, clock, notifier):
        engine.create_timer(60, timer_id="t-1")
        clock.advance(seconds=30)
        engine.complete_timer("t-1")
        completed_event = notifier.get_history(KitchenTopic.TIMER_STATE_CHANGED.value)[-1].payload

        assert peer_engine.acknowledge_timer("t-1").success
        result = peer_engine.receive(KitchenTopic.TIMER_STATE_CHANGED.value, completed_event)

        assert result.error_code == "STALE_SNAPSHOT"
        assert "t-1" not in peer_engine.timers

    def test_each_engine_reclassifies_locally(self, engine, peer_engine, clock):
        engine.create_timer(60, timer_id="t-1")
        clock.advance(seconds=61)

        engine.tick()
        assert engine.timers["t-1"].status == TimerStatus.OVERDUE
        assert peer_engine.timers["t-1"].status == TimerStatus.RUNNING

        peer_engine.tick()
        assert peer_engine.timers["t-1"].status == TimerStatus.OVERDUE


class TestShutdown:
    """Engines stop reconciling once shut down"""

    def test_shutdown_engine_stops_listening(self, engine, peer_engine, shared_order, notifier):
        peer_engine.shutdown()

        engine.start_order(shared_order)

        assert peer_engine.orders[shared_order].status == OrderStatus.PAID
        assert peer_engine.tick() is None
        assert notifier.subscriber_count(KitchenTopic.ORDER_STATUS_CHANGED.value) == 1
