"""
Tests for the in-memory notifier.
"""

import logging

from modules.kitchen.services.notifier import InMemoryNotifier


class TestInMemoryNotifier:
    """Publish/subscribe delivery"""

    def test_subscribers_receive_events(self):
        notifier = InMemoryNotifier()
        received = []
        notifier.subscribe("order.created", received.append)

        notifier.publish("order.created", {"order_id": "order-1"})
        notifier.publish("order.updated", {"order_id": "order-1"})

        assert received == [{"order_id": "order-1"}]

    def test_unsubscribe_stops_delivery(self):
        notifier = InMemoryNotifier()
        received = []
        subscription = notifier.subscribe("t", received.append)

        notifier.publish("t", {"n": 1})
        notifier.unsubscribe(subscription)
        notifier.publish("t", {"n": 2})

        assert received == [{"n": 1}]
        assert notifier.subscriber_count("t") == 0

    def test_events_delivered_in_publish_order(self):
        notifier = InMemoryNotifier()
        received = []
        notifier.subscribe("t", lambda event: received.append(event["n"]))

        for n in range(5):
            notifier.publish("t", {"n": n})

        assert received == [0, 1, 2, 3, 4]

    def test_nested_publish_is_queued_behind_current_event(self):
        notifier = InMemoryNotifier()
        second_seen = []

        def republisher(event):
            if event["n"] == 1:
                notifier.publish("t", {"n": 2})

        notifier.subscribe("t", republisher)
        notifier.subscribe("t", lambda event: second_seen.append(event["n"]))

        notifier.publish("t", {"n": 1})

        assert second_seen == [1, 2]

    def test_failing_handler_is_isolated(self, caplog):
        notifier = InMemoryNotifier()
        received = []

        def broken(event):
            raise RuntimeError("board crashed")

        notifier.subscribe("t", broken)
        notifier.subscribe("t", received.append)

        with caplog.at_level(logging.ERROR):
            notifier.publish("t", {"n": 1})
            notifier.publish("t", {"n": 2})

        assert received == [{"n": 1}, {"n": 2}]
        assert "board crashed" in caplog.text

    def test_handlers_get_independent_copies(self):
        notifier = InMemoryNotifier()
        seen = []

        def mutator(event):
            event["n"] = 99

        notifier.subscribe("t", mutator)
        notifier.subscribe("t", lambda event: seen.append(event["n"]))

        notifier.publish("t", {"n": 1})

        assert seen == [1]
        assert notifier.get_history()[0].payload == {"n": 1}


class TestNotifierHistory:
    """Bounded event history"""

    def test_history_is_bounded(self):
        notifier = InMemoryNotifier(history_size=3)
        for n in range(5):
            notifier.publish("t", {"n": n})

        assert [entry.payload["n"] for entry in notifier.get_history()] == [2, 3, 4]

    def test_history_filtered_by_topic(self):
        notifier = InMemoryNotifier()
        notifier.publish("a", {"n": 1})
        notifier.publish("b", {"n": 2})
        notifier.publish("a", {"n": 3})

        assert [entry.payload["n"] for entry in notifier.get_history("a")] == [1, 3]

    def test_clear_keeps_subscriptions(self):
        notifier = InMemoryNotifier()
        received = []
        notifier.subscribe("t", received.append)
        notifier.publish("t", {"n": 1})

        notifier.clear()
        notifier.publish("t", {"n": 2})

        assert len(notifier.get_history()) == 1
        assert received == [{"n": 1}, {"n": 2}]
