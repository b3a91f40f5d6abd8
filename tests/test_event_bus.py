"""Tests for the event bus."""

import logging
import queue
import threading

import pytest

from fleetsim.events.event_bus import Event, EventBus


class TestCallbacks:
    def test_filtered_subscription(self):
        bus = EventBus()
        incidents, everything = [], []
        bus.subscribe(incidents.append, "incident")
        bus.subscribe(everything.append)

        bus.publish("incident", {"vehicle_id": "V1"})
        bus.publish("live-update", {"vehicle_id": "V1"})

        assert [e.type for e in incidents] == ["incident"]
        assert [e.type for e in everything] == ["incident", "live-update"]
        assert incidents[0] == Event("incident", {"vehicle_id": "V1"})

    def test_publish_without_data(self):
        bus = EventBus()
        received = []
        bus.subscribe(received.append)
        bus.publish("snapshot")
        assert received[0].data == {}

    def test_failing_listener_is_isolated(self, caplog):
        bus = EventBus()
        received = []

        def broken(event):
            raise RuntimeError("boom")

        bus.subscribe(broken)
        bus.subscribe(received.append)
        with caplog.at_level(logging.ERROR):
            bus.publish("incident", {})

        assert len(received) == 1
        assert "failed on incident" in caplog.text

    def test_unsubscribe(self):
        bus = EventBus()
        received = []
        listener = bus.subscribe(received.append)
        bus.unsubscribe(listener)
        bus.publish("incident", {})
        assert received == []

    def test_listener_may_publish(self):
        bus = EventBus()
        received = []

        def relay(event):
            if event.type == "incident":
                bus.publish("alert", {"from": event.data["vehicle_id"]})

        bus.subscribe(relay)
        bus.subscribe(received.append, "alert")
        bus.publish("incident", {"vehicle_id": "V3"})
        assert received[0].data == {"from": "V3"}


class TestQueues:
    def test_queue_receives_matching_events(self):
        bus = EventBus()
        q = bus.subscribe_queue("live-update")
        bus.publish("live-update", {"n": 1})
        bus.publish("incident", {"n": 2})
        assert q.get_nowait().data == {"n": 1}
        assert q.empty()

    def test_full_queue_drops_oldest(self):
        bus = EventBus()
        q = bus.subscribe_queue(maxsize=3)
        for n in range(5):
            bus.publish("live-update", {"n": n})
        assert [q.get_nowait().data["n"] for _ in range(3)] == [2, 3, 4]

    def test_publish_from_threads(self):
        bus = EventBus()
        q = bus.subscribe_queue(maxsize=1000)

        def worker(offset):
            for n in range(100):
                bus.publish("live-update", {"n": offset + n})

        threads = [threading.Thread(target=worker, args=(i * 100,)) for i in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert q.qsize() == 400


class TestClose:
    def test_close_stops_delivery_and_drains(self):
        bus = EventBus()
        received = []
        bus.subscribe(received.append)
        q = bus.subscribe_queue()
        bus.publish("incident", {})
        bus.close()

        assert bus.closed
        assert q.empty()
        bus.publish("incident", {})
        assert len(received) == 1
        with pytest.raises(queue.Empty):
            q.get_nowait()
