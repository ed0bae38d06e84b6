import pytest
from enum import Enum, auto
from audiovr.core.events import EventBus, Event, AudioEvent

class MockEvent(Enum):
    TEST_EVENT = auto()
    OTHER_EVENT = auto()

def test_event_bus_subscribe_publish(event_bus):
    received = []
    def handler(event):
        received.append(event)

    event_bus.subscribe(MockEvent.TEST_EVENT, handler)
    event_bus.publish(MockEvent.TEST_EVENT, data="test")

    assert len(received) == 1
    assert received[0].type == MockEvent.TEST_EVENT
    assert received[0].data["data"] == "test"
    assert received[0]["data"] == "test"
    assert received[0].get("missing", 5) == 5

def test_event_bus_unsubscribe(event_bus):
    received = []
    def handler(event):
        received.append(event)

    event_bus.subscribe(MockEvent.TEST_EVENT, handler)
    event_bus.unsubscribe(MockEvent.TEST_EVENT, handler)
    event_bus.publish(MockEvent.TEST_EVENT)

    assert len(received) == 0
    assert not event_bus.has_subscribers(MockEvent.TEST_EVENT)

def test_event_priority(event_bus):
    order = []

    event_bus.subscribe(MockEvent.TEST_EVENT, lambda e: order.append("low"), priority=1, weak=False)
    event_bus.subscribe(MockEvent.TEST_EVENT, lambda e: order.append("high"), priority=10, weak=False)
    event_bus.subscribe(MockEvent.TEST_EVENT, lambda e: order.append("normal"), priority=5, weak=False)
    event_bus.subscribe(MockEvent.TEST_EVENT, lambda e: order.append("normal2"), priority=5, weak=False)

    event_bus.publish(MockEvent.TEST_EVENT)

    assert order == ["high", "normal", "normal2", "low"]

def test_event_consumption(event_bus):
    received = []

    def consumer(event):
        received.append("consumer")
        event.consume()

    def later_handler(event):
        received.append("later")

    event_bus.subscribe(MockEvent.TEST_EVENT, consumer, priority=10)
    event_bus.subscribe(MockEvent.TEST_EVENT, later_handler, priority=5)

    event_bus.publish(MockEvent.TEST_EVENT)

    assert received == ["consumer"]

def test_one_shot_handler(event_bus):
    received = []
    event_bus.subscribe(MockEvent.TEST_EVENT, lambda e: received.append(e), one_shot=True, weak=False)

    event_bus.publish(MockEvent.TEST_EVENT)
    event_bus.publish(MockEvent.TEST_EVENT)

    assert len(received) == 1

def test_weak_handler_is_dropped(event_bus):
    received = []

    class Listener:
        def on_event(self, event):
            received.append(event)

    listener = Listener()
    event_bus.subscribe(MockEvent.TEST_EVENT, listener.on_event)
    event_bus.publish(MockEvent.TEST_EVENT)
    del listener
    event_bus.publish(MockEvent.TEST_EVENT)

    assert len(received) == 1
    assert not event_bus.has_subscribers(MockEvent.TEST_EVENT)

def test_handler_error_does_not_stop_dispatch(event_bus):
    received = []

    def broken(event):
        raise RuntimeError("boom")

    event_bus.subscribe(MockEvent.TEST_EVENT, broken, priority=10)
    event_bus.subscribe(MockEvent.TEST_EVENT, lambda e: received.append(e), weak=False)

    event_bus.publish(MockEvent.TEST_EVENT)

    assert len(received) == 1

def test_publish_from_handler_is_queued(event_bus):
    order = []

    def first(event):
        order.append("first-start")
        event_bus.publish(MockEvent.OTHER_EVENT)
        order.append("first-end")

    event_bus.subscribe(MockEvent.TEST_EVENT, first)
    event_bus.subscribe(MockEvent.OTHER_EVENT, lambda e: order.append("other"), weak=False)

    event_bus.publish(MockEvent.TEST_EVENT)

    assert order == ["first-start", "first-end", "other"]

def test_clear(event_bus):
    received = []
    event_bus.subscribe(AudioEvent.AUDIO_LOADED, lambda e: received.append(e), weak=False)
    event_bus.subscribe(AudioEvent.AUDIO_ERROR, lambda e: received.append(e), weak=False)

    event_bus.clear(AudioEvent.AUDIO_LOADED)
    event_bus.publish(AudioEvent.AUDIO_LOADED)
    assert received == []

    event_bus.clear()
    event_bus.publish(AudioEvent.AUDIO_ERROR)
    assert received == []

def test_publish_returns_event(event_bus):
    event = event_bus.publish(AudioEvent.CACHE_UPDATED, progress=0.5)
    assert isinstance(event, Event)
    assert event["progress"] == 0.5
    assert not event.consumed
