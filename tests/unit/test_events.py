"""
Tests for the in-process event bus.
"""

from vendorconnect.services.events import EventBus, EventType, TaskEvent
from vendorconnect.utils import in_flight


def event(event_type=EventType.TASK_ASSIGNED):
    return TaskEvent(event_type=event_type, tenant_id=1, task_id=7, task_title="Logo", user_ids=[3])


async def test_subscribers_receive_events():
    bus = EventBus()
    seen = []

    async def record(evt):
        seen.append((evt.event_type, evt.task_id))

    bus.subscribe(EventType.TASK_ASSIGNED, record)
    bus.publish(event())
    bus.publish(event(EventType.TASK_COMPLETED))
    await bus.drain()

    assert seen == [(EventType.TASK_ASSIGNED, 7)]


async def test_failing_subscriber_is_isolated():
    bus = EventBus()
    seen = []

    async def broken(evt):
        raise RuntimeError("smtp down")

    async def record(evt):
        seen.append(evt.task_id)

    bus.subscribe(EventType.TASK_ASSIGNED, broken)
    bus.subscribe(EventType.TASK_ASSIGNED, record)

    tasks = bus.publish(event())
    await bus.drain()

    assert seen == [7]
    assert [t.result() for t in tasks] == [False, True]
    assert in_flight() == []


async def test_publish_without_subscribers():
    assert EventBus().publish(event()) == []
