from dataclasses import dataclass

from nrschub.utils.event import Event, EventHandlers, emit_event


def test_event():
    @dataclass
    class MyEvent(Event):
        data: int

    seen = []
    MyEvent.add_handler(lambda e: seen.append(e.data % 2 == 0))
    MyEvent.add_handler(lambda e: seen.append(e.data))
    thread = Event.trigger(MyEvent(42))
    thread.join(timeout=5)
    assert not thread.is_alive()
    assert seen == [True, 42]


def test_emit_event():
    @dataclass
    class Number(Event):
        value: int

    seen = []
    Number.add_handler(lambda e: seen.append(e.value))
    thread = emit_event(Number(64))
    thread.join(timeout=5)
    assert seen == [64]


def test_no_handlers_runs_nothing():
    class Quiet(Event):
        pass

    assert emit_event(Quiet()) is None


def test_handlers_are_per_event_type():
    class First(Event):
        pass

    class Second(Event):
        pass

    seen = []
    First.add_handler(lambda e: seen.append(type(e).__name__))
    assert emit_event(Second()) is None
    thread = emit_event(First())
    thread.join(timeout=5)
    assert seen == ["First"]


def test_event_handlers_run_in_order():
    handlers = EventHandlers()
    seen = []
    handlers.add(lambda d: seen.append(("a", d)))
    handlers.add(lambda d: seen.append(("b", d)))
    handlers.run("x").join(timeout=5)
    assert seen == [("a", "x"), ("b", "x")]