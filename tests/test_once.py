import threading

import pytest

from nrschub.utils.once import Once


def test_call_once_sets_only_first_value():
    once = Once()
    assert once.is_completed() is False
    assert once.call_once(lambda: "first") is True
    assert once.call_once(lambda: "second") is False
    assert once.get() == "first"
    assert once.is_completed() is True


def test_initial_value():
    once = Once(5)
    assert once.is_completed() is True
    assert once.get() == 5
    assert once.call_once(lambda: 7) is False
    assert once.get() == 5


def test_none_means_uninitialised():
    once = Once(None)
    assert once.is_completed() is False
    with pytest.raises(TimeoutError):
        once.get(timeout=0.01)


def test_get_blocks_until_set():
    once = Once()
    results = []
    reader = threading.Thread(target=lambda: results.append(once.get(timeout=5)))
    reader.start()
    assert once.call_once(lambda: "value") is True
    reader.join(timeout=5)
    assert results == ["value"]
    assert once.get(timeout=1) == "value"


def test_func_runs_once_under_contention():
    once = Once()
    calls = []

    def make():
        calls.append(1)
        return len(calls)

    threads = [threading.Thread(target=once.call_once, args=(make,)) for _ in range(10)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(calls) == 1
    assert once.get(timeout=1) == 1