from nrschub.utils.atomic_lock import AtomicLock, AtomicLockGuard


def test_atomic_lock():
    lock = AtomicLock()
    assert lock.is_locked() is False
    guard = lock.try_lock()
    assert isinstance(guard, AtomicLockGuard)
    assert lock.is_locked() is True
    guard.release()
    assert lock.is_locked() is False


def test_second_try_lock_fails_while_held():
    lock = AtomicLock()
    guard = lock.try_lock()
    assert lock.try_lock() is None
    guard.release()
    again = lock.try_lock()
    assert isinstance(again, AtomicLockGuard)
    again.release()


def test_guard_as_context_manager_releases():
    lock = AtomicLock()
    with lock.try_lock():
        assert lock.is_locked() is True
    assert lock.is_locked() is False


def test_double_release_is_harmless():
    lock = AtomicLock()
    guard = lock.try_lock()
    guard.release()
    guard.release()
    assert lock.is_locked() is False
    other = lock.try_lock()
    assert lock.is_locked() is True
    other.release()