"""Tests for RunLock."""

import threading

from deployrun.kernel.run_lock import RunLock


class TestRunLock:
    def test_starts_free(self) -> None:
        lock = RunLock()
        assert lock.locked is False
        assert lock.owner is None

    def test_first_acquire_wins(self) -> None:
        lock = RunLock()
        assert lock.try_acquire("run-1") is True
        assert lock.locked is True
        assert lock.owner == "run-1"

    def test_second_acquire_fails_without_waiting(self) -> None:
        lock = RunLock()
        lock.try_acquire("run-1")
        assert lock.try_acquire("run-2") is False
        assert lock.owner == "run-1"

    def test_release_makes_lock_available(self) -> None:
        lock = RunLock()
        lock.try_acquire()
        lock.release()
        assert lock.locked is False
        assert lock.try_acquire() is True

    def test_release_when_free_is_noop(self) -> None:
        lock = RunLock()
        lock.release()
        assert lock.locked is False

    def test_assign_sets_owner_only_while_held(self) -> None:
        lock = RunLock()
        lock.assign("ghost")
        assert lock.owner is None

        lock.try_acquire()
        lock.assign("run-7")
        assert lock.owner == "run-7"

    def test_repr_shows_state(self) -> None:
        lock = RunLock()
        assert "free" in repr(lock)
        lock.try_acquire("run-1")
        assert "run-1" in repr(lock)


class TestRunLockContention:
    def test_exactly_one_thread_acquires(self) -> None:
        lock = RunLock()
        barrier = threading.Barrier(16)
        winners: list[int] = []
        winners_guard = threading.Lock()

        def contend(index: int) -> None:
            barrier.wait()
            if lock.try_acquire(str(index)):
                with winners_guard:
                    winners.append(index)

        threads = [threading.Thread(target=contend, args=(i,)) for i in range(16)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(winners) == 1
        assert lock.owner == str(winners[0])
