"""Unit tests for ReadWriteLock.

Verifies that readers share the lock, a writer excludes readers, and a
waiting writer is not starved by new readers.
"""

import threading
import time

from promptcache.semantic.rwlock import ReadWriteLock


class TestReadWriteLock:
    """Tests for the writer-preferring reader/writer lock."""

    def test_readers_share_the_lock(self) -> None:
        """Two readers can hold the lock at the same time."""
        lock = ReadWriteLock()
        both_inside = threading.Barrier(2, timeout=2)
        errors = []

        def reader() -> None:
            with lock.read_locked():
                try:
                    both_inside.wait()
                except threading.BrokenBarrierError as e:
                    errors.append(e)

        threads = [threading.Thread(target=reader) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=5)

        assert errors == []

    def test_writer_waits_for_reader(self) -> None:
        """A writer cannot enter while a reader holds the lock."""
        lock = ReadWriteLock()
        acquired = threading.Event()

        lock.acquire_read()

        def writer() -> None:
            with lock.write_locked():
                acquired.set()

        thread = threading.Thread(target=writer)
        thread.start()

        assert not acquired.wait(0.1)
        lock.release_read()
        assert acquired.wait(2)
        thread.join(timeout=2)

    def test_reader_waits_for_writer(self) -> None:
        """A reader cannot enter while a writer holds the lock."""
        lock = ReadWriteLock()
        acquired = threading.Event()

        lock.acquire_write()

        def reader() -> None:
            with lock.read_locked():
                acquired.set()

        thread = threading.Thread(target=reader)
        thread.start()

        assert not acquired.wait(0.1)
        lock.release_write()
        assert acquired.wait(2)
        thread.join(timeout=2)

    def test_waiting_writer_blocks_new_readers(self) -> None:
        """Once a writer is waiting, later readers queue behind it."""
        lock = ReadWriteLock()
        order = []
        writer_done = threading.Event()
        reader_done = threading.Event()

        lock.acquire_read()

        def writer() -> None:
            with lock.write_locked():
                order.append("writer")
            writer_done.set()

        def late_reader() -> None:
            with lock.read_locked():
                order.append("reader")
            reader_done.set()

        writer_thread = threading.Thread(target=writer)
        writer_thread.start()
        while not lock._writers_waiting:
            time.sleep(0.001)

        reader_thread = threading.Thread(target=late_reader)
        reader_thread.start()

        assert not reader_done.wait(0.1)
        lock.release_read()

        assert writer_done.wait(2)
        assert reader_done.wait(2)
        assert order == ["writer", "reader"]
        writer_thread.join(timeout=2)
        reader_thread.join(timeout=2)

    def test_context_manager_releases_on_error(self) -> None:
        """The lock is released when the guarded block raises."""
        lock = ReadWriteLock()

        try:
            with lock.write_locked():
                raise RuntimeError("boom")
        except RuntimeError:
            pass

        with lock.read_locked():
            pass
