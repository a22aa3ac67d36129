import threading
import time

import pytest

from irsniff.blocking_queue import (
    BlockingQueue,
    QueueClosed,
    QueueEmpty,
    QueueFull,
)


def _wait_until(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


def test_add_poll_round_trip():
    q = BlockingQueue(4)
    q.add(1)
    assert q.poll() == 1


def test_put_take_round_trip():
    q = BlockingQueue(4)
    q.put(2)
    assert q.take() == 2


def test_fifo_order():
    q = BlockingQueue(4)
    for item in ["a", "b", "c"]:
        q.add(item)
    assert [q.poll(), q.poll(), q.poll()] == ["a", "b", "c"]


def test_add_when_full_raises():
    q = BlockingQueue(2)
    q.add(1)
    q.add(2)
    with pytest.raises(QueueFull):
        q.add(3)
    assert len(q) == 2


def test_poll_when_empty_raises():
    q = BlockingQueue(2)
    with pytest.raises(QueueEmpty):
        q.poll()


def test_boundless_queue_grows():
    q = BlockingQueue(0)
    items = list(range(100))
    for item in items:
        q.add(item)
    assert len(q) == len(items)
    assert [q.poll() for _ in items] == items
    assert q.capacity is None


def test_negative_capacity_is_boundless():
    q = BlockingQueue(-5)
    for item in range(10):
        q.put(item)
    assert len(q) == 10


def test_wraparound_keeps_order():
    q = BlockingQueue(3)
    out = []
    for item in range(10):
        q.add(item)
        if len(q) == 3:
            out.append(q.poll())
    while len(q):
        out.append(q.poll())
    assert out == list(range(10))


def test_take_blocks_until_put():
    q = BlockingQueue(2)
    result = []
    t = threading.Thread(target=lambda: result.append(q.take()))
    t.start()
    time.sleep(0.05)
    assert result == []
    q.put("x")
    t.join(timeout=2)
    assert result == ["x"]
    assert len(q) == 0


def test_put_blocks_until_space():
    q = BlockingQueue(1)
    q.put("first")
    done = threading.Event()

    def producer():
        q.put("second")
        done.set()

    t = threading.Thread(target=producer)
    t.start()
    time.sleep(0.05)
    assert not done.is_set()
    assert q.take() == "first"
    t.join(timeout=2)
    assert done.is_set()
    assert q.take() == "second"


def test_add_rejected_while_putter_waits():
    q = BlockingQueue(1)
    q.put(0)
    t = threading.Thread(target=lambda: q.put(1))
    t.start()
    time.sleep(0.05)
    with pytest.raises(QueueFull):
        q.add(2)
    assert q.take() == 0
    t.join(timeout=2)
    assert q.take() == 1


def test_blocked_takers_served_in_order():
    q = BlockingQueue(4)
    results = {}
    threads = []
    for name in ["first", "second"]:
        t = threading.Thread(target=lambda n=name: results.__setitem__(n, q.take()))
        t.start()
        threads.append(t)
        assert _wait_until(lambda: q._take_next == len(threads))
    q.put("A")
    threads[0].join(timeout=2)
    q.put("B")
    threads[1].join(timeout=2)
    assert results == {"first": "A", "second": "B"}
    assert len(q) == 0


def test_close_unblocks_taker():
    q = BlockingQueue(2)
    errors = []

    def consumer():
        try:
            q.take()
        except QueueClosed as exc:
            errors.append(exc)

    t = threading.Thread(target=consumer)
    t.start()
    time.sleep(0.05)
    q.close()
    t.join(timeout=2)
    assert len(errors) == 1
    assert not t.is_alive()
    with pytest.raises(QueueClosed):
        q.poll()


def test_close_unblocks_putter():
    q = BlockingQueue(1)
    q.put(0)
    errors = []

    def producer():
        try:
            q.put(1)
        except QueueClosed as exc:
            errors.append(exc)

    t = threading.Thread(target=producer)
    t.start()
    time.sleep(0.05)
    q.close()
    t.join(timeout=2)
    assert len(errors) == 1
    assert len(q) == 1
    with pytest.raises(QueueClosed):
        q.take()


def _closed_queue_holding_one():
    q = BlockingQueue(4)
    q.add(1)
    q.close()
    return q


def test_add_after_close_raises():
    q = _closed_queue_holding_one()
    with pytest.raises(QueueClosed):
        q.add(2)
    assert len(q) == 1


def test_put_after_close_raises():
    q = _closed_queue_holding_one()
    with pytest.raises(QueueClosed):
        q.put(2)
    assert len(q) == 1


def test_poll_after_close_raises():
    q = _closed_queue_holding_one()
    with pytest.raises(QueueClosed):
        q.poll()
    assert len(q) == 1


def test_take_after_close_raises():
    q = _closed_queue_holding_one()
    with pytest.raises(QueueClosed):
        q.take()
    assert len(q) == 1


def test_close_is_idempotent():
    q = BlockingQueue(2)
    q.close()
    q.close()
    assert q.closed is True


def test_context_manager_closes():
    with BlockingQueue(2) as q:
        q.add(5)
        assert q.poll() == 5
    with pytest.raises(QueueClosed):
        q.add(6)


def test_many_producers_consumers_preserve_all_items():
    q = BlockingQueue(3)
    n_each = 50
    received = []
    lock = threading.Lock()

    def producer(base):
        for i in range(n_each):
            q.put(base + i)

    def consumer():
        for _ in range(n_each):
            item = q.take()
            with lock:
                received.append(item)

    threads = [threading.Thread(target=producer, args=(b,)) for b in (0, 1000)]
    threads += [threading.Thread(target=consumer) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=5)
    expected = list(range(n_each)) + [1000 + i for i in range(n_each)]
    assert sorted(received) == expected
    assert len(q) == 0