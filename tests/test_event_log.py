"""
Tests for the event log buffer and its subscribers.
"""

import threading

from event_log import EventLog


def test_append_order_and_text():
    log = EventLog()
    log.append("first")
    log("second\n")

    assert log.lines() == ["first", "second"]
    assert log.text() == "first\nsecond\n"


def test_subscribers_notified_per_append():
    log = EventLog()
    seen = []
    log.subscribe(seen.append)

    log.append("a")
    log.append("b")

    assert seen == ["a", "b"]


def test_concurrent_appends_are_not_lost():
    log = EventLog()
    seen = []
    log.subscribe(seen.append)

    def writer(n):
        for i in range(200):
            log.append(f"{n}:{i}")

    threads = [threading.Thread(target=writer, args=(n,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    lines = log.lines()
    assert len(lines) == 8 * 200
    assert seen == lines
    for n in range(8):
        mine = [line for line in lines if line.startswith(f"{n}:")]
        assert mine == [f"{n}:{i}" for i in range(200)]
