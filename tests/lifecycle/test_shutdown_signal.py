import asyncio
import threading

import pytest

from lifecycle.outcome import OutcomeAggregator
from lifecycle.shutdown_signal import ShutdownSignal


@pytest.mark.asyncio
async def test_fire_once():
    signal = ShutdownSignal()
    assert not signal.is_set()
    assert signal.reason is None
    assert signal.fired_at is None

    loop = asyncio.get_running_loop()
    before = loop.time()
    assert signal.fire("SIGTERM") is True
    assert signal.fire("again") is False

    assert signal.is_set()
    assert signal.reason == "SIGTERM"
    assert before <= signal.fired_at <= loop.time()
    await asyncio.wait_for(signal.wait(), timeout=1)


@pytest.mark.asyncio
async def test_waiters_released_by_fire():
    signal = ShutdownSignal()
    waiters = [asyncio.create_task(signal.wait()) for _ in range(3)]
    await asyncio.sleep(0)
    assert not any(w.done() for w in waiters)

    signal.fire()
    await asyncio.wait_for(asyncio.gather(*waiters), timeout=1)


def test_first_start_failure_wins():
    outcome = OutcomeAggregator()
    first, second = RuntimeError("first"), RuntimeError("second")

    assert outcome.record_start_failure("a", first) is True
    assert outcome.record_start_failure("b", second) is False

    assert outcome.error is first
    assert outcome.failed_task == "a"


def test_start_failure_beats_stop_failure():
    outcome = OutcomeAggregator()
    stop_error, start_error = RuntimeError("stop"), RuntimeError("start")

    outcome.record_stop_failure(0, "a", stop_error)
    outcome.record_start_failure("b", start_error)

    assert outcome.error is start_error
    assert outcome.failed_task == "b"


def test_lowest_index_stop_failure_wins():
    outcome = OutcomeAggregator()
    errors = {i: RuntimeError(f"stop {i}") for i in range(16)}

    threads = [
        threading.Thread(target=outcome.record_stop_failure, args=(i, f"t{i}", errors[i]))
        for i in reversed(range(16))
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert outcome.error is errors[0]
    assert outcome.failed_task == "t0"


def test_no_failure_is_success():
    outcome = OutcomeAggregator()
    assert outcome.error is None
    assert outcome.failed_task is None
