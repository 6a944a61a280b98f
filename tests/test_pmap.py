import threading
import time

import pytest

from txn_intake.pmap import p_map_settled


def test_results_follow_input_order():
    def slow_for_small(x: int) -> int:
        time.sleep(0.01 * (5 - x))
        return x * 10

    out = p_map_settled(range(5), slow_for_small, concurrency=5)
    assert [s.value for s in out] == [0, 10, 20, 30, 40]
    assert all(s.ok for s in out)


def test_failures_do_not_abort_siblings():
    def maybe_fail(x: int) -> int:
        if x % 2:
            raise ValueError(f"odd {x}")
        return x

    out = p_map_settled([0, 1, 2, 3, 4], maybe_fail, concurrency=2)
    assert [s.ok for s in out] == [True, False, True, False, True]
    assert str(out[1].error) == "odd 1"
    assert out[4].value == 4


def test_concurrency_is_bounded():
    active = 0
    peak = 0
    lock = threading.Lock()

    def work(_: int) -> None:
        nonlocal active, peak
        with lock:
            active += 1
            peak = max(peak, active)
        time.sleep(0.01)
        with lock:
            active -= 1

    out = p_map_settled(range(12), work, concurrency=3)
    assert len(out) == 12
    assert peak <= 3


def test_empty_input():
    assert p_map_settled([], lambda x: x, concurrency=4) == []


@pytest.mark.parametrize("bad", [0, -1, True, 1.5])
def test_invalid_concurrency(bad):
    with pytest.raises(ValueError):
        p_map_settled([1], lambda x: x, concurrency=bad)
