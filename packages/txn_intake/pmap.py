"""Bounded-concurrency mapping over ThreadPoolExecutor that never fails fast.

``p_map_settled`` runs ``mapper`` over an iterable with at most
``concurrency`` calls in flight and returns one :class:`Settled` outcome per
input item, in input order. A failing item records its exception and does not
cancel or abort sibling work.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Generic, TypeVar

InT = TypeVar("InT")
OutT = TypeVar("OutT")


class Settled(Generic[OutT]):
    """Outcome of one mapper call: either ``value`` or ``error`` is meaningful."""

    __slots__ = ("value", "error")

    def __init__(self, value: OutT | None = None, error: Exception | None = None) -> None:
        self.value = value
        self.error = error

    @property
    def ok(self) -> bool:
        return self.error is None

    def __repr__(self) -> str:  # pragma: no cover - trivial
        if self.error is not None:
            return f"Settled(error={self.error!r})"
        return f"Settled(value={self.value!r})"


def p_map_settled(
    iterable: Iterable[InT],
    mapper: Callable[[InT], OutT],
    *,
    concurrency: int,
) -> list[Settled[OutT]]:
    """Map ``iterable`` through ``mapper`` and settle every item.

    The iterable is consumed lazily; at most ``concurrency`` mapper calls run
    at once. The result has exactly one entry per input item.
    """

    if not isinstance(concurrency, int) or isinstance(concurrency, bool) or concurrency < 1:
        raise ValueError("concurrency must be a positive integer")

    it = enumerate(iterable)
    outcomes: dict[int, Settled[OutT]] = {}
    future_to_idx: dict[Future[OutT], int] = {}

    def _submit(pool: ThreadPoolExecutor) -> Future[OutT] | None:
        try:
            idx, item = next(it)
        except StopIteration:
            return None
        fut = pool.submit(mapper, item)
        future_to_idx[fut] = idx
        return fut

    with ThreadPoolExecutor(max_workers=concurrency) as pool:
        active: set[Future[OutT]] = set()
        for _ in range(concurrency):
            fut = _submit(pool)
            if fut is None:
                break
            active.add(fut)

        while active:
            done, active = wait(active, return_when=FIRST_COMPLETED)
            for fut in done:
                idx = future_to_idx.pop(fut)
                try:
                    outcomes[idx] = Settled(value=fut.result())
                except Exception as e:  # noqa: BLE001 - recorded per item
                    outcomes[idx] = Settled(error=e)

            for _ in range(len(done)):
                fut = _submit(pool)
                if fut is None:
                    break
                active.add(fut)

    return [outcomes[i] for i in range(len(outcomes))]


__all__ = ["Settled", "p_map_settled"]
