"""Bounded fan-out/fan-in of independent decode units."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Sequence, TypeVar

from bookimport.ingestion.cancellation import CancellationToken
from bookimport.ingestion.errors import UnitDecodeSkip

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

UnitWorker = Callable[[int, T], Awaitable[R]]
BatchCallback = Callable[[int, int, int], None]

_SKIPPED = object()


async def _run_unit(worker: UnitWorker, index: int, unit: T, cancel_token: CancellationToken) -> object:
    if cancel_token.cancelled:
        return _SKIPPED
    try:
        result = await worker(index, unit)
    except UnitDecodeSkip as skip:
        logger.warning("Skipping undecodable unit %d: %s", skip.index, skip.reason)
        return _SKIPPED
    if cancel_token.cancelled:
        return _SKIPPED
    return result


async def run_in_batches(
    units: Sequence[T],
    worker: UnitWorker,
    *,
    batch_size: int,
    cancel_token: CancellationToken,
    on_batch: BatchCallback | None = None,
) -> list[R]:
    """Run ``worker`` over ``units`` in concurrent batches of ``batch_size``.

    Results come back in original index order regardless of completion
    order. Units that raise :class:`UnitDecodeSkip` are omitted. The token is
    checked before each batch starts and after it finishes, so a cancelled run
    discards the in-flight batch and raises
    :class:`~bookimport.ingestion.errors.CancellationError`.

    ``on_batch(first, last, total)`` is invoked after each completed batch
    with 1-based inclusive unit bounds.
    """

    if batch_size < 1:
        raise ValueError("batch_size must be >= 1")

    results: list[R] = []
    total = len(units)

    for start in range(0, total, batch_size):
        cancel_token.raise_if_cancelled()
        batch = units[start : start + batch_size]
        outcomes = await asyncio.gather(
            *(_run_unit(worker, start + offset, unit, cancel_token) for offset, unit in enumerate(batch))
        )
        cancel_token.raise_if_cancelled()

        results.extend(outcome for outcome in outcomes if outcome is not _SKIPPED)  # type: ignore[misc]
        if on_batch is not None:
            on_batch(start + 1, start + len(batch), total)
        await asyncio.sleep(0)

    return results
