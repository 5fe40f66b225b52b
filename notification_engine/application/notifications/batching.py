"""Batch coordination for bulk channel delivery."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Generic, TypeVar

import anyio

logger = logging.getLogger(__name__)

ItemT = TypeVar("ItemT")
ResultT = TypeVar("ResultT")


class BatchCoordinator(Generic[ItemT, ResultT]):
    """Send items in fixed-size concurrent batches separated by a pause.

    Each batch is awaited completely before the next one starts, so at most
    ``batch_size`` sends are in flight at any time.
    """

    def __init__(
        self,
        batch_size: int = 50,
        delay_between_batches: float = 1.0,
        *,
        sleep: Callable[[float], Awaitable[None]] = anyio.sleep,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        if delay_between_batches < 0:
            raise ValueError("delay_between_batches cannot be negative")
        self.batch_size = batch_size
        self.delay_between_batches = delay_between_batches
        self._sleep = sleep

    def split_batches(self, items: Sequence[ItemT]) -> list[list[ItemT]]:
        return [
            list(items[start : start + self.batch_size])
            for start in range(0, len(items), self.batch_size)
        ]

    async def run(
        self,
        items: Sequence[ItemT],
        send: Callable[[ItemT], Awaitable[ResultT]],
        *,
        validate: Callable[[ItemT], bool] | None = None,
        on_invalid: Callable[[ItemT], ResultT] | None = None,
        on_error: Callable[[ItemT, Exception], ResultT] | None = None,
    ) -> list[ResultT]:
        """Deliver ``items`` and return one result per item in submission order.

        Items rejected by ``validate`` are answered by ``on_invalid`` and never
        sent. When ``on_error`` is given an exception raised by ``send`` is
        turned into that item's result without affecting its siblings.
        """

        if validate is not None and on_invalid is None:
            raise ValueError("on_invalid is required when validate is provided")

        results: list[ResultT | None] = [None] * len(items)
        pending: list[tuple[int, ItemT]] = []
        for index, item in enumerate(items):
            if validate is not None and not validate(item):
                results[index] = on_invalid(item)
            else:
                pending.append((index, item))

        batches = self.split_batches(pending)
        if batches:
            logger.info(
                "Processing %s items in %s batches of up to %s (%s rejected)",
                len(pending),
                len(batches),
                self.batch_size,
                len(items) - len(pending),
            )

        async def _deliver(index: int, item: ItemT) -> None:
            try:
                results[index] = await send(item)
            except Exception as exc:
                if on_error is None:
                    raise
                logger.error("Delivery of batch item %s failed: %s", index, exc)
                results[index] = on_error(item, exc)

        for position, batch in enumerate(batches):
            async with anyio.create_task_group() as task_group:
                for index, item in batch:
                    task_group.start_soon(_deliver, index, item)
            if position < len(batches) - 1 and self.delay_between_batches > 0:
                await self._sleep(self.delay_between_batches)

        return results  # type: ignore[return-value]


__all__ = ["BatchCoordinator"]
