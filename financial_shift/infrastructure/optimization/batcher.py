"""Request batching: accumulate items per key and dispatch them together"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Sequence

from financial_shift.domain.exceptions import BatchResultMismatchError
from financial_shift.infrastructure.observability.metrics import batch_size_histogram

logger = logging.getLogger(__name__)

BatchProcessor = Callable[[List[Any]], Awaitable[Sequence[Any]]]


class _PendingBatch:
    def __init__(self, processor: BatchProcessor):
        self.processor = processor
        self.items: List[Any] = []
        self.futures: List[asyncio.Future] = []
        self.timer: asyncio.TimerHandle | None = None


class RequestBatcher:
    """
    Groups items added under the same batch key.

    A batch is dispatched when it holds `batch_size` items or `batch_delay`
    seconds after its first item, whichever comes first. The processor of
    the first item in a batch handles the whole batch and must return one
    result per item, in item order.
    """

    def __init__(self, batch_size: int = 10, batch_delay: float = 0.1):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self._batches: Dict[str, _PendingBatch] = {}
        self._inflight: set[asyncio.Task] = set()

    async def add(self, batch_key: str, item: Any, processor: BatchProcessor) -> Any:
        loop = asyncio.get_running_loop()
        batch = self._batches.get(batch_key)
        if batch is None:
            batch = _PendingBatch(processor)
            self._batches[batch_key] = batch

        future = loop.create_future()
        batch.items.append(item)
        batch.futures.append(future)

        if len(batch.items) >= self.batch_size:
            self._dispatch(batch_key)
        elif batch.timer is None:
            batch.timer = loop.call_later(self.batch_delay, self._dispatch, batch_key)

        return await future

    def _dispatch(self, batch_key: str) -> asyncio.Task | None:
        batch = self._batches.pop(batch_key, None)
        if batch is None:
            return None
        if batch.timer is not None:
            batch.timer.cancel()

        task = asyncio.get_running_loop().create_task(self._process(batch_key, batch))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return task

    @staticmethod
    async def _process(batch_key: str, batch: _PendingBatch) -> None:
        batch_size_histogram.observe(len(batch.items))
        try:
            results = list(await batch.processor(list(batch.items)))
            if len(results) != len(batch.items):
                raise BatchResultMismatchError(
                    f"Batch '{batch_key}' returned {len(results)} results for {len(batch.items)} items"
                )
        except Exception as e:
            logger.warning("Batch failed", extra={"batch_key": batch_key, "items": len(batch.items), "error": str(e)})
            for future in batch.futures:
                if not future.done():
                    future.set_exception(e)
            return

        for future, result in zip(batch.futures, results):
            if not future.done():
                future.set_result(result)

    async def flush(self) -> None:
        """Dispatch every pending batch now and wait for all of them"""
        for key in list(self._batches):
            self._dispatch(key)
        if self._inflight:
            await asyncio.gather(*list(self._inflight))

    def pending(self) -> Dict[str, int]:
        return {key: len(batch.items) for key, batch in self._batches.items()}
