"""Cancellable, progress-reporting batch execution.

One logical worker per batch. The runner yields to the event loop at every
item boundary and checks the batch's cancellation flag there, so an item
that has started always runs to completion and cancellation never rolls back
items already finalized.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from trackfix.domain.errors import InvalidInputError, OperationAlreadyRunningError
from trackfix.domain.model import BatchOutcome

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable

type ProgressCallback = Callable[[ProgressEvent], None]


@dataclass(frozen=True, slots=True)
class ProgressEvent:
    operation_id: str
    processed: int
    total: int
    current_item_id: str


@dataclass(frozen=True, slots=True)
class BatchItemSuccess[TValue]:
    item_id: str
    value: TValue


@dataclass(frozen=True, slots=True)
class BatchFailure:
    item_id: str
    error: Exception


@dataclass(frozen=True, slots=True, kw_only=True)
class BatchResult[TValue]:
    operation_id: str
    outcome: BatchOutcome
    total: int
    processed: int
    succeeded: tuple[BatchItemSuccess[TValue], ...] = ()
    failed: tuple[BatchFailure, ...] = ()

    @property
    def untouched(self) -> int:
        return self.total - self.processed

    @property
    def cancelled(self) -> bool:
        return self.outcome is BatchOutcome.CANCELLED


@dataclass(slots=True)
class CancellationContext:
    """Cancellation flag bound to exactly one batch invocation."""

    operation_id: str
    _cancelled: bool = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


_END_OF_STREAM = None


class BatchOperation[TValue]:
    """Handle on a batch running in the background."""

    def __init__(
        self,
        context: CancellationContext,
        task: asyncio.Task[BatchResult[TValue]],
        events: asyncio.Queue[ProgressEvent | None],
    ) -> None:
        self._context = context
        self._task = task
        self._events = events

    @property
    def operation_id(self) -> str:
        return self._context.operation_id

    def cancel(self) -> None:
        self._context.cancel()

    def add_done_callback(self, callback: Callable[[BatchOperation[TValue]], None]) -> None:
        self._task.add_done_callback(lambda _task: callback(self))

    def finished_result(self) -> BatchResult[TValue]:
        """Result of a finished batch; re-raises whatever ended it."""

        return self._task.result()

    async def progress(self) -> AsyncIterator[ProgressEvent]:
        """Yield progress events until the batch finishes (single consumer)."""

        while True:
            event = await self._events.get()
            if event is _END_OF_STREAM:
                return
            yield event

    async def result(self) -> BatchResult[TValue]:
        return await self._task


def default_item_id(item: object, position: int) -> str:
    for attribute in ("id", "track_id"):
        value = getattr(item, attribute, None)
        if isinstance(value, str):
            return value
    return str(position)


@dataclass(slots=True, kw_only=True)
class BatchOperationRunner:
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))
    _active: dict[str, CancellationContext] = field(default_factory=dict)

    def is_running(self, operation_id: str) -> bool:
        return operation_id in self._active

    def cancel(self, operation_id: str) -> bool:
        """Request cancellation; returns ``False`` when no such batch is in flight."""

        context = self._active.get(operation_id)
        if context is None:
            return False
        self.logger.info("Cancellation requested for batch %s", operation_id)
        context.cancel()
        return True

    async def run[TItem, TValue](
        self,
        items: Sequence[TItem],
        per_item: Callable[[TItem], TValue | Awaitable[TValue]],
        *,
        operation_id: str | None = None,
        item_id: Callable[[TItem], str] | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> BatchResult[TValue]:
        batch = self._prepare(items)
        context = self._register(operation_id)
        return await self._execute(context, batch, per_item, item_id, on_progress, None)

    def start[TItem, TValue](
        self,
        items: Sequence[TItem],
        per_item: Callable[[TItem], TValue | Awaitable[TValue]],
        *,
        operation_id: str | None = None,
        item_id: Callable[[TItem], str] | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> BatchOperation[TValue]:
        """Schedule the batch on the running event loop and return its handle."""

        batch = self._prepare(items)
        loop = asyncio.get_running_loop()
        context = self._register(operation_id)
        events: asyncio.Queue[ProgressEvent | None] = asyncio.Queue()
        task = loop.create_task(
            self._execute(context, batch, per_item, item_id, on_progress, events),
            name=f"batch-{context.operation_id}",
        )
        return BatchOperation(context, task, events)

    @staticmethod
    def _prepare[TItem](items: Sequence[TItem]) -> tuple[TItem, ...]:
        if isinstance(items, (str, bytes)) or not isinstance(items, Sequence):
            raise InvalidInputError(
                f"Batch items must be a sequence, got {type(items).__name__}"
            )
        return tuple(items)

    def _register(self, operation_id: str | None) -> CancellationContext:
        resolved = operation_id or uuid.uuid4().hex
        if resolved in self._active:
            raise OperationAlreadyRunningError(resolved)
        context = CancellationContext(resolved)
        self._active[resolved] = context
        return context

    def _item_id[TItem](
        self, item: TItem, position: int, item_id: Callable[[TItem], str] | None
    ) -> str:
        if item_id is None:
            return default_item_id(item, position)
        try:
            return item_id(item)
        except Exception:
            self.logger.exception("Item id callback failed at position %d", position)
            return str(position)

    def _notify(self, on_progress: ProgressCallback, event: ProgressEvent) -> None:
        try:
            on_progress(event)
        except Exception:
            self.logger.exception(
                "Progress callback failed for batch %s at item %s",
                event.operation_id,
                event.current_item_id,
            )

    async def _execute[TItem, TValue](
        self,
        context: CancellationContext,
        items: tuple[TItem, ...],
        per_item: Callable[[TItem], TValue | Awaitable[TValue]],
        item_id: Callable[[TItem], str] | None,
        on_progress: ProgressCallback | None,
        events: asyncio.Queue[ProgressEvent | None] | None,
    ) -> BatchResult[TValue]:
        operation_id = context.operation_id
        total = len(items)
        succeeded: list[BatchItemSuccess[TValue]] = []
        failed: list[BatchFailure] = []
        processed = 0
        outcome = BatchOutcome.COMPLETED
        self.logger.info("Starting batch %s: items=%d", operation_id, total)
        try:
            for position, item in enumerate(items):
                await asyncio.sleep(0)
                if context.cancelled:
                    outcome = BatchOutcome.CANCELLED
                    break
                current_id = self._item_id(item, position, item_id)
                try:
                    value = per_item(item)
                    if inspect.isawaitable(value):
                        value = await value
                except Exception as exc:  # noqa: BLE001
                    self.logger.warning(
                        "Batch %s item %s failed: %s", operation_id, current_id, exc
                    )
                    failed.append(BatchFailure(current_id, exc))
                else:
                    succeeded.append(BatchItemSuccess(current_id, value))
                processed += 1
                event = ProgressEvent(operation_id, processed, total, current_id)
                if on_progress is not None:
                    self._notify(on_progress, event)
                if events is not None:
                    events.put_nowait(event)
        finally:
            self._active.pop(operation_id, None)
            if events is not None:
                events.put_nowait(_END_OF_STREAM)

        self.logger.info(
            "Finished batch %s: outcome=%s, processed=%d/%d, failed=%d",
            operation_id,
            outcome,
            processed,
            total,
            len(failed),
        )
        return BatchResult(
            operation_id=operation_id,
            outcome=outcome,
            total=total,
            processed=processed,
            succeeded=tuple(succeeded),
            failed=tuple(failed),
        )
