"""ToolDispatcher: runs the tool calls of one assistant turn.

``execute()`` turns a single ToolCallBlock into a ToolResultBlock and never
raises: unknown tools, invalid input and failing tools all become
error-flagged results.  ``dispatch()`` fans the calls of one turn out to a
thread pool and joins them back in the order the model emitted them.
"""

from __future__ import annotations

import logging
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import TYPE_CHECKING

from turnloop.exceptions import ToolExecutionError, ToolInputError, ToolNotFoundError
from turnloop.models.content import ToolResultBlock

if TYPE_CHECKING:
    import threading
    from collections.abc import Sequence
    from concurrent.futures import Future

    from turnloop.models.content import ToolCallBlock
    from turnloop.toolkit.registry import ToolRegistry

logger = logging.getLogger(__name__)

TOOL_NOT_FOUND = "tool not found"
CANCELLED = "cancelled"


@dataclass(frozen=True)
class DispatchOutcome:
    """Results of one dispatch, aligned index-for-index with the calls.

    Attributes:
        results: One ToolResultBlock per call, in call order.
        cancelled: True if the dispatch was interrupted; calls that had not
            finished carry an error result with output ``"cancelled"``.
    """

    results: tuple[ToolResultBlock, ...]
    cancelled: bool = False


class ToolDispatcher:
    """Dispatches tool calls to registry entries and returns structured results.

    Usage::

        dispatcher = ToolDispatcher(registry)
        outcome = dispatcher.dispatch(response.tool_calls)
        conversation.append(Message.tool_results(outcome.results))
    """

    def __init__(self, registry: ToolRegistry, *, max_workers: int | None = None) -> None:
        self._registry = registry
        self._max_workers = max_workers

    def execute(self, call: ToolCallBlock) -> ToolResultBlock:
        """Execute one tool call.

        Args:
            call: The tool call emitted by the model.

        Returns:
            ToolResultBlock linked to ``call.id``.
        """
        try:
            tool = self._registry.lookup(call.name)
        except ToolNotFoundError:
            logger.warning("Model requested unknown tool: %s", call.name)
            return _error(call, TOOL_NOT_FOUND)

        try:
            args = tool.validate(call.input)
        except ToolInputError as exc:
            logger.info("Rejected input for %s: %s", call.name, exc)
            return _error(call, str(exc))

        logger.info("Executing tool: %s (%s)", call.name, call.id)
        try:
            output = tool.execute(args)
        except ToolExecutionError as exc:
            logger.info("Tool %s failed: %s", call.name, exc)
            return _error(call, str(exc) or type(exc).__name__)
        except Exception as exc:
            logger.debug("Tool %s raised", call.name, exc_info=True)
            return _error(call, f"{type(exc).__name__}: {exc}")

        return ToolResultBlock(
            tool_call_id=call.id,
            output="" if output is None else str(output),
        )

    def dispatch(
        self,
        calls: Sequence[ToolCallBlock],
        *,
        cancel_event: threading.Event | None = None,
        poll_interval: float = 0.05,
    ) -> DispatchOutcome:
        """Run all calls of one turn concurrently and join them in order.

        Each call runs in its own worker (bounded by ``max_workers``), so a
        slow or failing tool never holds back its siblings' results.

        Args:
            calls: Tool calls in the order the model emitted them.
            cancel_event: When set, stop waiting; unfinished calls are
                reported as cancelled.
            poll_interval: Seconds between cancellation checks.

        Returns:
            DispatchOutcome with results in call order.
        """
        if not calls:
            return DispatchOutcome(results=())

        workers = len(calls)
        if self._max_workers is not None:
            workers = min(workers, self._max_workers)

        slots: list[ToolResultBlock | None] = [None] * len(calls)
        cancelled = False
        pool = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="turnloop-tool")
        try:
            futures: dict[Future[ToolResultBlock], int] = {
                pool.submit(self.execute, call): idx for idx, call in enumerate(calls)
            }
            pending = set(futures)
            while pending:
                if cancel_event is not None and cancel_event.is_set():
                    cancelled = True
                    break
                timeout = poll_interval if cancel_event is not None else None
                done, pending = wait(pending, timeout=timeout, return_when=FIRST_COMPLETED)
                for fut in done:
                    idx = futures[fut]
                    slots[idx] = _collect(fut, calls[idx])
            # Calls that finished before the cancel was seen keep their results.
            for fut in pending:
                if fut.done():
                    idx = futures[fut]
                    slots[idx] = _collect(fut, calls[idx])
        finally:
            # Abandoned calls keep running in their threads; we only stop waiting.
            pool.shutdown(wait=not cancelled, cancel_futures=True)

        if cancelled:
            logger.warning(
                "Tool dispatch cancelled with %d of %d calls unfinished",
                sum(1 for s in slots if s is None),
                len(calls),
            )
        results = tuple(
            slot if slot is not None else _error(call, CANCELLED)
            for slot, call in zip(slots, calls)
        )
        return DispatchOutcome(results=results, cancelled=cancelled)


def _collect(fut: Future[ToolResultBlock], call: ToolCallBlock) -> ToolResultBlock:
    try:
        return fut.result()
    except Exception as exc:
        # execute() converts tool failures itself; this guards the isolation.
        logger.error("Dispatch of %s failed: %s", call.name, exc, exc_info=True)
        return _error(call, f"{type(exc).__name__}: {exc}")


def _error(call: ToolCallBlock, output: str) -> ToolResultBlock:
    return ToolResultBlock(tool_call_id=call.id, output=output, is_error=True)
