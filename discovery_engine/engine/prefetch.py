"""Look-ahead validation over the window in front of the cursor.

The scheduler runs on two events only: queue creation (``start``) and
cursor advance (registered as an advance hook). Each run walks the
inclusive range ``[cursor, cursor + prefetch_window]`` and, for every
item still ``pending``, flips it to ``validating`` under the queue lock
before submitting the provider call. The flip is what prevents two
dispatches for the same index; items already ``validating``,
``validated`` or ``error`` are never dispatched again.

The range size is the only bound on in-window work: the pool has one
worker per queue item, so a call for the item under the cursor starts
at once even while calls for items the user already passed are still
running. Those calls are not cancelled: the cursor never goes back, so
their results stay useful. After ``cancel()`` every late completion is
discarded; after ``shutdown()`` running calls still land.
"""

from __future__ import annotations

import concurrent.futures
import threading
import time
from typing import Optional

from discovery_engine.domain.exceptions import InvalidTransition
from discovery_engine.domain.models import DiscoveryItem, Enrichment
from discovery_engine.engine.queue import DiscoveryQueue
from discovery_engine.shared.exceptions import ToolError
from discovery_engine.tools.interfaces import ValidationProvider


class PrefetchScheduler:
    def __init__(
        self,
        queue: DiscoveryQueue,
        provider: ValidationProvider,
        city: str,
        *,
        session_id: str = "",
        logger=None,
        executor: Optional[concurrent.futures.Executor] = None,
    ):
        self._queue = queue
        self._provider = provider
        self._city = city
        self._session_id = session_id
        self._logger = logger
        self._owns_executor = executor is None
        self._executor = executor or concurrent.futures.ThreadPoolExecutor(
            max_workers=max(1, queue.total()),
            thread_name_prefix=f"prefetch-{session_id}" if session_id else "prefetch",
        )
        self._futures: dict[int, concurrent.futures.Future] = {}
        self._dispatched: list[int] = []
        self._lock = threading.Lock()
        self._cancelled = threading.Event()
        self._stopped = threading.Event()
        queue.add_advance_hook(self._on_advance)

    @property
    def dispatched(self) -> list[int]:
        """Indices in dispatch order. Each index appears at most once."""
        with self._lock:
            return list(self._dispatched)

    @property
    def in_flight(self) -> int:
        with self._lock:
            return sum(1 for future in self._futures.values() if not future.done())

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def start(self) -> list[int]:
        return self.refresh()

    def _on_advance(self, _cursor: int) -> None:
        self.refresh()

    def refresh(self) -> list[int]:
        """Dispatch validation for every pending item in the current window."""
        dispatched: list[int] = []
        for index in self._queue.window_range():
            if self._stopped.is_set():
                break
            claimed = self._queue.claim_for_validation(index)
            if claimed is None:
                continue
            try:
                future = self._executor.submit(self._validate, index, claimed)
            except RuntimeError:
                # Executor shut down by a concurrent cancel() or shutdown().
                break
            with self._lock:
                self._futures[index] = future
                self._dispatched.append(index)
            dispatched.append(index)
            self._log("validation_dispatch", index=index, name=claimed.name)
        return dispatched

    def _validate(self, index: int, item: DiscoveryItem) -> None:
        if self._cancelled.is_set():
            return
        started = time.perf_counter()
        enrichment: Optional[Enrichment] = None
        failure = ""
        try:
            enrichment = self._provider.validate_candidate(item.name, self._city)
        except ToolError as exc:
            failure = exc.detail
        except Exception as exc:
            # Any provider fault stays local to this item.
            failure = str(exc) or exc.__class__.__name__

        if self._cancelled.is_set():
            return
        try:
            if enrichment is not None:
                updated = self._queue.apply(index, lambda current: current.mark_validated(enrichment))
            else:
                updated = self._queue.apply(index, lambda current: current.mark_error(failure))
        except InvalidTransition as exc:
            self._log_error(str(exc), index=index)
            return
        if updated is None:
            return
        self._log(
            "validation_result",
            index=index,
            status=updated.status.value,
            latency_ms=(time.perf_counter() - started) * 1000.0,
            error=updated.error_message or "",
        )

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until every dispatched validation has finished. True if all did."""
        with self._lock:
            pending = [future for future in self._futures.values() if not future.done()]
        if not pending:
            return True
        _, not_done = concurrent.futures.wait(pending, timeout=timeout)
        return not not_done

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    def shutdown(self) -> None:
        """Stop dispatching and release the worker threads once running calls return."""
        self._stopped.set()
        if self._owns_executor:
            self._executor.shutdown(wait=False)

    def cancel(self) -> None:
        """Stop dispatching and discard late completions. Running calls are not interrupted."""
        self._cancelled.set()
        self._stopped.set()
        self._queue.close()
        if self._owns_executor:
            self._executor.shutdown(wait=False, cancel_futures=True)

    def _log(self, event: str, **fields) -> None:
        if self._logger is None:
            return
        try:
            if event == "validation_dispatch":
                self._logger.validation_dispatch(self._session_id, fields.pop("index"), fields.pop("name"), **fields)
            else:
                self._logger.validation_result(
                    self._session_id,
                    fields.pop("index"),
                    status=fields.pop("status"),
                    latency_ms=fields.pop("latency_ms"),
                    **fields,
                )
        except Exception:
            return

    def _log_error(self, message: str, **fields) -> None:
        if self._logger is None:
            return
        try:
            self._logger.error("prefetch", message, session_id=self._session_id, **fields)
        except Exception:
            return
