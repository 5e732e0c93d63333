"""High-level API for benchmark history.

This module provides BenchmarkHistory, the handle through which runs are
appended to and read from the per-(repository, group) series.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from benchtrack.benchmarks.models import HistoryDocument
from benchtrack.benchmarks.storage import JSONFileStore, StorageProtocol
from benchtrack.core.exceptions import BenchtrackError, OutOfOrderError
from benchtrack.core.types import to_epoch_ms
from benchtrack.regression import RegressionDetector

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType

    from benchtrack.core.types import BenchmarkRun, Series
    from benchtrack.regression import ComparisonResult

logger = logging.getLogger(__name__)

SeriesKey = tuple[str, str]


@dataclass
class _AppendRequest:
    """A run waiting in a key's append queue."""

    run: BenchmarkRun
    future: asyncio.Future[ComparisonResult]


class BenchmarkHistory:
    """Append-only benchmark history with regression comparison.

    Every ``(repo_url, group)`` key has a single-consumer append queue: one
    worker task takes runs off the queue and, for each, checks ordering,
    persists the new document, swaps it into the in-memory snapshot, and
    compares the run against the series as it was just before. A worker
    exits once its queue is drained and the next append starts a new one.
    Different keys proceed independently; because all groups of a
    repository share one document, the persist step holds a per-repository
    lock.

    Readers always see a complete snapshot, either before or after an
    append, never a partial one.

    Example:
        >>> async with BenchmarkHistory(JSONFileStore(".benchtrack")) as history:
        ...     result = await history.append(repo_url, "Benchmark", run)
        ...     series = await history.read(repo_url, "Benchmark")
    """

    def __init__(
        self,
        store: StorageProtocol | None = None,
        detector: RegressionDetector | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize with storage backend.

        Args:
            store: Storage backend (default: JSONFileStore).
            detector: Regression detector (default: RegressionDetector()).
            clock: Source of the document's ``lastUpdate`` (default: UTC now).
        """
        self._store: StorageProtocol = store or JSONFileStore()
        self._detector = detector or RegressionDetector()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._documents: dict[str, HistoryDocument] = {}
        self._repo_locks: dict[str, asyncio.Lock] = {}
        self._queues: dict[SeriesKey, asyncio.Queue[_AppendRequest]] = {}
        self._workers: dict[SeriesKey, asyncio.Task[None]] = {}
        self._closed = False

    @property
    def detector(self) -> RegressionDetector:
        """Detector used to compare appended runs."""
        return self._detector

    async def __aenter__(self) -> BenchmarkHistory:
        """Enter async context manager."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit async context manager, stopping the append workers."""
        await self.aclose()

    async def aclose(self) -> None:
        """Stop all append workers.

        Runs still waiting in a queue are cancelled; their callers receive
        CancelledError and nothing is persisted for them.
        """
        self._closed = True
        workers = list(self._workers.values())
        for worker in workers:
            worker.cancel()
        await asyncio.gather(*workers, return_exceptions=True)

        for queue in self._queues.values():
            while not queue.empty():
                request = queue.get_nowait()
                request.future.cancel()

        self._workers.clear()
        self._queues.clear()

    def _repo_lock(self, repo_url: str) -> asyncio.Lock:
        return self._repo_locks.setdefault(repo_url, asyncio.Lock())

    async def document(self, repo_url: str) -> HistoryDocument:
        """Get the current history document of a repository.

        The document is loaded from the store on first access.

        Args:
            repo_url: Repository URL.

        Returns:
            The current document (empty if the repository has no history).

        Raises:
            StoreIOError: If the stored document cannot be read.
        """
        document = self._documents.get(repo_url)
        if document is not None:
            return document

        async with self._repo_lock(repo_url):
            document = self._documents.get(repo_url)
            if document is None:
                document = await self._store.load(repo_url) or HistoryDocument(repo_url=repo_url)
                self._documents[repo_url] = document
                logger.debug(f"Loaded benchmark history of {repo_url}: {len(document.entries)} groups")
        return document

    async def read(self, repo_url: str, group: str) -> Series:
        """Get the series of a key.

        Args:
            repo_url: Repository URL.
            group: Tool-group key.

        Returns:
            Runs in append order (empty if the key has no runs).
        """
        return (await self.document(repo_url)).series(group)

    async def groups(self, repo_url: str) -> list[str]:
        """List the tool-group keys of a repository."""
        return list((await self.document(repo_url)).entries)

    async def append(self, repo_url: str, group: str, run: BenchmarkRun) -> ComparisonResult:
        """Append a run and compare it against the series it joins.

        Args:
            repo_url: Repository URL.
            group: Tool-group key.
            run: Validated run to append.

        Returns:
            ComparisonResult of the run against the pre-append series.

        Raises:
            OutOfOrderError: If the run is older than the last stored run.
            StoreIOError: If the document could not be loaded or persisted.
        """
        if self._closed:
            msg = "BenchmarkHistory is closed"
            raise BenchtrackError(msg)

        future: asyncio.Future[ComparisonResult] = asyncio.get_running_loop().create_future()
        self._queue_for((repo_url, group)).put_nowait(_AppendRequest(run=run, future=future))
        return await future

    def _queue_for(self, key: SeriesKey) -> asyncio.Queue[_AppendRequest]:
        queue = self._queues.get(key)
        if queue is None:
            queue = asyncio.Queue()
            self._queues[key] = queue
            self._workers[key] = asyncio.create_task(self._worker(key, queue))
        return queue

    async def _worker(self, key: SeriesKey, queue: asyncio.Queue[_AppendRequest]) -> None:
        """Single consumer of a key's append queue; exits once the queue is drained."""
        repo_url, group = key
        while True:
            request = await queue.get()
            try:
                if not request.future.cancelled():
                    await self._serve(repo_url, group, request)
            finally:
                queue.task_done()

            if queue.empty():
                # No await between this check and the return, so no append can slip in
                if self._queues.get(key) is queue:
                    del self._queues[key]
                    del self._workers[key]
                return

    async def _serve(self, repo_url: str, group: str, request: _AppendRequest) -> None:
        try:
            result = await self._append_and_compare(repo_url, group, request.run)
        except Exception as e:
            # Forwarded to the caller awaiting the future
            if not request.future.done():
                request.future.set_exception(e)
        else:
            if not request.future.done():
                request.future.set_result(result)

    async def _append_and_compare(self, repo_url: str, group: str, run: BenchmarkRun) -> ComparisonResult:
        """Persist a run and compare it against the pre-append series."""
        await self.document(repo_url)

        async with self._repo_lock(repo_url):
            current = self._documents[repo_url]
            baseline = current.series(group)
            _check_order(repo_url, group, baseline, run)

            updated = current.with_run(group, run, last_update=to_epoch_ms(self._clock()))
            await self._store.save(updated)
            self._documents[repo_url] = updated

        logger.info(
            f"Appended run {run.commit.short_id} to {repo_url} [{group}]: "
            f"{len(run.benches)} results, series length {len(baseline) + 1}"
        )
        return self._detector.detect(baseline, run, repo_url=repo_url, group=group)


def _check_order(repo_url: str, group: str, series: Series, run: BenchmarkRun) -> None:
    """Reject a run older than the last run of its series."""
    if series and run.date < series[-1].date:
        msg = (
            f"Run {run.commit.short_id} dated {run.date.isoformat()} is older than the last run "
            f"of {repo_url} [{group}] ({series[-1].date.isoformat()})"
        )
        logger.warning(f"Rejected out-of-order run: {msg}")
        raise OutOfOrderError(msg)
