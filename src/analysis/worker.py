"""Background fetch worker for finished-analysis webhooks.

The webhook handler submits track ids and responds immediately; a single
consumer task drains the queue, runs the fetcher and records the outcome.
A failing fetch is logged and audited, never propagated.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING

from src.models import AuditEvent, AuditEventType, RiskLevel

if TYPE_CHECKING:
    from src.analysis.fetcher import AnalysisFetcher
    from src.audit.logger import AuditLogger

logger = logging.getLogger(__name__)


class AnalysisFetchWorker:
    """Queue-backed consumer that runs analysis fetches off the request path."""

    def __init__(
        self,
        fetcher: AnalysisFetcher,
        audit_logger: AuditLogger | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._audit = audit_logger
        self._queue: asyncio.Queue[str] = asyncio.Queue()
        self._task: asyncio.Task[None] | None = None
        self.completed = 0
        self.failed = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def submit(self, track_id: str) -> None:
        """Enqueue a track id; never blocks. Starts the consumer if needed."""
        self._queue.put_nowait(track_id)
        self.start()
        logger.debug("Queued analysis fetch for %s (%d pending)", track_id, self.pending)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="analysis-fetch-worker")

    async def stop(self, drain_timeout: float | None = None) -> None:
        """Cancel the consumer, first waiting up to ``drain_timeout`` seconds for queued work."""
        if self._task is None:
            return
        if drain_timeout and self.running:
            try:
                await asyncio.wait_for(self.join(), drain_timeout)
            except TimeoutError:
                logger.warning(
                    "Dropping %d pending analysis fetches at shutdown", self.pending,
                )
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def join(self) -> None:
        """Wait until every submitted track id has been processed."""
        await self._queue.join()

    async def _run(self) -> None:
        while True:
            track_id = await self._queue.get()
            try:
                await self.process(track_id)
            finally:
                self._queue.task_done()

    async def process(self, track_id: str) -> None:
        """Fetch one track's result and record success or failure."""
        try:
            result = await self._fetcher.fetch_analysis(track_id)
        except Exception as e:
            self.failed += 1
            logger.exception("Analysis fetch for %s failed", track_id)
            self._record(track_id, "failure", RiskLevel.MEDIUM, {"error": str(e)})
            return

        self.completed += 1
        logger.info("Analysis fetch for %s completed", track_id)
        details: dict[str, object] = {}
        if isinstance(result, dict) and "errors" in result:
            details["graphql_errors"] = result["errors"]
        self._record(track_id, "success", RiskLevel.INFO, details)

    def _record(
        self,
        track_id: str,
        result: str,
        risk_level: RiskLevel,
        details: dict[str, object],
    ) -> None:
        if self._audit:
            self._audit.log(AuditEvent(
                event_type=AuditEventType.ANALYSIS_FETCH,
                action="fetch_analysis",
                result=result,
                risk_level=risk_level,
                details={"track_id": track_id, **details},
            ))
