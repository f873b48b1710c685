"""Background worker refreshing non-terminal jobs off the request path."""

from __future__ import annotations

import asyncio
import logging

from ..jobs.job_refresher import JobRefresher


class RefreshWorker:
    """Consume job ids from a bounded queue and refresh them one at a time.

    Progress queries enqueue and return immediately. A full queue drops the
    request; refresh failures are logged and never reach the caller.
    """

    def __init__(
        self,
        refresher: JobRefresher,
        *,
        queue_size: int = 100,
        idle_timeout_seconds: float = 1.0,
    ) -> None:
        self._refresher = refresher
        self._queue: asyncio.Queue[str] = asyncio.Queue(maxsize=max(1, queue_size))
        self._pending: set[str] = set()
        self._idle_timeout_seconds = max(0.01, idle_timeout_seconds)
        self._logger = logging.getLogger(__name__)

    def enqueue(self, job_id: str) -> bool:
        """Schedule ``job_id`` for refresh; ``False`` if dropped."""

        if job_id in self._pending:
            return True
        try:
            self._queue.put_nowait(job_id)
        except asyncio.QueueFull:
            self._logger.warning("refresh.queue_full", extra={"job_id": job_id})
            return False
        self._pending.add(job_id)
        return True

    @property
    def queued(self) -> int:
        return self._queue.qsize()

    async def run_once(self, *, timeout: float | None = None) -> bool:
        """Refresh at most one queued job; ``False`` when the queue stayed empty."""

        try:
            job_id = await asyncio.wait_for(
                self._queue.get(),
                timeout=self._idle_timeout_seconds if timeout is None else timeout,
            )
        except asyncio.TimeoutError:
            return False
        await self._process(job_id)
        return True

    async def _process(self, job_id: str) -> None:
        try:
            await self._refresher.refresh(job_id)
        except asyncio.CancelledError:
            raise
        except Exception:
            self._logger.exception("refresh.failed", extra={"job_id": job_id})
        finally:
            self._pending.discard(job_id)
            self._queue.task_done()

    async def run_forever(self, *, shutdown_event: asyncio.Event) -> None:
        """Process refresh requests until ``shutdown_event`` is set."""

        try:
            while not shutdown_event.is_set():
                await self.run_once()
        except asyncio.CancelledError:
            self._logger.debug("RefreshWorker cancelled")
            raise
        finally:
            await self.aclose()

    async def drain(self) -> None:
        """Refresh everything currently queued."""
        while not self._queue.empty():
            await self._process(self._queue.get_nowait())

    async def aclose(self) -> None:
        dropped = 0
        while not self._queue.empty():
            job_id = self._queue.get_nowait()
            self._pending.discard(job_id)
            self._queue.task_done()
            dropped += 1
        if dropped:
            self._logger.info("refresh.queue_discarded", extra={"count": dropped})


__all__ = ["RefreshWorker"]
