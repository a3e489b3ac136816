"""Periodic status polling.

``watch`` is the loop itself: it checks a job once, yields the outcome and
sleeps until the next tick, stopping after the first terminal outcome. The
server's streamed status endpoint iterates it directly. ``Poller`` runs the
same loop in a background task and reports through callbacks.
"""

import asyncio
import logging
from contextlib import aclosing
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable, Optional

from promptreel.models.schemas import JobStatus, PollStatus, StatusResult
from promptreel.services.errors import PromptreelError

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SEC = 5.0

CheckStatus = Callable[[str], Awaitable[StatusResult]]


@dataclass
class PollEvent:
    job_id: str
    status: PollStatus
    result: Optional[StatusResult] = None
    error: Optional[PromptreelError] = None

    @property
    def is_terminal(self) -> bool:
        return self.status is not PollStatus.POLLING


async def poll_once(check: CheckStatus, job_id: str) -> PollEvent:
    try:
        result = await check(job_id)
    except PromptreelError as exc:
        logger.warning("Status check for job %s failed: %s", job_id, exc)
        return PollEvent(job_id=job_id, status=PollStatus.ERROR, error=exc)
    except Exception as exc:
        logger.exception("Unexpected error checking job %s", job_id)
        return PollEvent(job_id=job_id, status=PollStatus.ERROR, error=PromptreelError(f"Status check failed: {exc}"))

    if not result.status.is_terminal:
        return PollEvent(job_id=job_id, status=PollStatus.POLLING, result=result)
    if result.status is JobStatus.COMPLETED:
        return PollEvent(job_id=job_id, status=PollStatus.COMPLETED, result=result)
    if result.status is JobStatus.FAILED:
        return PollEvent(job_id=job_id, status=PollStatus.FAILED, result=result)
    return PollEvent(job_id=job_id, status=PollStatus.POLLING, result=result)


async def watch(
    check: CheckStatus,
    job_id: str,
    interval: float = DEFAULT_POLL_INTERVAL_SEC,
) -> AsyncIterator[PollEvent]:
    # One check at a time; ticks stay on a fixed cadence unless a check overruns it.
    loop = asyncio.get_running_loop()
    while True:
        started = loop.time()
        event = await poll_once(check, job_id)
        yield event
        if event.is_terminal:
            logger.info("Job %s finished polling with status %s", job_id, event.status.value)
            return
        await asyncio.sleep(max(0.0, interval - (loop.time() - started)))


class Poller:
    """Drives ``watch`` in a task that only this instance can start or stop.

    The owner must ``stop()`` a running poll before starting another one.
    """

    def __init__(self, check: CheckStatus, interval: float = DEFAULT_POLL_INTERVAL_SEC):
        self._check = check
        self.interval = interval
        self._task: Optional[asyncio.Task] = None
        self._generation = 0

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(
        self,
        job_id: str,
        on_update: Callable[[PollEvent], None],
        on_terminal: Callable[[PollEvent], None],
    ) -> asyncio.Task:
        if self.active:
            raise RuntimeError("Poller is already running; stop it before starting a new poll")
        self._generation += 1
        self._task = asyncio.create_task(self._run(self._generation, job_id, on_update, on_terminal))
        logger.info("Started polling job %s every %.1fs", job_id, self.interval)
        return self._task

    def stop(self) -> None:
        self._generation += 1
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            logger.info("Stopped polling")

    async def wait(self) -> None:
        """Block until the current poll (if any) has finished or been stopped."""
        task = self._task
        if task is not None:
            await asyncio.wait([task])

    async def _run(
        self,
        generation: int,
        job_id: str,
        on_update: Callable[[PollEvent], None],
        on_terminal: Callable[[PollEvent], None],
    ) -> None:
        async with aclosing(watch(self._check, job_id, self.interval)) as events:
            async for event in events:
                if generation != self._generation:
                    return
                if event.is_terminal:
                    if self._task is asyncio.current_task():
                        self._task = None
                    on_terminal(event)
                    return
                on_update(event)
