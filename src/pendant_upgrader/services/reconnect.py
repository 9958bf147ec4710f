"""Reconnect supervision after a device reboot."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

import httpx

from pendant_upgrader.models.status import ReconnectOutcome
from pendant_upgrader.models.transfer import ReconnectAttemptCounter

ProbeFn = Callable[[], Awaitable[None]]
ResolvedFn = Callable[[ReconnectOutcome], None]


class ReconnectSupervisor:
    """Polls a liveness probe until the device answers or the budget runs out.

    The loop runs as a single asyncio task. cancel() stops it at the current
    suspension point; after that no probe fires and on_resolved is never
    called.
    """

    def __init__(
        self,
        probe: ProbeFn,
        on_resolved: Optional[ResolvedFn] = None,
        interval_ms: int = 2000,
        max_attempts: int = 60,
    ):
        self.logger = logging.getLogger("pendant_upgrader.reconnect")
        self.probe = probe
        self.on_resolved = on_resolved
        self.counter = ReconnectAttemptCounter(
            attempts=0, max_attempts=max_attempts, interval_ms=interval_ms
        )
        self.outcome: Optional[ReconnectOutcome] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        """Schedule the polling loop on the running event loop."""
        if self._task is not None:
            raise RuntimeError("Reconnect supervisor already started")
        if self.outcome == ReconnectOutcome.CANCELLED:
            raise RuntimeError("Reconnect supervisor was cancelled before start")
        self.logger.info(
            f"Starting reconnect supervision: max_attempts={self.counter.max_attempts}, "
            f"interval={self.counter.interval_ms}ms"
        )
        self._task = asyncio.create_task(self._run(), name="reconnect-supervisor")
        return self._task

    async def wait(self) -> Optional[ReconnectOutcome]:
        """Wait for the loop to finish and return its outcome."""
        if self._task is None:
            return self.outcome
        try:
            await self._task
        except asyncio.CancelledError:
            if not self._task.cancelled():
                raise
        return self.outcome

    def cancel(self) -> None:
        """Stop polling without reporting a resolution."""
        if self.running:
            self.logger.info(
                f"Reconnect supervision cancelled after {self.counter.attempts} attempts"
            )
            self._task.cancel()
        if self.outcome is None:
            self.outcome = ReconnectOutcome.CANCELLED

    async def _run(self) -> None:
        try:
            while True:
                self.counter.attempts += 1
                if await self._probe_once():
                    self._resolve(ReconnectOutcome.RECONNECTED)
                    return
                if self.counter.exhausted:
                    self.logger.error(
                        f"Device did not come back after {self.counter.attempts} attempts"
                    )
                    self._resolve(ReconnectOutcome.EXHAUSTED)
                    return
                await asyncio.sleep(self.counter.interval_seconds)
        except asyncio.CancelledError:
            self.outcome = ReconnectOutcome.CANCELLED
            raise

    async def _probe_once(self) -> bool:
        """Return True when the device produced any response."""
        try:
            await self.probe()
        except httpx.TransportError as e:
            self.logger.debug(
                f"Reconnect attempt {self.counter.attempts}/{self.counter.max_attempts} "
                f"failed: {e!r}"
            )
            return False
        except httpx.HTTPStatusError as e:
            self.logger.info(
                f"Device answered with HTTP {e.response.status_code}, treating as online"
            )
            return True
        except Exception as e:
            self.logger.warning(
                f"Unexpected probe error on attempt {self.counter.attempts}: {e}",
                exc_info=True,
            )
            return False
        self.logger.info(f"Device answered on attempt {self.counter.attempts}")
        return True

    def _resolve(self, outcome: ReconnectOutcome) -> None:
        self.outcome = outcome
        if self.on_resolved is not None:
            self.on_resolved(outcome)
