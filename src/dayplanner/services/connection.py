"""
Connectivity monitor for the completion provider.

Owns the latest ConnectionStatus. Only the probe (``check`` or the polling
loop) writes it; callers read ``status`` and pass it into each pipeline call.
"""
import asyncio
from typing import Callable, List, Optional

from dayplanner.core.config import settings
from dayplanner.core.logging import logger
from dayplanner.models.schemas import ConnectionStatus
from dayplanner.services.llm import CompletionClient


StatusCallback = Callable[[ConnectionStatus], None]


class ConnectionMonitor:
    """Polls the provider's models endpoint and publishes status changes."""

    def __init__(self, client: CompletionClient, poll_interval: Optional[float] = None):
        self.client = client
        self.poll_interval = poll_interval if poll_interval is not None else settings.connection.poll_interval
        self._status = ConnectionStatus(provider=client.provider, endpoint=client.models_url)
        self._subscribers: List[StatusCallback] = []
        self._task: Optional[asyncio.Task] = None
        self._running = False

    @property
    def status(self) -> ConnectionStatus:
        """Latest probe result (a copy, so readers cannot mutate it)."""
        return self._status.model_copy()

    @property
    def is_connected(self) -> bool:
        return self._status.connected

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def subscribe(self, callback: StatusCallback) -> Callable[[], None]:
        """Register a callback for status changes; returns an unsubscribe function."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _publish(self, status: ConnectionStatus) -> None:
        for callback in list(self._subscribers):
            try:
                callback(status.model_copy())
            except Exception as e:
                logger.error(f"[Connection] Subscriber error: {e}")

    async def check(self) -> ConnectionStatus:
        """Probe once and record the result."""
        status = await self.client.probe()
        changed = status.connected != self._status.connected
        self._status = status

        if status.connected:
            log = logger.info if changed else logger.debug
            log(f"[Connection] Connected to {status.provider} at {status.endpoint}")
        else:
            log = logger.warning if changed else logger.debug
            log(f"[Connection] Not connected ({status.last_error or 'unknown error'})")

        if changed:
            self._publish(status)
        return self.status

    async def _loop(self) -> None:
        logger.info(f"[Connection] Monitor started (every {self.poll_interval:g}s)")
        while self._running:
            try:
                await self.check()
            except Exception as e:
                logger.error(f"[Connection] Probe error: {e}")
            await asyncio.sleep(self.poll_interval)
        logger.info("[Connection] Monitor stopped")

    def start(self) -> None:
        """Start polling in the background on the running event loop."""
        if self.is_running:
            return
        self._running = True
        self._task = asyncio.create_task(self._loop())

    async def stop(self) -> None:
        """Stop polling and wait for the task to finish."""
        self._running = False
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
