"""
State poller.

Each StatePoller drives one read channel in a background task. The next
fetch is scheduled only after the previous one has completed, so a slow
endpoint never has more than one request in flight per channel.
"""
import asyncio
import logging
from typing import Awaitable, Callable

from .exceptions import SecuritySystemError, SecuritySystemInvalidState
from .reader import NO_OP, Reading, state_name

_LOGGER = logging.getLogger(__name__)

FetchFunc = Callable[[], Awaitable[Reading]]
ChangeHandler = Callable[[int], Awaitable[None]]
ErrorHandler = Callable[[SecuritySystemError], Awaitable[None]]


class StatePoller:
    def __init__(
        self,
        name: str,
        fetch: FetchFunc,
        interval: float,
        on_change: ChangeHandler,
        on_error: ErrorHandler | None = None,
    ):
        if interval < 0:
            raise ValueError(f"Poll interval must be >= 0, got {interval}")

        self.name = name
        self._fetch = fetch
        self._interval = interval
        self._on_change = on_change
        self._on_error = on_error
        self._previous: int | None = None
        self._task: asyncio.Task | None = None

    @property
    def previous(self) -> int | None:
        """Last emitted state, None before the first change"""
        return self._previous

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start polling in a background task. No-op if already running."""
        if self.is_running:
            return
        _LOGGER.debug("Starting %s poller (interval %.3fs)", self.name, self._interval)
        self._task = asyncio.create_task(self._run(), name=f"poll_{self.name}")

    async def stop(self) -> None:
        """Cancel the background task, including a pending wait."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        _LOGGER.debug("%s poller stopped", self.name)

    async def poll_once(self) -> None:
        """
        Fetch once and emit a change or an error notification.

        The first valid reading always counts as a change.
        """
        try:
            value = await self._fetch()
        except SecuritySystemError as e:
            _LOGGER.warning("Polling %s failed: %s", self.name, e)
            await self._emit_error(e)
            return

        if value is NO_OP:
            return
        if value is None:
            await self._emit_error(SecuritySystemInvalidState(f"{self.name} returned no state code"))
            return

        if value != self._previous:
            _LOGGER.info(
                "%s changed from %s to %s",
                self.name,
                state_name(self._previous) if self._previous is not None else "unknown",
                state_name(value),
            )
            self._previous = value
            await self._on_change(value)

    async def _run(self) -> None:
        while True:
            try:
                await self.poll_once()
            except asyncio.CancelledError:
                raise
            except Exception:
                # a broken handler must not end polling
                _LOGGER.exception("Unexpected error while polling %s", self.name)
            await asyncio.sleep(self._interval)

    async def _emit_error(self, error: SecuritySystemError) -> None:
        if self._on_error is not None:
            await self._on_error(error)
