"""
State writer.

Resolves a target state to its configured write endpoints, sends them all
concurrently, waits for every one of them, then refreshes the current state.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from .config import AccessoryConfig, EndpointConfig
from .constants import TARGET_STATES, SecurityState
from .exceptions import SecuritySystemError
from .reader import NO_OP, StateReader, state_name
from .session import HttpResponse, SecuritySystemSession

_LOGGER = logging.getLogger(__name__)

RefreshHandler = Callable[[int], Awaitable[None]]


@dataclass(frozen=True)
class WriteResult:
    """Outcome of a successful write"""
    state: SecurityState
    responses: tuple[HttpResponse, ...] = ()


class StateWriter:
    def __init__(
        self,
        session: SecuritySystemSession,
        reader: StateReader,
        config: AccessoryConfig,
        on_refresh: RefreshHandler | None = None,
    ):
        self._session = session
        self._reader = reader
        self._config = config
        self._on_refresh = on_refresh

    def set_refresh_handler(self, on_refresh: RefreshHandler | None) -> None:
        self._on_refresh = on_refresh

    async def write(self, state: int) -> WriteResult:
        """
        Send every request configured for `state`.

        All requests run concurrently and are all awaited, whatever order they
        finish in. Once they are done the current state is refreshed, even if
        some of them failed. If one or more failed, the failure of the first
        endpoint in configured order is raised after the refresh.

        An unconfigured state sends nothing and refreshes nothing.

        Raises:
            ValueError: If `state` is not a target state
            SecuritySystemNetworkError: If any request fails
        """
        target = SecurityState(state)
        if target not in TARGET_STATES:
            raise ValueError(f"Invalid target state: {state}. Must be one of {sorted(int(s) for s in TARGET_STATES)}")

        endpoints = [ep for ep in self._config.write_endpoints(target) if ep.is_configured]
        if not endpoints:
            _LOGGER.debug("No url configured for %s, nothing to send", state_name(target))
            return WriteResult(target)

        results = await asyncio.gather(
            *(self._dispatch(endpoint) for endpoint in endpoints),
            return_exceptions=True,
        )

        responses: list[HttpResponse] = []
        errors: list[SecuritySystemError] = []
        for result in results:
            if isinstance(result, SecuritySystemError):
                errors.append(result)
            elif isinstance(result, BaseException):
                raise result
            else:
                responses.append(result)

        if errors:
            _LOGGER.error(
                "SetState function failed for %d of %d requests: %s",
                len(errors), len(endpoints), errors[0],
            )
        else:
            _LOGGER.info("SetState function succeeded!")

        await self.refresh(written=None if errors else target)

        if errors:
            raise errors[0]
        return WriteResult(target, tuple(responses))

    async def refresh(self, written: SecurityState | None = None) -> int | None:
        """
        Re-read the current state and hand it to the refresh handler.

        With no current state endpoint configured, `written` (the state just
        written successfully) stands in for the reading. Failures are logged
        and swallowed.
        """
        try:
            reading = await self._reader.read(self._config.read_current_state)
        except SecuritySystemError as e:
            _LOGGER.warning("Current state refresh failed: %s", e)
            return None

        if reading is NO_OP:
            if written is None:
                return None
            reading = int(written)
        elif reading is None:
            return None

        if self._on_refresh is not None:
            await self._on_refresh(reading)
        return reading

    async def _dispatch(self, endpoint: EndpointConfig) -> HttpResponse:
        try:
            return await self._session.execute(endpoint.url, endpoint.body, endpoint.headers)
        except SecuritySystemError as e:
            _LOGGER.error("SetState request to %s failed: %s", endpoint.url, e)
            raise
