"""
HTTP Security System accessory

Main public API. Binds the get/set hooks of a home-automation security
system service to HTTP requests against an arbitrary endpoint.
"""
import functools
import logging
from typing import Protocol

import aiohttp

from .config import AccessoryConfig
from .exceptions import SecuritySystemError, SecuritySystemInvalidState
from .poller import StatePoller
from .reader import NO_OP, Reading, StateReader, state_name
from .session import SecuritySystemSession
from .writer import StateWriter, WriteResult

_LOGGER = logging.getLogger(__name__)


class SecuritySystemService(Protocol):
    """
    The device object model side of the accessory.

    The accessory pushes state it learned out of band (write refreshes,
    polling) through these two methods.
    """

    def update_current_state(self, state: int) -> None:
        ...

    def update_target_state(self, state: int) -> None:
        ...


class HttpSecuritySystemAccessory:
    """
    Security system accessory backed by HTTP endpoints.

    Usage:
        async with aiohttp.ClientSession() as http_session:
            config = AccessoryConfig.from_dict(options)
            accessory = HttpSecuritySystemAccessory(config, http_session, service)

            # get hooks
            current = await accessory.get_current_state()
            target = await accessory.get_target_state()

            # set hook
            await accessory.set_target_state(SecurityState.AWAY_ARM)

            # background polling (if enabled in config)
            await accessory.start()
            ...
            await accessory.stop()
    """

    def __init__(
        self,
        config: AccessoryConfig,
        http_session: aiohttp.ClientSession,
        service: SecuritySystemService | None = None,
    ):
        self.config = config
        self.name = config.name
        self.service = service

        self.session = SecuritySystemSession(
            http_session,
            http_method=config.http_method,
            auth=config.auth,
            timeout=config.timeout,
        )
        self.reader = StateReader(self.session, config.build_pipeline())
        self.writer = StateWriter(
            self.session,
            self.reader,
            config,
            on_refresh=self._handle_current_state,
        )

        # Change detection only, never used to answer a get
        self.previous_current_state: int | None = None
        self.previous_target_state: int | None = None

        self.pollers: list[StatePoller] = []

    # ========== Get / Set hooks ==========

    async def get_current_state(self) -> int | None:
        """
        Read the current state.

        Returns:
            The state code, or None if no read url is configured

        Raises:
            SecuritySystemNetworkError: If the request fails
            SecuritySystemInvalidState: If the response is not a state code
        """
        _LOGGER.debug("Getting current state")
        reading = await self.reader.read(self.config.read_current_state)
        state = self._require_state(reading, "current state")
        if state is not None:
            self._track_current(state)
        return state

    async def get_target_state(self) -> int | None:
        """Read the target state. Same contract as get_current_state()."""
        _LOGGER.debug("Getting target state")
        reading = await self.reader.read(self.config.read_target_state)
        state = self._require_state(reading, "target state")
        if state is not None:
            self._track_target(state)
        return state

    async def set_target_state(self, state: int) -> WriteResult:
        """
        Arm or disarm.

        The current state is refreshed after the requests complete, even
        when one of them failed; the failure is then re-raised.
        """
        _LOGGER.info("Setting state to %s", state_name(state))
        try:
            result = await self.writer.write(state)
        except SecuritySystemError as e:
            _LOGGER.error("Setting state to %s failed: %s", state_name(state), e)
            raise
        self._track_target(int(result.state))
        return result

    def identify(self) -> None:
        _LOGGER.info("Identify requested!")

    # ========== Polling ==========

    async def start(self) -> None:
        """
        Start one poller per configured read channel if polling is enabled.

        A channel without a read url gets no poller.
        """
        if not self.config.polling.enabled or self.pollers:
            return

        channels = (
            ("current state", self.config.read_current_state, self._handle_current_state),
            ("target state", self.config.read_target_state, self._handle_target_state),
        )
        interval = self.config.polling.interval
        for name, endpoint, on_change in channels:
            if endpoint is None or not endpoint.is_configured:
                _LOGGER.debug("No url configured for %s, not polling it", name)
                continue
            self.pollers.append(StatePoller(
                name,
                functools.partial(self.reader.read, endpoint),
                interval,
                on_change=on_change,
                on_error=self._handle_poll_error,
            ))

        for poller in self.pollers:
            poller.start()
        if self.pollers:
            _LOGGER.info("Polling %s every %d ms", self.name, self.config.polling.interval_ms)

    async def stop(self) -> None:
        for poller in self.pollers:
            await poller.stop()
        self.pollers = []

    # ========== Notifications ==========

    async def _handle_current_state(self, state: int) -> None:
        self._track_current(state)
        if self.service is not None:
            self.service.update_current_state(state)

    async def _handle_target_state(self, state: int) -> None:
        self._track_target(state)
        if self.service is not None:
            self.service.update_target_state(state)

    async def _handle_poll_error(self, error: SecuritySystemError) -> None:
        _LOGGER.error("Polling %s failed: %s", self.name, error)

    # ---------- helpers ----------

    def _require_state(self, reading: Reading, label: str) -> int | None:
        if reading is NO_OP:
            return None
        if reading is None:
            raise SecuritySystemInvalidState(f"Remote {label} is not a security state code")
        return reading

    def _track_current(self, state: int) -> None:
        if state != self.previous_current_state:
            _LOGGER.info("Current state changed to %s", state_name(state))
            self.previous_current_state = state

    def _track_target(self, state: int) -> None:
        if state != self.previous_target_state:
            _LOGGER.info("Target state changed to %s", state_name(state))
            self.previous_target_state = state
