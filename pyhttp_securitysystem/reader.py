"""
State reader.

Fetches a read endpoint, runs the body through the mapper pipeline and
parses what is left as a state code.
"""
import enum
import logging
import re
from typing import Union

from .config import EndpointConfig
from .constants import STATE_NAMES
from .exceptions import SecuritySystemNetworkError
from .mappers import MapperPipeline
from .session import SecuritySystemSession

_LOGGER = logging.getLogger(__name__)

# Optional whitespace, optional sign, then ASCII digits. Anything after is ignored.
_LEADING_INT = re.compile(r"\s*([+-]?[0-9]+)")


class _NoOp(enum.Enum):
    NO_OP = "no-op"

    def __repr__(self) -> str:
        return "NO_OP"


NO_OP = _NoOp.NO_OP
"""Returned instead of a state when the endpoint is not configured."""

Reading = Union[int, None, _NoOp]


def parse_state(text: str) -> int | None:
    """
    Parse the leading base-10 integer of `text`.

    "3" -> 3, " 3 OK" -> 3, "-1x" -> -1, "OK 3" -> None.
    None is the not-a-number value: callers must treat it as an invalid
    state, never as a state code.
    """
    match = _LEADING_INT.match(text)
    if not match:
        return None
    return int(match.group(1))


def state_name(state: int | None) -> str:
    if state is None:
        return "invalid"
    return STATE_NAMES.get(state, f"unknown({state})")


class StateReader:
    def __init__(self, session: SecuritySystemSession, pipeline: MapperPipeline | None = None):
        self._session = session
        self._pipeline = pipeline if pipeline is not None else MapperPipeline()

    @property
    def pipeline(self) -> MapperPipeline:
        return self._pipeline

    async def read(self, endpoint: EndpointConfig | None) -> Reading:
        """
        Read a state code from `endpoint`.

        Returns:
            NO_OP if the endpoint is not configured (no request is sent),
            otherwise the parsed state code, or None if the mapped body
            has no numeric prefix

        Raises:
            SecuritySystemNetworkError: If the request fails
            SecuritySystemMapperError: If an xpath mapper gets malformed XML
        """
        if endpoint is None or not endpoint.is_configured:
            return NO_OP

        try:
            response = await self._session.execute(endpoint.url, endpoint.body, endpoint.headers)
        except SecuritySystemNetworkError as e:
            _LOGGER.error("GetState function failed: %s", e)
            raise

        mapped = self._pipeline.apply(response.body)
        state = parse_state(mapped)
        if state is None:
            _LOGGER.warning("Response %r from %s is not a state code", mapped, endpoint.url)
        else:
            _LOGGER.debug("State is currently %s (%s)", state, state_name(state))
        return state
