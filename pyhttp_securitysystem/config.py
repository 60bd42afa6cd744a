"""
Accessory configuration.

Parses the homebridge-style option dictionary into immutable dataclasses.
"""
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from .constants import (
    CONF_BODY,
    CONF_DEBUG,
    CONF_HEADERS,
    CONF_HTTP_METHOD,
    CONF_IMMEDIATELY,
    CONF_MAPPERS,
    CONF_NAME,
    CONF_PASSWORD,
    CONF_POLL_INTERVAL,
    CONF_POLLING,
    CONF_TIMEOUT,
    CONF_URL,
    CONF_URLS,
    CONF_USERNAME,
    DEFAULT_HTTP_METHOD,
    DEFAULT_NAME,
    DEFAULT_POLL_INTERVAL_MS,
    DEFAULT_TIMEOUT,
    URL_AWAY,
    URL_DISARM,
    URL_NIGHT,
    URL_READ_CURRENT_STATE,
    URL_READ_TARGET_STATE,
    URL_STAY,
    WRITE_ACTIONS,
    SecurityState,
)
from .exceptions import SecuritySystemConfigError
from .mappers import Mapper, MapperPipeline, build_mapper


@dataclass(frozen=True)
class EndpointConfig:
    """One configured HTTP request (url + body + headers)."""
    url: str = ""
    body: str = ""
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def is_configured(self) -> bool:
        return bool(self.url)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "EndpointConfig | None":
        if data is None:
            return None
        if not isinstance(data, Mapping):
            raise SecuritySystemConfigError(f"Endpoint must be an object, got {type(data).__name__}")

        headers = data.get(CONF_HEADERS) or {}
        if not isinstance(headers, Mapping):
            raise SecuritySystemConfigError("Endpoint 'headers' must be an object")

        return cls(
            url=data.get(CONF_URL) or "",
            body=data.get(CONF_BODY) or "",
            headers={str(k): str(v) for k, v in headers.items()},
        )


@dataclass(frozen=True)
class AuthConfig:
    """Basic auth credentials applied to every request."""
    username: str = ""
    password: str = ""
    send_immediately: bool = True

    @property
    def is_configured(self) -> bool:
        return bool(self.username)


@dataclass(frozen=True)
class PollerConfig:
    enabled: bool = False
    interval_ms: int = DEFAULT_POLL_INTERVAL_MS

    @property
    def interval(self) -> float:
        """Interval in seconds"""
        return self.interval_ms / 1000


@dataclass(frozen=True)
class AccessoryConfig:
    """
    Complete accessory configuration.

    Write actions (stay/away/night/disarm) hold an ordered tuple of
    endpoints for fan-out; an empty tuple means the action is a no-op.
    Read actions hold a single endpoint or None.
    """
    name: str = DEFAULT_NAME
    stay: tuple[EndpointConfig, ...] = ()
    away: tuple[EndpointConfig, ...] = ()
    night: tuple[EndpointConfig, ...] = ()
    disarm: tuple[EndpointConfig, ...] = ()
    read_current_state: EndpointConfig | None = None
    read_target_state: EndpointConfig | None = None
    http_method: str = DEFAULT_HTTP_METHOD
    auth: AuthConfig = field(default_factory=AuthConfig)
    polling: PollerConfig = field(default_factory=PollerConfig)
    mappers: tuple[Mapper, ...] = ()
    debug: bool = False
    timeout: float | None = DEFAULT_TIMEOUT

    def write_endpoints(self, state: SecurityState) -> tuple[EndpointConfig, ...]:
        """Endpoints configured for a target state, in configured order."""
        action = WRITE_ACTIONS.get(state)
        if action is None:
            return ()
        return getattr(self, action)

    def build_pipeline(self) -> MapperPipeline:
        return MapperPipeline(self.mappers, debug=self.debug)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AccessoryConfig":
        if not isinstance(data, Mapping):
            raise SecuritySystemConfigError("Accessory config must be an object")

        urls = data.get(CONF_URLS) or {}
        if not isinstance(urls, Mapping):
            raise SecuritySystemConfigError(f"'{CONF_URLS}' must be an object")

        mappers = data.get(CONF_MAPPERS) or []
        if not isinstance(mappers, list):
            raise SecuritySystemConfigError(f"'{CONF_MAPPERS}' must be a list")

        return cls(
            name=data.get(CONF_NAME) or DEFAULT_NAME,
            stay=_parse_write_endpoints(urls.get(URL_STAY)),
            away=_parse_write_endpoints(urls.get(URL_AWAY)),
            night=_parse_write_endpoints(urls.get(URL_NIGHT)),
            disarm=_parse_write_endpoints(urls.get(URL_DISARM)),
            read_current_state=EndpointConfig.from_dict(urls.get(URL_READ_CURRENT_STATE)),
            read_target_state=EndpointConfig.from_dict(urls.get(URL_READ_TARGET_STATE)),
            http_method=str(data.get(CONF_HTTP_METHOD) or DEFAULT_HTTP_METHOD).upper(),
            auth=AuthConfig(
                username=data.get(CONF_USERNAME) or "",
                password=data.get(CONF_PASSWORD) or "",
                send_immediately=_parse_bool(data.get(CONF_IMMEDIATELY), True, CONF_IMMEDIATELY),
            ),
            polling=PollerConfig(
                enabled=_parse_bool(data.get(CONF_POLLING), False, CONF_POLLING),
                interval_ms=_parse_interval(data.get(CONF_POLL_INTERVAL)),
            ),
            mappers=tuple(build_mapper(entry) for entry in mappers),
            debug=_parse_bool(data.get(CONF_DEBUG), False, CONF_DEBUG),
            timeout=_parse_timeout(data.get(CONF_TIMEOUT, DEFAULT_TIMEOUT)),
        )


def load_config(path: str | Path) -> AccessoryConfig:
    """Load an accessory config from a JSON file."""
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except OSError as e:
        raise SecuritySystemConfigError(f"Could not read config file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise SecuritySystemConfigError(f"Invalid JSON in {path}: {e}") from e
    return AccessoryConfig.from_dict(data)


# ---------- helpers ----------

def _parse_write_endpoints(value: Any) -> tuple[EndpointConfig, ...]:
    if value is None:
        return ()
    items = value if isinstance(value, list) else [value]
    endpoints = []
    for item in items:
        endpoint = EndpointConfig.from_dict(item)
        if endpoint is not None:
            endpoints.append(endpoint)
    return tuple(endpoints)


def _parse_bool(value: Any, default: bool, key: str) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "1", "yes", "on"):
            return True
        if lowered in ("false", "0", "no", "off", ""):
            return False
    raise SecuritySystemConfigError(f"Invalid boolean for '{key}': {value!r}")


def _parse_interval(value: Any) -> int:
    if value is None:
        return DEFAULT_POLL_INTERVAL_MS
    try:
        interval = int(value)
    except (TypeError, ValueError):
        raise SecuritySystemConfigError(f"Invalid '{CONF_POLL_INTERVAL}': {value!r}")
    if interval < 0:
        raise SecuritySystemConfigError(f"'{CONF_POLL_INTERVAL}' must be >= 0, got {interval}")
    return interval


def _parse_timeout(value: Any) -> float | None:
    if not value:
        return None
    try:
        timeout = float(value)
    except (TypeError, ValueError):
        raise SecuritySystemConfigError(f"Invalid '{CONF_TIMEOUT}': {value!r}")
    if timeout < 0:
        raise SecuritySystemConfigError(f"'{CONF_TIMEOUT}' must be >= 0, got {timeout}")
    return timeout
