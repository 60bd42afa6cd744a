"""
HTTP Security System accessory library
"""
from .accessory import HttpSecuritySystemAccessory, SecuritySystemService
from .config import AccessoryConfig, AuthConfig, EndpointConfig, PollerConfig, load_config
from .constants import SecurityState
from .mappers import MapperPipeline, RegexMapper, StaticMapper, XPathMapper, build_mapper
from .poller import StatePoller
from .reader import NO_OP, StateReader, parse_state
from .session import HttpResponse, SecuritySystemSession
from .writer import StateWriter, WriteResult
from .exceptions import (
    SecuritySystemError,
    SecuritySystemConfigError,
    SecuritySystemNetworkError,
    SecuritySystemMapperError,
    SecuritySystemInvalidState,
)

__version__ = "0.1.0"
__all__ = [
    "HttpSecuritySystemAccessory",
    "SecuritySystemService",
    "AccessoryConfig",
    "AuthConfig",
    "EndpointConfig",
    "PollerConfig",
    "load_config",
    "SecurityState",
    "MapperPipeline",
    "RegexMapper",
    "StaticMapper",
    "XPathMapper",
    "build_mapper",
    "StatePoller",
    "NO_OP",
    "StateReader",
    "parse_state",
    "HttpResponse",
    "SecuritySystemSession",
    "StateWriter",
    "WriteResult",
    # Exceptions
    "SecuritySystemError",
    "SecuritySystemConfigError",
    "SecuritySystemNetworkError",
    "SecuritySystemMapperError",
    "SecuritySystemInvalidState",
]
