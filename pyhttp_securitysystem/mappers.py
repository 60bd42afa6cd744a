"""
Value mappers.

A mapper turns one string into another. Mappers are chained into a
MapperPipeline which normalizes a raw response body before it is parsed
as a state code. A mapper that cannot make sense of its input returns the
input unchanged.
"""
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Sequence, Union
from xml.etree.ElementTree import Element

import defusedxml.ElementTree as ET
from defusedxml import DefusedXmlException

from .constants import MAPPER_REGEX, MAPPER_STATIC, MAPPER_XPATH
from .exceptions import SecuritySystemConfigError, SecuritySystemMapperError

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class StaticMapper:
    """Dictionary lookup. Unknown values pass through."""
    mapping: Mapping[str, str] = field(default_factory=dict)

    def map(self, value: str) -> str:
        return self.mapping.get(value, value)

    @classmethod
    def from_parameters(cls, parameters: Mapping[str, Any]) -> "StaticMapper":
        mapping = parameters.get("mapping", {})
        if not isinstance(mapping, Mapping):
            raise SecuritySystemConfigError("static mapper 'mapping' must be an object")
        return cls({str(k): str(v) for k, v in mapping.items()})


@dataclass(frozen=True)
class RegexMapper:
    """
    First match of a regular expression.

    Returns the configured capture group (index or name) of the first match,
    or the original value when nothing matches or the group did not take
    part in the match.
    """
    pattern: re.Pattern
    capture: Union[int, str] = 1

    def map(self, value: str) -> str:
        match = self.pattern.search(value)
        if not match:
            return value
        try:
            group = match.group(self.capture)
        except IndexError:
            return value
        return value if group is None else group

    @classmethod
    def from_parameters(cls, parameters: Mapping[str, Any]) -> "RegexMapper":
        regexp = parameters.get("regexp")
        if not regexp:
            raise SecuritySystemConfigError("regex mapper requires 'regexp'")
        try:
            pattern = re.compile(regexp)
        except re.error as e:
            raise SecuritySystemConfigError(f"Invalid regex mapper pattern {regexp!r}: {e}")

        capture = parameters.get("capture", 1)
        if isinstance(capture, str) and capture.isdigit():
            capture = int(capture)
        return cls(pattern, capture)


@dataclass(frozen=True)
class XPathMapper:
    """
    Path query over an XML document.

    Supports the ElementTree path subset: absolute (`/status/state`),
    descendant (`//state`) and relative (`state/mode`) paths, with an
    optional trailing `/text()`. Returns the text of the match at `index`.
    Malformed XML raises SecuritySystemMapperError.
    """
    expression: str
    index: int = 0

    def map(self, value: str) -> str:
        try:
            root = ET.fromstring(value)
        except (ET.ParseError, DefusedXmlException) as e:
            raise SecuritySystemMapperError(f"xpath mapper could not parse response: {e}") from e

        try:
            matches = _select(root, self.expression)
        except (SyntaxError, KeyError) as e:
            _LOGGER.warning("Unsupported xpath expression %r: %s", self.expression, e)
            return value

        if not 0 <= self.index < len(matches):
            return value
        text = matches[self.index].text
        return value if text is None else text.strip()

    @classmethod
    def from_parameters(cls, parameters: Mapping[str, Any]) -> "XPathMapper":
        expression = parameters.get("xpath")
        if not expression:
            raise SecuritySystemConfigError("xpath mapper requires 'xpath'")
        try:
            index = int(parameters.get("index", 0))
        except (TypeError, ValueError):
            raise SecuritySystemConfigError(f"Invalid xpath mapper index: {parameters.get('index')!r}")
        return cls(expression, index)


def _select(root, expression: str) -> list:
    path = expression
    if path.endswith("/text()"):
        path = path[: -len("/text()")]

    if path.startswith("/"):
        # absolute and descendant paths start above the document element
        document = Element("document")
        document.append(root)
        return document.findall("." + path)
    return root.findall(path)


Mapper = Union[StaticMapper, RegexMapper, XPathMapper]

_MAPPER_FACTORIES: dict[str, Callable[[Mapping[str, Any]], Mapper]] = {
    MAPPER_STATIC: StaticMapper.from_parameters,
    MAPPER_REGEX: RegexMapper.from_parameters,
    MAPPER_XPATH: XPathMapper.from_parameters,
}


def build_mapper(entry: Mapping[str, Any]) -> Mapper:
    """Build a mapper from a `{type, parameters}` config entry."""
    if not isinstance(entry, Mapping):
        raise SecuritySystemConfigError(f"Mapper entry must be an object, got {type(entry).__name__}")

    mapper_type = entry.get("type")
    factory = _MAPPER_FACTORIES.get(mapper_type)
    if factory is None:
        raise SecuritySystemConfigError(
            f"Unknown mapper type: {mapper_type!r}. Must be one of {sorted(_MAPPER_FACTORIES)}"
        )

    parameters = entry.get("parameters") or {}
    if not isinstance(parameters, Mapping):
        raise SecuritySystemConfigError(f"{mapper_type} mapper 'parameters' must be an object")
    return factory(parameters)


class MapperPipeline:
    """Ordered chain of mappers, applied left to right."""

    def __init__(self, mappers: Sequence[Mapper] = (), debug: bool = False):
        self._mappers = tuple(mappers)
        self._debug = debug

    def __len__(self) -> int:
        return len(self._mappers)

    @property
    def mappers(self) -> tuple:
        return self._mappers

    def apply(self, raw: str) -> str:
        value = raw
        for mapper in self._mappers:
            mapped = mapper.map(value)
            if self._debug:
                _LOGGER.info("%s mapped %r to %r", type(mapper).__name__, value, mapped)
            value = mapped
        return value
