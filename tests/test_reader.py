"""Tests for the state reader."""
import logging
import re

import pytest

from pyhttp_securitysystem.config import EndpointConfig
from pyhttp_securitysystem.exceptions import SecuritySystemMapperError, SecuritySystemNetworkError
from pyhttp_securitysystem.mappers import MapperPipeline, RegexMapper, XPathMapper
from pyhttp_securitysystem.reader import NO_OP, StateReader, parse_state, state_name


class TestParseState:
    """Tests for lenient leading-integer parsing."""

    @pytest.mark.parametrize("text, expected", [
        ("3", 3),
        ("0", 0),
        ("3 OK", 3),
        ("12abc34", 12),
        ("  2\n", 2),
        ("-1x", -1),
        ("+4", 4),
        ("0x10", 0),
        ("3.9", 3),
    ])
    def test_leading_integer(self, text, expected):
        assert parse_state(text) == expected

    @pytest.mark.parametrize("text", ["", "   ", "OK 3", "abc", "-", "x1", "٣"])
    def test_not_a_number(self, text):
        assert parse_state(text) is None


class TestStateName:
    def test_names(self):
        assert state_name(0) == "stay_arm"
        assert state_name(4) == "alarm_triggered"
        assert state_name(9) == "unknown(9)"
        assert state_name(None) == "invalid"


class TestStateReader:
    """Tests for StateReader.read."""

    @pytest.mark.asyncio
    async def test_missing_endpoint_is_no_op(self, fake_session):
        reader = StateReader(fake_session)

        assert await reader.read(None) is NO_OP
        assert fake_session.calls == []

    @pytest.mark.asyncio
    async def test_empty_url_is_no_op(self, fake_session):
        reader = StateReader(fake_session)

        assert await reader.read(EndpointConfig(url="", body="x")) is NO_OP
        assert fake_session.calls == []

    @pytest.mark.asyncio
    async def test_reads_plain_state(self, fake_session):
        fake_session.respond("http://panel/current", "1")
        reader = StateReader(fake_session)

        assert await reader.read(EndpointConfig(url="http://panel/current")) == 1

    @pytest.mark.asyncio
    async def test_regex_mapped_state(self, fake_session):
        fake_session.respond("http://panel/current", "stay:3")
        pipeline = MapperPipeline([RegexMapper(re.compile(r"stay:(\d+)"), 1)])
        reader = StateReader(fake_session, pipeline)

        assert await reader.read(EndpointConfig(url="http://panel/current")) == 3

    @pytest.mark.asyncio
    async def test_sends_body_and_headers(self, fake_session):
        fake_session.respond("http://panel/current", "2")
        reader = StateReader(fake_session)

        await reader.read(EndpointConfig(url="http://panel/current", body="q=state", headers={"X-A": "1"}))

        assert fake_session.calls == [("http://panel/current", "q=state", {"X-A": "1"})]

    @pytest.mark.asyncio
    async def test_non_numeric_body_is_invalid(self, fake_session, caplog):
        fake_session.respond("http://panel/current", "armed")
        reader = StateReader(fake_session)

        with caplog.at_level(logging.WARNING, logger="pyhttp_securitysystem.reader"):
            assert await reader.read(EndpointConfig(url="http://panel/current")) is None

        assert "not a state code" in caplog.text

    @pytest.mark.asyncio
    async def test_error_status_still_parsed(self, fake_session):
        fake_session.respond("http://panel/current", "1", status=500)
        reader = StateReader(fake_session)

        assert await reader.read(EndpointConfig(url="http://panel/current")) == 1

    @pytest.mark.asyncio
    async def test_transport_error_raised_and_logged(self, fake_session, caplog):
        fake_session.fail("http://panel/current", "Connection refused")
        reader = StateReader(fake_session)

        with caplog.at_level(logging.ERROR, logger="pyhttp_securitysystem.reader"):
            with pytest.raises(SecuritySystemNetworkError, match="Connection refused"):
                await reader.read(EndpointConfig(url="http://panel/current"))

        assert "GetState function failed" in caplog.text

    @pytest.mark.asyncio
    async def test_malformed_xml_propagates(self, fake_session):
        fake_session.respond("http://panel/current", "<status><state>1</status>")
        reader = StateReader(fake_session, MapperPipeline([XPathMapper("/status/state")]))

        with pytest.raises(SecuritySystemMapperError):
            await reader.read(EndpointConfig(url="http://panel/current"))
