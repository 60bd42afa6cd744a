import asyncio
import logging
import os
from dataclasses import dataclass
from typing import Mapping

import aiohttp

from .config import AuthConfig
from .constants import (
    DEFAULT_HTTP_METHOD,
    DEFAULT_TIMEOUT,
    ENV_HTTP_LOG_BODY,
    ENV_HTTP_LOG_FILE,
    ENV_HTTP_LOG_HEADERS,
    HTTP_LOG_BODY_LIMIT,
    HTTP_LOGGER_NAME,
    HDR_AUTHORIZATION,
    HDR_WWW_AUTHENTICATE,
    HTTP_401_UNAUTHORIZED,
)
from .exceptions import SecuritySystemNetworkError

_LOGGER = logging.getLogger(__name__)


def _env_flag(name: str, default: bool) -> bool:
    return os.getenv(name, "true" if default else "false").strip().lower() == "true"


def _clip(text: str) -> str:
    if len(text) <= HTTP_LOG_BODY_LIMIT:
        return text
    return text[:HTTP_LOG_BODY_LIMIT] + "..."


class _LoggedClientSession:
    """
    Proxy for aiohttp.ClientSession that writes every exchange to a file.

    Only `request()` is intercepted. Bodies are clipped and Authorization
    values are masked so credentials never reach the log file.
    """

    def __init__(self, session: aiohttp.ClientSession, log_file: str):
        self._session = session
        self._logger = logging.getLogger(HTTP_LOGGER_NAME)
        self._logger.setLevel(logging.INFO)

        path = os.path.abspath(log_file)
        if not any(getattr(h, "baseFilename", None) == path for h in self._logger.handlers):
            handler = logging.FileHandler(path)
            handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
            self._logger.addHandler(handler)

        self._log_headers = _env_flag(ENV_HTTP_LOG_HEADERS, False)
        self._log_body = _env_flag(ENV_HTTP_LOG_BODY, True)

    def _masked(self, headers: Mapping[str, str] | None) -> dict:
        return {
            k: ("***" if k.lower() == HDR_AUTHORIZATION.lower() else v)
            for k, v in (headers or {}).items()
        }

    def _log_request(self, method: str, url: str, headers: Mapping[str, str] | None, data) -> None:
        body = _clip(str(data)) if self._log_body and data is not None else None
        if self._log_headers:
            self._logger.info("REQUEST: %s %s headers=%s body=%s", method, url, self._masked(headers), body)
        else:
            self._logger.info("REQUEST: %s %s body=%s", method, url, body)

    async def _log_response(self, method: str, url: str, resp: aiohttp.ClientResponse) -> None:
        body = None
        if self._log_body:
            # read() returns the cached payload once the caller has consumed it
            body = _clip((await resp.read()).decode("utf-8", errors="replace"))

        if self._log_headers:
            self._logger.info("RESPONSE: %s %s status=%d headers=%s body=%s",
                              method, url, resp.status, dict(resp.headers), body)
        else:
            self._logger.info("RESPONSE: %s %s status=%d body=%s", method, url, resp.status, body)

    class _LoggedResponse:
        """Response context manager that logs the exchange on a clean exit"""
        def __init__(self, cm, log_response, method: str, url: str):
            self._cm = cm
            self._log_response = log_response
            self._method = method
            self._url = url
            self._resp = None

        async def __aenter__(self):
            self._resp = await self._cm.__aenter__()
            return self._resp

        async def __aexit__(self, exc_type, exc_val, exc_tb):
            if self._resp is not None and exc_type is None:
                await self._log_response(self._method, self._url, self._resp)
            return await self._cm.__aexit__(exc_type, exc_val, exc_tb)

    def request(self, method: str, url: str, **kwargs):
        self._log_request(method, url, kwargs.get("headers"), kwargs.get("data"))
        cm = self._session.request(method, url, **kwargs)
        return self._LoggedResponse(cm, self._log_response, method, url)

    def __getattr__(self, name):
        return getattr(self._session, name)


@dataclass(frozen=True)
class HttpResponse:
    """Status and decoded body of a completed request."""
    status: int
    body: str
    challenge: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class SecuritySystemSession:
    """
    Executes the configured HTTP requests.

    One network attempt per call, no retries. Transport failures and
    timeouts raise SecuritySystemNetworkError; any HTTP status, including
    4xx/5xx, is returned to the caller as an HttpResponse.

    With `auth.send_immediately` (the default) a Basic Authorization header
    goes out with every request. Otherwise the first attempt is anonymous
    and credentials are only sent in answer to a 401 Basic challenge.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        http_method: str = DEFAULT_HTTP_METHOD,
        auth: AuthConfig | None = None,
        timeout: float | None = DEFAULT_TIMEOUT,
    ):
        log_file = os.getenv(ENV_HTTP_LOG_FILE)
        if log_file:
            self._session = _LoggedClientSession(session, log_file)
        else:
            self._session = session

        self.http_method = http_method
        self.auth = auth or AuthConfig()
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    # ---------- headers ----------

    def auth_header(self) -> dict:
        """Basic Authorization header, empty when no username is configured"""
        if not self.auth.is_configured:
            return {}
        return {HDR_AUTHORIZATION: aiohttp.encode_basic_auth(self.auth.username, self.auth.password)}

    def request_headers(self, headers: Mapping[str, str] | None = None, with_auth: bool = True) -> dict:
        """Build request headers. Explicitly configured headers win over the auth header."""
        merged = self.auth_header() if with_auth else {}
        for key, value in (headers or {}).items():
            # header names are case-insensitive
            for existing in [k for k in merged if k.lower() == key.lower()]:
                del merged[existing]
            merged[key] = value
        return merged

    # ---------- requests ----------

    async def execute(
        self,
        url: str,
        body: str = "",
        headers: Mapping[str, str] | None = None,
        method: str | None = None,
    ) -> HttpResponse:
        method = method or self.http_method
        preemptive = self.auth.send_immediately or not self.auth.is_configured

        try:
            response = await self._request(method, url, body, self.request_headers(headers, preemptive))
            if not preemptive and self._is_basic_challenge(response):
                _LOGGER.debug("%s %s answered with a Basic challenge, sending credentials", method, url)
                response = await self._request(method, url, body, self.request_headers(headers))
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise SecuritySystemNetworkError(
                f"{method} {url} failed: {type(e).__name__}: {e}"
            ) from e

        if not response.ok:
            _LOGGER.warning("%s %s returned status %d", method, url, response.status)
        return response

    async def _request(self, method: str, url: str, body: str, headers: dict) -> HttpResponse:
        _LOGGER.debug("%s %s", method, url)
        async with self._session.request(
            method,
            url,
            data=body or None,
            headers=headers,
            timeout=self._timeout,
        ) as resp:
            text = await resp.text(errors="replace")
            return HttpResponse(
                status=resp.status,
                body=text,
                challenge=resp.headers.get(HDR_WWW_AUTHENTICATE, ""),
            )

    def _is_basic_challenge(self, response: HttpResponse) -> bool:
        if response.status != HTTP_401_UNAUTHORIZED or not self.auth.is_configured:
            return False
        return response.challenge.lower().startswith("basic")
