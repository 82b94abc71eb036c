"""HTTP transport for the box's form-POST API."""

from __future__ import annotations

import asyncio
import errno
import logging
from collections.abc import Mapping
from typing import Protocol

import aiohttp

from pycalypshome._constants import ACCEPT_HEADER, FORM_CONTENT_TYPE
from pycalypshome.config import CalypshomeConfig
from pycalypshome.exceptions import CalypshomeTransportError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by endpoint modules.

    Having a protocol here makes it easy to pass test doubles while
    keeping the production implementation (`HttpTransport`) concrete.
    """

    async def post(self, path: str, form: Mapping[str, str] | None = None) -> str:
        ...


def build_http_session(config: CalypshomeConfig) -> aiohttp.ClientSession:
    """Create the keep-alive session used against the box.

    The box answers a fresh connection with ECONNRESET surprisingly often,
    so connections are pooled and reused rather than opened per request.
    """
    connector = aiohttp.TCPConnector(limit_per_host=4, keepalive_timeout=60.0)
    timeout = aiohttp.ClientTimeout(total=config.request_timeout)
    return aiohttp.ClientSession(connector=connector, timeout=timeout)


def _is_connection_reset(exc: BaseException) -> bool:
    if isinstance(exc, (aiohttp.ServerDisconnectedError, ConnectionResetError)):
        return True
    if isinstance(exc, aiohttp.ClientOSError):
        return exc.errno == errno.ECONNRESET
    return False


class HttpTransport:
    """POSTs url-encoded forms to the box and returns the raw body text."""

    def __init__(self, config: CalypshomeConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session

    async def post(self, path: str, form: Mapping[str, str] | None = None) -> str:
        """POST *form* to *path* and return the response body.

        Raises
        ------
        CalypshomeTransportError
            On connection failure, timeout, a non-2xx status or a body that
            cannot be decoded.
        """
        url = f"{self._config.base_url}{path}"
        headers = {
            "accept": ACCEPT_HEADER,
            "content-type": FORM_CONTENT_TYPE,
        }

        _logger.debug("POST %s fields=%s", url, sorted((form or {}).keys()))

        try:
            async with self._http.post(url, data=dict(form or {}), headers=headers) as resp:
                try:
                    text = await resp.text()
                except UnicodeDecodeError as exc:
                    raise CalypshomeTransportError(
                        f"Undecodable response body from {path}: {exc}",
                        status_code=resp.status,
                        path=path,
                    ) from exc
                if not 200 <= resp.status < 300:
                    raise CalypshomeTransportError(
                        f"HTTP {resp.status} from {path}: {text[:200]}",
                        status_code=resp.status,
                        path=path,
                    )
        except CalypshomeTransportError:
            raise
        except asyncio.TimeoutError as exc:
            raise CalypshomeTransportError(
                f"Request to {path} timed out after {self._config.request_timeout}s",
                path=path,
            ) from exc
        except (aiohttp.ClientError, OSError) as exc:
            raise CalypshomeTransportError(
                f"Request to {path} failed: {exc!r}",
                path=path,
                connection_reset=_is_connection_reset(exc),
            ) from exc

        return text
