"""Event channel: line-protocol codec and reconnecting WebSocket runtime.

Frames are single lines of space-separated fragments.  A fragment that
starts with ``@`` is base64 encoded.  Fragment 6 is the event key and,
for level updates (keys ending in ``/level``), fragment 7 is the new level.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import time
from collections.abc import Callable

import aiohttp

from pycalypshome._backoff import BackoffStrategy
from pycalypshome._constants import (
    BASE64_PREFIX,
    EVENT_CHANNEL_PROTOCOL,
    EVENT_KEY_INDEX,
    EVENT_VALUE_INDEX,
    FIRST_HEARTBEAT_SEQUENCE,
    LEVEL_SUFFIX,
    LOGIN_FRAME,
    UPTIME_EVENT,
)
from pycalypshome.config import CalypshomeConfig
from pycalypshome.exceptions import CalypshomeChannelError, CalypshomeConfigError, CalypshomeProtocolError
from pycalypshome.models._base import parse_level
from pycalypshome.models.event import LevelEvent

_logger = logging.getLogger(__name__)

# ------------------------------------------------------------------
# Codec
# ------------------------------------------------------------------


def decode_fragment(fragment: str) -> str:
    """Decode one fragment; plain fragments are returned unchanged.

    Raises
    ------
    CalypshomeProtocolError
        If an ``@`` fragment is not valid base64 or not UTF-8.
    """
    if not fragment.startswith(BASE64_PREFIX):
        return fragment
    try:
        return base64.b64decode(fragment[1:], validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as exc:
        raise CalypshomeProtocolError(f"Undecodable base64 fragment: {exc}", fragment=fragment) from exc


def _decode_lenient(fragment: str) -> str:
    # Fragments other than the key and the level never reject a frame.
    try:
        return decode_fragment(fragment)
    except CalypshomeProtocolError:
        return fragment


def channel_key_from_event_key(event_key: str) -> str | None:
    """Map a level event key to the inventory ``eventId`` it belongs to.

    ``"device/12/level"`` becomes ``"device/12/"``; keys of any other
    event return ``None``.
    """
    if not event_key.endswith("/" + LEVEL_SUFFIX):
        return None
    return event_key[: -len(LEVEL_SUFFIX)]


def event_key_for_channel_key(channel_key: str) -> str:
    """Inverse of :func:`channel_key_from_event_key`."""
    return channel_key + LEVEL_SUFFIX


def parse_level_event(message: str) -> LevelEvent | None:
    """Decode a frame into a :class:`LevelEvent`.

    Returns ``None`` for frames that are too short or carry any other
    event.

    Raises
    ------
    CalypshomeProtocolError
        If the frame is a level event but its key or level fragment cannot
        be decoded, or the level is outside ``[0, 100]``.  Other fragments
        that fail to decode are kept as received.
    """
    raw_fragments = message.split(" ")
    if len(raw_fragments) <= EVENT_VALUE_INDEX:
        return None

    event_key = decode_fragment(raw_fragments[EVENT_KEY_INDEX])
    channel_key = channel_key_from_event_key(event_key)
    if channel_key is None:
        return None

    value = decode_fragment(raw_fragments[EVENT_VALUE_INDEX])
    try:
        level = parse_level(value)
    except ValueError as exc:
        raise CalypshomeProtocolError(
            f"Invalid level for {event_key}: {exc}",
            fragment=raw_fragments[EVENT_VALUE_INDEX],
        ) from exc
    fragments = tuple(_decode_lenient(fragment) for fragment in raw_fragments)
    return LevelEvent(event_key=event_key, channel_key=channel_key, level=level, fragments=fragments)


def build_heartbeat_frame(sequence: int, now_epoch: int, uptime_s: int) -> str:
    """Build the periodic uptime frame the box expects from live clients."""
    return f"p1 {sequence} /_web / event {now_epoch} {UPTIME_EVENT} {uptime_s}"


# ------------------------------------------------------------------
# Runtime
# ------------------------------------------------------------------


class EventChannel:
    """Persistent WebSocket client for the box's live events.

    :meth:`run` keeps a connection open for as long as it is awaited,
    reconnecting with jittered backoff after every failure or close.  Only
    a configuration error (or :meth:`stop`) ends it.
    """

    def __init__(
        self,
        config: CalypshomeConfig,
        http_session: aiohttp.ClientSession,
        *,
        on_level_event: Callable[[LevelEvent], None],
        backoff: BackoffStrategy | None = None,
        clock: Callable[[], float] = time.time,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config
        self._http = http_session
        self._on_level_event = on_level_event
        self._backoff = backoff or BackoffStrategy(
            max_retries=None,
            initial_backoff_s=config.reconnect_initial_delay,
            min_backoff_s=config.reconnect_initial_delay / 2,
            max_backoff_s=config.reconnect_max_delay,
        )
        self._clock = clock
        self._monotonic = monotonic
        self._started_at: float | None = None
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._heartbeat_task: asyncio.Task[None] | None = None
        self._stopping = False
        self._connect_count = 0

    @property
    def is_connected(self) -> bool:
        return self._ws is not None and not self._ws.closed

    @property
    def connect_count(self) -> int:
        """Number of successful connects since construction."""
        return self._connect_count

    @property
    def uptime(self) -> int:
        """Whole seconds since :meth:`run` was first started."""
        if self._started_at is None:
            return 0
        return int(self._monotonic() - self._started_at)

    async def run(self) -> None:
        """Connect and stay connected until stopped or cancelled.

        Raises
        ------
        CalypshomeConfigError
            If the configured URL cannot be used at all.
        """
        if self._started_at is None:
            self._started_at = self._monotonic()
        self._stopping = False

        while not self._stopping:
            try:
                await self._connect_once()
            except CalypshomeConfigError:
                raise
            except CalypshomeChannelError as exc:
                _logger.warning("Event channel error: %s", exc)
            except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as exc:
                _logger.warning("Event channel connection failed: %r", exc)
            else:
                _logger.info("Event channel connection closed")

            if self._stopping:
                break
            self._backoff.record_failure()
            delay = self._backoff.get_backoff_delay()
            _logger.debug("Reconnecting event channel in %.1fs", delay)
            await asyncio.sleep(delay)

    async def stop(self) -> None:
        """Close the live connection and make :meth:`run` return."""
        self._stopping = True
        ws = self._ws
        if ws is not None and not ws.closed:
            await ws.close()

    async def _connect_once(self) -> None:
        url = self._config.event_channel_url
        try:
            ws = await self._http.ws_connect(url, protocols=(EVENT_CHANNEL_PROTOCOL,))
        except aiohttp.InvalidURL as exc:
            raise CalypshomeConfigError(f"Invalid event channel URL {url!r}") from exc

        self._ws = ws
        self._connect_count += 1
        self._backoff.reset()
        _logger.info("Event channel connected to %s", url)
        try:
            await ws.send_str(LOGIN_FRAME)
            self._start_heartbeat(ws)
            async for msg in ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    self._handle_text(msg.data)
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    raise CalypshomeChannelError(f"Event channel socket error: {ws.exception()!r}")
                else:
                    _logger.debug("Ignoring event channel frame of type %s", msg.type)
        finally:
            await self._stop_heartbeat()
            self._ws = None
            if not ws.closed:
                await ws.close()

    def _start_heartbeat(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        if self._heartbeat_task is not None:
            self._heartbeat_task.cancel()
        self._heartbeat_task = asyncio.create_task(self._heartbeat(ws))

    async def _stop_heartbeat(self) -> None:
        task = self._heartbeat_task
        self._heartbeat_task = None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception:
            _logger.warning("Heartbeat task failed", exc_info=True)

    async def _heartbeat(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        sequence = FIRST_HEARTBEAT_SEQUENCE - 1
        while True:
            await asyncio.sleep(self._config.heartbeat_interval)
            sequence += 1
            frame = build_heartbeat_frame(sequence, int(self._clock()), self.uptime)
            _logger.debug("Sending heartbeat %s", frame)
            try:
                await ws.send_str(frame)
            except (aiohttp.ClientError, ConnectionError) as exc:
                _logger.warning("Heartbeat failed (%r), closing event channel", exc)
                await ws.close()
                return

    def _handle_text(self, data: str) -> None:
        _logger.debug("Event channel frame: %s", data)
        try:
            event = parse_level_event(data)
        except CalypshomeProtocolError as exc:
            _logger.warning("Skipping malformed event channel message: %s", exc)
            return
        if event is None:
            return
        try:
            self._on_level_event(event)
        except Exception:
            _logger.warning("Level event handler failed for %s", event.event_key, exc_info=True)
