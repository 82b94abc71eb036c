"""High-level async client for a Calyps'HOME box on the local network."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable, Mapping
from typing import Any

import aiohttp

from pycalypshome._api.command import send_command
from pycalypshome._channel import EventChannel
from pycalypshome._discovery import InventoryDiscovery, backoff_from_config
from pycalypshome._transport import HttpTransport, Transport, build_http_session
from pycalypshome.config import CalypshomeConfig
from pycalypshome.exceptions import CalypshomeConfigError, CalypshomeError, CalypshomeUnknownDeviceError
from pycalypshome.models._base import parse_level
from pycalypshome.models.command import ShutterAction
from pycalypshome.models.event import LevelEvent
from pycalypshome.models.shutter import ShutterSnapshot
from pycalypshome.state.motion import PositionStateMachine
from pycalypshome.state.registry import DeviceRegistry
from pycalypshome.state.twin import ShutterTwin

_logger = logging.getLogger(__name__)


class CalypshomeClient:
    """Async client keeping local shutter twins in sync with the box.

    Usage::

        async with CalypshomeClient(config, on_change=print) as client:
            await client.refresh_inventory()
            client.start_live_channel()
            await client.set_level("12", 80)
    """

    def __init__(
        self,
        config: CalypshomeConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        on_change: Callable[[ShutterSnapshot], None] | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._transport: Transport | None = None
        self._on_change_cb = on_change
        self._registry = DeviceRegistry()
        self._machine = PositionStateMachine(
            motion_timeout=config.motion_timeout,
            on_change=self._notify,
        )
        self._channel: EventChannel | None = None
        self._channel_task: asyncio.Task[None] | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> CalypshomeClient:
        if self._http_session is None:
            self._http_session = build_http_session(self._config)
        self._transport = HttpTransport(self._config, self._http_session)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop_live_channel()
        for twin in self._registry:
            self._machine.cancel(twin)
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        self._transport = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise CalypshomeError("Client not initialized. Use 'async with CalypshomeClient(...) as client:'")
        return self._transport

    def _require_twin(self, identity: str) -> ShutterTwin:
        twin = self._registry.get(identity)
        if twin is None:
            raise CalypshomeUnknownDeviceError(identity)
        return twin

    def _notify(self, twin: ShutterTwin) -> None:
        if self._on_change_cb is None:
            return
        try:
            self._on_change_cb(twin.snapshot())
        except Exception:
            _logger.debug("on_change callback failed", exc_info=True)

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def shutters(self) -> list[ShutterSnapshot]:
        """Snapshots of every known shutter."""
        return [twin.snapshot() for twin in self._registry]

    def get_shutter(self, identity: str) -> ShutterSnapshot | None:
        twin = self._registry.get(identity)
        return twin.snapshot() if twin is not None else None

    async def refresh_inventory(self) -> list[ShutterSnapshot]:
        """Discover shutters and refresh their names, makers and levels.

        Raises
        ------
        CalypshomeDiscoveryError
            When the box could not be reached within the retry budget.
        """
        discovery = InventoryDiscovery(
            self._require_transport(),
            self._registry,
            self._machine,
            backoff_factory=lambda: backoff_from_config(self._config),
            on_change=self._notify,
        )
        twins = await discovery.refresh()
        return [twin.snapshot() for twin in twins]

    # ------------------------------------------------------------------
    # Live channel
    # ------------------------------------------------------------------

    def _require_channel(self) -> EventChannel:
        if self._http_session is None:
            raise CalypshomeError("Client not initialized. Use 'async with CalypshomeClient(...) as client:'")
        if self._channel is None:
            self._channel = EventChannel(
                self._config,
                self._http_session,
                on_level_event=self._on_level_event,
            )
        return self._channel

    @property
    def live_channel_connected(self) -> bool:
        return self._channel is not None and self._channel.is_connected

    async def connect_live_channel(self) -> None:
        """Follow the event channel until stopped (reconnecting as needed)."""
        if not self._config.event_channel_enabled:
            raise CalypshomeConfigError("Event channel is disabled in configuration")
        await self._require_channel().run()

    def start_live_channel(self) -> asyncio.Task[None]:
        """Run :meth:`connect_live_channel` in a background task."""
        if self._channel_task is not None and not self._channel_task.done():
            return self._channel_task
        self._channel_task = asyncio.create_task(self.connect_live_channel())
        return self._channel_task

    async def stop_live_channel(self) -> None:
        channel = self._channel
        task = self._channel_task
        self._channel_task = None
        if channel is not None:
            await channel.stop()
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    def _on_level_event(self, event: LevelEvent) -> None:
        twin = self._registry.find_by_channel_key(event.channel_key)
        if twin is None:
            _logger.debug("Dropping level event for unknown key %s", event.event_key)
            return
        previous_level = twin.current_level
        self._machine.render(twin, previous_level, event.level, event.level)
        twin.current_level = event.level
        self._notify(twin)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def dispatch(
        self,
        identity: str,
        action: ShutterAction | str,
        args: Mapping[str, str] | None = None,
    ) -> str:
        """Send *action* to the shutter *identity* and return the raw reply.

        ``LEVEL`` needs ``args={"level": "<0-100>"}``; the motion state is
        predicted locally before the box confirms anything.  Failures are
        raised as-is and never retried.
        """
        twin = self._require_twin(identity)
        command = ShutterAction(action)
        transport = self._require_transport()

        if command == ShutterAction.LEVEL:
            raw_level = (args or {}).get("level")
            if raw_level is None:
                raise ValueError("LEVEL command requires args={'level': ...}")
            requested = parse_level(raw_level)
            args = {**(args or {}), "level": str(requested)}
            current = twin.current_level
            twin.target_level = requested
            self._machine.render(twin, current, current, requested)
            self._notify(twin)

        return await send_command(transport, twin.identity, command, args)

    async def set_level(self, identity: str, level: int) -> str:
        """Move a shutter to *level* (0-100)."""
        return await self.dispatch(identity, ShutterAction.LEVEL, {"level": str(parse_level(level))})

    async def stop(self, identity: str) -> str:
        """Stop a moving shutter."""
        return await self.dispatch(identity, ShutterAction.STOP)
