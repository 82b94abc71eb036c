"""Inventory discovery with bounded exponential backoff.

Discovery runs once at startup.  It is not a poller: after the first
successful refresh, live updates come from the event channel.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from pycalypshome._api.objects import fetch_shutters
from pycalypshome._backoff import BackoffStrategy
from pycalypshome._transport import Transport
from pycalypshome.config import CalypshomeConfig
from pycalypshome.exceptions import (
    CalypshomeDiscoveryError,
    CalypshomeProtocolError,
    CalypshomeTransportError,
)
from pycalypshome.models.shutter import ShutterObject
from pycalypshome.state.motion import PositionStateMachine
from pycalypshome.state.registry import DeviceRegistry
from pycalypshome.state.twin import ShutterTwin

_logger = logging.getLogger(__name__)


def backoff_from_config(config: CalypshomeConfig) -> BackoffStrategy:
    return BackoffStrategy(
        max_retries=config.discovery_max_attempts,
        initial_backoff_s=config.discovery_initial_delay,
        min_backoff_s=config.discovery_min_delay,
        max_backoff_s=config.discovery_max_delay,
    )


class InventoryDiscovery:
    """Fetches the shutter inventory and reconciles it into the registry."""

    def __init__(
        self,
        transport: Transport,
        registry: DeviceRegistry,
        machine: PositionStateMachine,
        *,
        backoff_factory: Callable[[], BackoffStrategy],
        on_change: Callable[[ShutterTwin], None] | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._transport = transport
        self._registry = registry
        self._machine = machine
        self._backoff_factory = backoff_factory
        self._on_change = on_change
        self._sleep = sleep

    async def refresh(self) -> list[ShutterTwin]:
        """Fetch the inventory (retrying) and update the registry.

        Idempotent: running it twice with the same inventory leaves the
        registry unchanged.

        Raises
        ------
        CalypshomeDiscoveryError
            When every attempt failed.  Nothing reschedules discovery
            afterwards; the caller decides whether to try again later.
        """
        objects = await self._fetch_with_retry()
        twins = [self._reconcile(obj) for obj in objects]
        _logger.info("Discovery found %d shutter(s), %d known in total", len(twins), len(self._registry))
        return twins

    async def _fetch_with_retry(self) -> list[ShutterObject]:
        backoff = self._backoff_factory()
        while True:
            try:
                return await fetch_shutters(self._transport)
            except (CalypshomeTransportError, CalypshomeProtocolError) as exc:
                # An idle keep-alive connection reset by the box is expected;
                # retry it without growing the delay.
                benign = isinstance(exc, CalypshomeTransportError) and exc.connection_reset
                backoff.record_failure(escalate=not benign)
                if not backoff.should_retry():
                    _logger.error("Discovery failed after %d attempt(s): %s", backoff.attempts, exc)
                    raise CalypshomeDiscoveryError(
                        f"Discovery failed after {backoff.attempts} attempt(s): {exc}",
                        attempts=backoff.attempts,
                    ) from exc
                delay = backoff.get_backoff_delay()
                _logger.warning(
                    "Discovery attempt %d failed (%s), retrying in %.1fs",
                    backoff.attempts,
                    exc,
                    delay,
                )
                await self._sleep(delay)

    def _reconcile(self, obj: ShutterObject) -> ShutterTwin:
        twin, _created = self._registry.upsert(obj)
        level = obj.level
        self._machine.render(twin, level, level, level)
        if self._on_change is not None:
            self._on_change(twin)
        return twin
