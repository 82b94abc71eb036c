"""In-memory registry of shutter twins.

This is the only component that creates twins or changes their
descriptive fields.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator

from pycalypshome.models.shutter import ShutterObject
from pycalypshome.state.twin import ShutterTwin

_logger = logging.getLogger(__name__)


class DeviceRegistry:
    """Maps stable identities (and event-channel keys) to twins."""

    def __init__(self) -> None:
        self._twins: dict[str, ShutterTwin] = {}
        self._by_channel_key: dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._twins)

    def __iter__(self) -> Iterator[ShutterTwin]:
        return iter(list(self._twins.values()))

    def __contains__(self, identity: object) -> bool:
        return identity in self._twins

    def get(self, identity: str) -> ShutterTwin | None:
        return self._twins.get(identity)

    def find_by_channel_key(self, channel_key: str) -> ShutterTwin | None:
        identity = self._by_channel_key.get(channel_key)
        if identity is None:
            return None
        return self._twins.get(identity)

    def upsert(self, obj: ShutterObject) -> tuple[ShutterTwin, bool]:
        """Create or update the twin for *obj*.

        Returns the twin and whether it was created.  An existing twin is
        updated in place; motion state is left to the state machine.
        """
        twin = self._twins.get(obj.id)
        created = twin is None
        if twin is None:
            twin = ShutterTwin(identity=obj.id, current_level=obj.level, target_level=obj.level)
            self._twins[obj.id] = twin
            _logger.info("Registered shutter %s (%s)", obj.id, obj.name)

        twin.display_name = obj.name
        if obj.manufacturer is not None:
            twin.manufacturer = obj.manufacturer
        twin.current_level = obj.level
        self._bind_channel_key(twin, obj.event_id)
        return twin, created

    def _bind_channel_key(self, twin: ShutterTwin, channel_key: str | None) -> None:
        if channel_key == twin.channel_key:
            return
        if twin.channel_key is not None and self._by_channel_key.get(twin.channel_key) == twin.identity:
            del self._by_channel_key[twin.channel_key]
        twin.channel_key = channel_key
        if channel_key is None:
            return
        previous_owner = self._by_channel_key.get(channel_key)
        if previous_owner is not None and previous_owner != twin.identity:
            _logger.warning(
                "Event key %s moved from shutter %s to %s",
                channel_key,
                previous_owner,
                twin.identity,
            )
            other = self._twins.get(previous_owner)
            if other is not None:
                other.channel_key = None
        self._by_channel_key[channel_key] = twin.identity
