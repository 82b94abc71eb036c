"""Local record of one shutter."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

from pycalypshome.models.shutter import MotionState, ShutterSnapshot


@dataclass(slots=True, eq=False)
class ShutterTwin:
    """Mutable twin of one shutter, owned by :class:`DeviceRegistry`.

    ``motion_state`` and ``motion_timeout_handle`` are written only by
    :class:`PositionStateMachine`.
    """

    identity: str
    channel_key: str | None = None
    display_name: str = ""
    manufacturer: str | None = None
    current_level: int = 0
    target_level: int = 0
    motion_state: MotionState = MotionState.STOPPED
    motion_timeout_handle: asyncio.TimerHandle | None = field(default=None, repr=False)

    def snapshot(self) -> ShutterSnapshot:
        return ShutterSnapshot(
            identity=self.identity,
            channel_key=self.channel_key,
            display_name=self.display_name,
            manufacturer=self.manufacturer,
            current_level=self.current_level,
            target_level=self.target_level,
            motion_state=self.motion_state,
        )
