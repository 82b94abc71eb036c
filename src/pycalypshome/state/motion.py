"""Position state machine.

The box reports level changes while a shutter travels but never says
when it has finished, so motion is inferred from where the shutter was
heading and where it is now, and a moving state expires on its own.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from pycalypshome._constants import LEVEL_MAX, LEVEL_MIN
from pycalypshome.models.shutter import MotionState
from pycalypshome.state.twin import ShutterTwin

_logger = logging.getLogger(__name__)


def infer_motion_state(previous_target: int, observed_actual: int, next_target: int) -> MotionState:
    """Classify a ``(previous target, observed level, next target)`` triple."""
    increasing = previous_target < next_target
    if (
        previous_target == next_target
        or (increasing and observed_actual == LEVEL_MAX)
        or (not increasing and observed_actual == LEVEL_MIN)
    ):
        return MotionState.STOPPED
    return MotionState.INCREASING if increasing else MotionState.DECREASING


class PositionStateMachine:
    """Single writer of :attr:`ShutterTwin.motion_state`.

    Every non-STOPPED render schedules a revert-to-STOPPED callback after
    ``motion_timeout`` seconds; any later render for the same twin cancels
    it first, so a twin never has more than one pending timer.
    """

    def __init__(
        self,
        *,
        motion_timeout: float = 11.0,
        on_change: Callable[[ShutterTwin], None] | None = None,
    ) -> None:
        self._motion_timeout = motion_timeout
        self._on_change = on_change

    def render(
        self,
        twin: ShutterTwin,
        previous_target: int,
        observed_actual: int,
        next_target: int,
    ) -> MotionState:
        """Infer and store the motion state of *twin*.

        Must be called from inside the running event loop.  When the twin
        is found stopped its ``target_level`` is corrected to
        *observed_actual*: a move started by a third-party remote has no
        known target.
        """
        state = infer_motion_state(previous_target, observed_actual, next_target)
        if state == MotionState.STOPPED:
            twin.target_level = observed_actual
        self._set_motion_state(twin, state)
        _logger.debug(
            "Rendered %s for %s (prev=%d actual=%d next=%d)",
            state.name,
            twin.identity,
            previous_target,
            observed_actual,
            next_target,
        )
        return state

    def cancel(self, twin: ShutterTwin) -> None:
        """Drop the pending revert timer of *twin*, if any."""
        handle = twin.motion_timeout_handle
        twin.motion_timeout_handle = None
        if handle is not None:
            handle.cancel()

    def _set_motion_state(self, twin: ShutterTwin, state: MotionState) -> None:
        twin.motion_state = state
        self.cancel(twin)
        if state != MotionState.STOPPED:
            loop = asyncio.get_running_loop()
            twin.motion_timeout_handle = loop.call_later(self._motion_timeout, self._expire, twin)

    def _expire(self, twin: ShutterTwin) -> None:
        twin.motion_timeout_handle = None
        if twin.motion_state == MotionState.STOPPED:
            return
        _logger.debug("Motion timeout for %s, assuming stopped", twin.identity)
        twin.motion_state = MotionState.STOPPED
        if self._on_change is not None:
            self._on_change(twin)
