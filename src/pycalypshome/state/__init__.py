"""State layer.

Owns the per-shutter twins.  Discovery, the event channel and command
dispatch all go through :class:`DeviceRegistry` to find a twin and
through :class:`PositionStateMachine` to change its motion state.
"""

from pycalypshome.state.motion import PositionStateMachine
from pycalypshome.state.registry import DeviceRegistry
from pycalypshome.state.twin import ShutterTwin

__all__ = ["DeviceRegistry", "PositionStateMachine", "ShutterTwin"]
