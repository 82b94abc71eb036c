"""Data models for the box's HTTP and event-channel payloads."""

from pycalypshome.models._base import CalypshomeBaseModel, parse_level
from pycalypshome.models.command import ShutterAction
from pycalypshome.models.event import LevelEvent
from pycalypshome.models.shutter import MotionState, ShutterObject, ShutterSnapshot, StatusEntry

__all__ = [
    "CalypshomeBaseModel",
    "LevelEvent",
    "MotionState",
    "ShutterAction",
    "ShutterObject",
    "ShutterSnapshot",
    "StatusEntry",
    "parse_level",
]
