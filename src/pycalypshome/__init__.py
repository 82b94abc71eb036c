"""pycalypshome - Async Python client for Calyps'HOME shutter boxes on the LAN."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pycalypshome")
except PackageNotFoundError:
    __version__ = "0+local"
from pycalypshome.client import CalypshomeClient
from pycalypshome.config import CalypshomeConfig
from pycalypshome.exceptions import (
    CalypshomeChannelError,
    CalypshomeConfigError,
    CalypshomeDiscoveryError,
    CalypshomeError,
    CalypshomeProtocolError,
    CalypshomeTransportError,
    CalypshomeUnknownDeviceError,
)
from pycalypshome.models import (
    LevelEvent,
    MotionState,
    ShutterAction,
    ShutterObject,
    ShutterSnapshot,
)

__all__ = [
    "__version__",
    "CalypshomeChannelError",
    "CalypshomeClient",
    "CalypshomeConfig",
    "CalypshomeConfigError",
    "CalypshomeDiscoveryError",
    "CalypshomeError",
    "CalypshomeProtocolError",
    "CalypshomeTransportError",
    "CalypshomeUnknownDeviceError",
    "LevelEvent",
    "MotionState",
    "ShutterAction",
    "ShutterObject",
    "ShutterSnapshot",
]
