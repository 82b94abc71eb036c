"""Command actions accepted by ``/m?a=command``."""

from __future__ import annotations

import enum


class ShutterAction(enum.StrEnum):
    """``action`` form values understood by the box."""

    STOP = "STOP"
    LEVEL = "LEVEL"
