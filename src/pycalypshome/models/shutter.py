"""Shutter inventory models and motion state."""

from __future__ import annotations

import enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pycalypshome.models._base import CalypshomeBaseModel, parse_level


class MotionState(enum.IntEnum):
    """Direction a shutter is currently travelling in.

    Values follow the HomeKit ``PositionState`` characteristic so hosts
    can forward them unchanged.
    """

    DECREASING = 0
    INCREASING = 1
    STOPPED = 2


class StatusEntry(BaseModel):
    """One ``{name, value}`` pair of an object's ``status`` array."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str
    value: Any = None


class ShutterObject(CalypshomeBaseModel):
    """A ``Rolling_Shutter`` entry of the ``getObjects`` inventory.

    Fields are mapped from the ``/m?a=getObjects`` response.  ``level``
    and ``manufacturer`` are derived from the embedded ``status`` array;
    a missing or out-of-range level makes the whole record invalid.
    """

    id: str
    name: str = ""
    type: str = ""
    event_id: str | None = None
    """Key addressing this object on the event channel (ends with ``/``)."""
    status: list[StatusEntry] = Field(default_factory=list, validate_default=True)

    @field_validator("id")
    @classmethod
    def _require_id(cls, value: str) -> str:
        identity = value.strip()
        if not identity:
            raise ValueError("id must be non-empty")
        return identity

    @field_validator("id", "event_id", mode="before")
    @classmethod
    def _coerce_str(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("status")
    @classmethod
    def _require_level(cls, value: list[StatusEntry]) -> list[StatusEntry]:
        levels = [entry.value for entry in value if entry.name == "level"]
        if not levels:
            raise ValueError("status carries no 'level' entry")
        parse_level(levels[-1])
        return value

    @property
    def status_map(self) -> dict[str, Any]:
        """``status`` flattened to ``{name: value}``; later duplicates win."""
        return {entry.name: entry.value for entry in self.status}

    @property
    def level(self) -> int:
        return parse_level(self.status_map["level"])

    @property
    def manufacturer(self) -> str | None:
        value = self.status_map.get("manufacturer_name")
        return str(value) if value not in (None, "") else None


class ShutterSnapshot(BaseModel):
    """Immutable view of one shutter handed to change callbacks."""

    model_config = ConfigDict(frozen=True)

    identity: str
    channel_key: str | None = None
    display_name: str = ""
    manufacturer: str | None = None
    current_level: int
    target_level: int
    motion_state: MotionState = MotionState.STOPPED
