"""Decoded event-channel messages."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class LevelEvent(BaseModel):
    """A level update pushed by the box for one shutter."""

    model_config = ConfigDict(frozen=True)

    event_key: str = Field(..., description="Full event key, e.g. 'device/12/level'")
    channel_key: str = Field(..., description="Event key without the level suffix")
    level: int = Field(..., ge=0, le=100)
    fragments: tuple[str, ...] = Field(default=(), description="All decoded fragments of the frame")
