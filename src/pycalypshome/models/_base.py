"""Base model and level parsing shared by all wire models.

Every response model inherits from :class:`CalypshomeBaseModel` which
provides:

* ``alias_generator=to_camel`` so camelCase wire keys (``eventId``)
  map automatically to snake_case fields.
* A ``raw`` dict that captures the original payload.
"""

from __future__ import annotations

import math
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from pycalypshome._constants import LEVEL_MAX, LEVEL_MIN


def parse_level(value: Any) -> int:
    """Convert a wire level to an ``int`` in ``[0, 100]``.

    Accepts ints, integral floats and their string forms.

    Raises
    ------
    ValueError
        If *value* is not an integral number or lies outside the range.
    """
    if isinstance(value, bool) or value is None:
        raise ValueError(f"level must be a number, got {value!r}")
    if isinstance(value, int):
        level = value
    else:
        try:
            number = float(str(value).strip())
        except ValueError:
            raise ValueError(f"level must be a number, got {value!r}") from None
        if math.isnan(number) or not number.is_integer():
            raise ValueError(f"level must be an integer, got {value!r}")
        level = int(number)
    if not LEVEL_MIN <= level <= LEVEL_MAX:
        raise ValueError(f"level must be between {LEVEL_MIN} and {LEVEL_MAX}, got {level}")
    return level


class CalypshomeBaseModel(BaseModel):
    """Base for wire models coming from the box."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    raw: dict[str, Any] = Field(default_factory=dict)
    """Original payload dict."""

    @model_validator(mode="before")
    @classmethod
    def _stash_raw(cls, values: Any) -> Any:
        # Only auto-stash raw when not explicitly provided.
        if not isinstance(values, dict) or "raw" in values:
            return values
        return {**values, "raw": dict(values)}
