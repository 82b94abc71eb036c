"""Inventory endpoint: /m?a=getObjects.

The box filters by the ``type`` form field, but the result is filtered
again locally since older firmwares ignore it.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import ValidationError

from pycalypshome._constants import GET_OBJECTS_PATH, SHUTTER_TYPE
from pycalypshome._transport import Transport
from pycalypshome.exceptions import CalypshomeProtocolError
from pycalypshome.models.shutter import ShutterObject

_logger = logging.getLogger(__name__)


def build_objects_form(object_type: str = SHUTTER_TYPE) -> dict[str, str]:
    return {"type": object_type}


def parse_objects(text: str, *, object_type: str = SHUTTER_TYPE) -> list[ShutterObject]:
    """Parse a ``getObjects`` body into shutter objects.

    Records that fail validation (missing id, bad level, ...) are logged
    and skipped.

    Raises
    ------
    CalypshomeProtocolError
        If the body is not JSON or has no ``objects`` array.
    """
    try:
        document: Any = json.loads(text)
    except json.JSONDecodeError as exc:
        raise CalypshomeProtocolError(f"getObjects returned invalid JSON: {text[:200]!r}") from exc

    objects = document.get("objects") if isinstance(document, dict) else None
    if not isinstance(objects, list):
        raise CalypshomeProtocolError("getObjects response has no 'objects' array")

    shutters: list[ShutterObject] = []
    for item in objects:
        if not isinstance(item, dict):
            _logger.warning("Skipping non-object inventory entry: %r", item)
            continue
        if item.get("type") != object_type:
            continue
        try:
            shutters.append(ShutterObject.model_validate(item))
        except ValidationError as exc:
            _logger.warning(
                "Skipping malformed inventory record id=%r: %s",
                item.get("id"),
                exc.errors(include_url=False),
            )
    return shutters


async def fetch_shutters(transport: Transport) -> list[ShutterObject]:
    """Fetch every rolling shutter known to the box."""
    text = await transport.post(GET_OBJECTS_PATH, build_objects_form())
    return parse_objects(text)
