"""Command endpoint: /m?a=command.

Commands are sent exactly once.  A repeated ``STOP`` is harmless but a
repeated ``LEVEL`` restarts a move, so nothing here retries.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping

from pycalypshome._constants import COMMAND_PATH
from pycalypshome._transport import Transport
from pycalypshome.models.command import ShutterAction

_logger = logging.getLogger(__name__)


def build_command_form(
    object_id: str,
    action: ShutterAction,
    args: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Build the form fields of a command.

    ``args`` travels JSON-encoded in a single ``args`` field,
    e.g. ``{"level": "42"}``.
    """
    form: dict[str, str] = {"action": action.value, "id": object_id}
    if args:
        form["args"] = json.dumps(dict(args), separators=(",", ":"))
    return form


async def send_command(
    transport: Transport,
    object_id: str,
    action: ShutterAction,
    args: Mapping[str, str] | None = None,
) -> str:
    """Send *action* to *object_id* and return the raw response body."""
    _logger.info("Sending %s to %s args=%s", action.value, object_id, dict(args or {}))
    return await transport.post(COMMAND_PATH, build_command_form(object_id, action, args))
