from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

import pytest


def shutter_payload(
    identity: str = "12",
    *,
    level: Any = 30,
    name: str = "Salon",
    event_id: str | None = None,
    manufacturer: str = "Profalux",
) -> dict[str, Any]:
    return {
        "id": identity,
        "name": name,
        "type": "Rolling_Shutter",
        "eventId": event_id if event_id is not None else f"device/{identity}/",
        "status": [
            {"name": "manufacturer_name", "value": manufacturer},
            {"name": "level", "value": str(level)},
        ],
    }


def objects_body(*objects: dict[str, Any]) -> str:
    return json.dumps({"objects": list(objects)})


class FakeTransport:
    """Scripted transport: each call pops the next body or exception."""

    def __init__(self, outcomes: list[str | BaseException] | None = None, *, default: str = "OK") -> None:
        self._outcomes = list(outcomes or [])
        self._default = default
        self.calls: list[tuple[str, dict[str, str]]] = []

    async def post(self, path: str, form: Mapping[str, str] | None = None) -> str:
        self.calls.append((path, dict(form or {})))
        if not self._outcomes:
            return self._default
        outcome = self._outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()
