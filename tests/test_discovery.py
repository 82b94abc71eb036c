"""Tests for inventory parsing, reconciliation and retry."""

from __future__ import annotations

import json

import pytest

from conftest import FakeTransport, objects_body, shutter_payload
from pycalypshome._api.objects import parse_objects
from pycalypshome._backoff import BackoffStrategy
from pycalypshome._discovery import InventoryDiscovery, backoff_from_config
from pycalypshome.config import CalypshomeConfig
from pycalypshome.exceptions import (
    CalypshomeDiscoveryError,
    CalypshomeProtocolError,
    CalypshomeTransportError,
)
from pycalypshome.models import MotionState
from pycalypshome.state.motion import PositionStateMachine
from pycalypshome.state.registry import DeviceRegistry
from pycalypshome.state.twin import ShutterTwin


class _RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def _discovery(
    transport: FakeTransport,
    registry: DeviceRegistry,
    *,
    max_retries: int = 10,
    sleep: _RecordingSleep | None = None,
    changes: list[ShutterTwin] | None = None,
) -> InventoryDiscovery:
    return InventoryDiscovery(
        transport,
        registry,
        PositionStateMachine(motion_timeout=0.05),
        backoff_factory=lambda: BackoffStrategy(
            max_retries=max_retries,
            initial_backoff_s=1.0,
            max_backoff_s=180.0,
            rng=lambda _low, high: high,
        ),
        on_change=changes.append if changes is not None else None,
        sleep=sleep or _RecordingSleep(),
    )


class TestParseObjects:
    def test_filters_non_shutters(self) -> None:
        light = {**shutter_payload("99"), "type": "Light"}
        shutters = parse_objects(objects_body(shutter_payload("12"), light))
        assert [s.id for s in shutters] == ["12"]

    def test_skips_malformed_records(self, caplog: pytest.LogCaptureFixture) -> None:
        body = objects_body(
            shutter_payload("12"),
            shutter_payload("13", level=250),
            {"type": "Rolling_Shutter", "status": []},
            "garbage",
        )

        shutters = parse_objects(body)

        assert [s.id for s in shutters] == ["12"]
        assert "Skipping malformed inventory record" in caplog.text

    def test_record_without_type_is_not_a_shutter(self) -> None:
        untyped = shutter_payload("14")
        del untyped["type"]

        assert [s.id for s in parse_objects(objects_body(shutter_payload("12"), untyped))] == ["12"]

    @pytest.mark.parametrize("body", ["<html>busy</html>", json.dumps({"result": "ok"}), json.dumps([1, 2])])
    def test_bad_document_raises_protocol_error(self, body: str) -> None:
        with pytest.raises(CalypshomeProtocolError):
            parse_objects(body)


@pytest.mark.asyncio
async def test_refresh_posts_get_objects_filtered_to_shutters() -> None:
    transport = FakeTransport([objects_body(shutter_payload("12"))])
    registry = DeviceRegistry()

    await _discovery(transport, registry).refresh()

    assert transport.calls == [("/m?a=getObjects", {"type": "Rolling_Shutter"})]


@pytest.mark.asyncio
async def test_refresh_renders_stopped_state_at_reported_level() -> None:
    transport = FakeTransport([objects_body(shutter_payload("12", level=30))])
    registry = DeviceRegistry()
    changes: list[ShutterTwin] = []

    twins = await _discovery(transport, registry, changes=changes).refresh()

    twin = registry.get("12")
    assert twins == [twin]
    assert twin is not None
    assert twin.current_level == 30
    assert twin.target_level == 30
    assert twin.motion_state == MotionState.STOPPED
    assert twin.manufacturer == "Profalux"
    assert changes == [twin]


@pytest.mark.asyncio
async def test_record_without_status_is_skipped(caplog: pytest.LogCaptureFixture) -> None:
    no_status = {"id": "13", "name": "x", "type": "Rolling_Shutter", "eventId": "device/13/"}
    transport = FakeTransport([objects_body(shutter_payload("12"), no_status)])
    registry = DeviceRegistry()

    twins = await _discovery(transport, registry).refresh()

    assert [t.identity for t in twins] == ["12"]
    assert "13" not in registry
    assert "Skipping malformed inventory record id='13'" in caplog.text


@pytest.mark.asyncio
async def test_refresh_twice_is_idempotent() -> None:
    body = objects_body(shutter_payload("12", level=30), shutter_payload("13", level=70, name="Chambre"))
    transport = FakeTransport([body, body])
    registry = DeviceRegistry()
    discovery = _discovery(transport, registry)

    await discovery.refresh()
    first = {t.identity: (t.display_name, t.current_level, t.target_level, t.motion_state) for t in registry}
    await discovery.refresh()
    second = {t.identity: (t.display_name, t.current_level, t.target_level, t.motion_state) for t in registry}

    assert len(registry) == 2
    assert first == second


@pytest.mark.asyncio
async def test_refresh_retries_then_succeeds() -> None:
    transport = FakeTransport(
        [
            CalypshomeTransportError("refused"),
            CalypshomeTransportError("HTTP 503", status_code=503),
            objects_body(shutter_payload("12", level=55)),
        ]
    )
    registry = DeviceRegistry()
    sleep = _RecordingSleep()

    await _discovery(transport, registry, sleep=sleep).refresh()

    assert len(transport.calls) == 3
    assert sleep.delays == [2.0, 4.0]
    twin = registry.get("12")
    assert twin is not None and twin.current_level == 55


@pytest.mark.asyncio
async def test_malformed_json_is_retried() -> None:
    transport = FakeTransport(["not json", objects_body(shutter_payload("12"))])
    registry = DeviceRegistry()

    await _discovery(transport, registry).refresh()

    assert len(transport.calls) == 2
    assert "12" in registry


@pytest.mark.asyncio
async def test_connection_reset_retries_at_same_tier() -> None:
    transport = FakeTransport(
        [
            CalypshomeTransportError("reset", connection_reset=True),
            CalypshomeTransportError("reset", connection_reset=True),
            objects_body(shutter_payload("12")),
        ]
    )
    sleep = _RecordingSleep()

    await _discovery(transport, DeviceRegistry(), sleep=sleep).refresh()

    assert sleep.delays == [1.0, 1.0]


@pytest.mark.asyncio
async def test_refresh_gives_up_after_attempt_bound() -> None:
    error = CalypshomeTransportError("unreachable")
    transport = FakeTransport([error] * 10)
    registry = DeviceRegistry()
    sleep = _RecordingSleep()

    with pytest.raises(CalypshomeDiscoveryError) as exc_info:
        await _discovery(transport, registry, max_retries=4, sleep=sleep).refresh()

    assert exc_info.value.attempts == 4
    assert exc_info.value.__cause__ is error
    assert len(transport.calls) == 4
    assert len(sleep.delays) == 3
    assert len(registry) == 0


def test_backoff_from_config_uses_discovery_settings() -> None:
    config = CalypshomeConfig(
        url="http://box.local",
        discovery_max_attempts=3,
        discovery_initial_delay=2.0,
        discovery_min_delay=0.25,
        discovery_max_delay=30.0,
    )

    backoff = backoff_from_config(config)

    assert backoff.max_retries == 3
    assert backoff.initial_backoff_s == 2.0
    assert backoff.min_backoff_s == 0.25
    assert backoff.max_backoff_s == 30.0
