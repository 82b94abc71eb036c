"""Client configuration for pycalypshome."""

from __future__ import annotations

import dataclasses
import os
from typing import Any
from urllib.parse import urlsplit

from pycalypshome.exceptions import CalypshomeConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class CalypshomeConfig:
    """Client configuration.

    Parameters
    ----------
    url : str
        Address of the box on the local network (e.g. ``"http://192.168.1.20"``).
        Any path is ignored; only scheme, host and port are used.
    request_timeout : float
        Total timeout in seconds of a single HTTP request.  This also
        bounds how long one discovery attempt can take.
    discovery_max_attempts : int
        Number of inventory fetch attempts before discovery gives up.
    discovery_initial_delay : float
        Base delay in seconds of the discovery backoff.
    discovery_min_delay : float
        Lower bound in seconds of any discovery retry delay.
    discovery_max_delay : float
        Upper bound in seconds of any discovery retry delay.
    event_channel_enabled : bool
        Whether :meth:`CalypshomeClient.start_live_channel` may run at all.
    heartbeat_interval : float
        Seconds between two uptime frames on the event channel.
    reconnect_initial_delay : float
        Base delay in seconds of the event-channel reconnect backoff.
    reconnect_max_delay : float
        Upper bound in seconds of any reconnect delay.
    motion_timeout : float
        Seconds after which a moving shutter is assumed stopped when the
        box never reports it.
    """

    url: str
    request_timeout: float = 30.0
    discovery_max_attempts: int = 10
    discovery_initial_delay: float = 1.0
    discovery_min_delay: float = 0.5
    discovery_max_delay: float = 3 * 60.0
    event_channel_enabled: bool = True
    heartbeat_interval: float = 20.0
    reconnect_initial_delay: float = 1.0
    reconnect_max_delay: float = 60.0
    motion_timeout: float = 11.0

    def __post_init__(self) -> None:
        parts = urlsplit(self.url.strip()) if isinstance(self.url, str) else None
        if parts is None or parts.scheme not in ("http", "https") or not parts.hostname:
            raise CalypshomeConfigError(f"url must be an http(s) URL with a host, got {self.url!r}")
        try:
            parts.port  # noqa: B018
        except ValueError as exc:
            raise CalypshomeConfigError(f"url has an invalid port: {self.url!r}") from exc

        if self.discovery_max_attempts < 1:
            raise CalypshomeConfigError("discovery_max_attempts must be at least 1")
        for name in (
            "request_timeout",
            "heartbeat_interval",
            "motion_timeout",
            "reconnect_initial_delay",
            "reconnect_max_delay",
            "discovery_max_delay",
        ):
            if getattr(self, name) <= 0:
                raise CalypshomeConfigError(f"{name} must be positive")
        for name in ("discovery_initial_delay", "discovery_min_delay"):
            if getattr(self, name) < 0:
                raise CalypshomeConfigError(f"{name} must not be negative")

    @property
    def base_url(self) -> str:
        """Scheme and authority of the box, without any path."""
        parts = urlsplit(self.url.strip())
        return f"{parts.scheme}://{parts.netloc}"

    @property
    def event_channel_url(self) -> str:
        """WebSocket URL of the live event channel on the same host."""
        parts = urlsplit(self.url.strip())
        scheme = "wss" if parts.scheme == "https" else "ws"
        return f"{scheme}://{parts.netloc}/"

    @classmethod
    def from_env(cls, **overrides: Any) -> CalypshomeConfig:
        """Create configuration from environment variables.

        Reads ``CALYPSHOME_URL`` and optional ``CALYPSHOME_*`` tuning
        variables. Explicit keyword arguments override environment values.

        Raises
        ------
        CalypshomeConfigError
            If no URL is available or a numeric variable cannot be parsed.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        url = env.get("CALYPSHOME_URL")
        if url is not None:
            config_kwargs["url"] = url

        _ENV_NUMERIC_MAP: dict[str, tuple[str, type]] = {
            "CALYPSHOME_REQUEST_TIMEOUT": ("request_timeout", float),
            "CALYPSHOME_DISCOVERY_MAX_ATTEMPTS": ("discovery_max_attempts", int),
            "CALYPSHOME_HEARTBEAT_INTERVAL": ("heartbeat_interval", float),
            "CALYPSHOME_MOTION_TIMEOUT": ("motion_timeout", float),
        }
        for env_key, (field_name, cast) in _ENV_NUMERIC_MAP.items():
            val = env.get(env_key)
            if val is None or field_name in overrides:
                continue
            try:
                config_kwargs[field_name] = cast(val)
            except ValueError as exc:
                raise CalypshomeConfigError(f"{env_key} is not a valid number: {val!r}") from exc

        if "event_channel_enabled" not in overrides:
            config_kwargs["event_channel_enabled"] = _env_bool(env.get("CALYPSHOME_EVENT_CHANNEL_ENABLED"), True)

        config_kwargs.update(overrides)
        if "url" not in config_kwargs:
            raise CalypshomeConfigError("CALYPSHOME_URL is not set")

        return cls(**config_kwargs)
