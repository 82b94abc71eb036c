"""Custom exception hierarchy for pycalypshome."""

from __future__ import annotations


class CalypshomeError(Exception):
    """Base exception for all pycalypshome errors."""


class CalypshomeConfigError(CalypshomeError):
    """Invalid or missing configuration."""


class CalypshomeTransportError(CalypshomeError):
    """HTTP-level failure (connection refused/reset, timeout, non-2xx)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        path: str = "",
        connection_reset: bool = False,
    ) -> None:
        self.status_code = status_code
        self.path = path
        self.connection_reset = connection_reset
        super().__init__(message)


class CalypshomeProtocolError(CalypshomeError):
    """The box sent something we cannot interpret.

    Covers malformed JSON, out-of-range levels and undecodable
    event-channel fragments.
    """

    def __init__(self, message: str, *, fragment: str | None = None) -> None:
        self.fragment = fragment
        super().__init__(message)


class CalypshomeChannelError(CalypshomeError):
    """Event-channel socket failure or unexpected close."""


class CalypshomeDiscoveryError(CalypshomeError):
    """Inventory discovery gave up after exhausting its retry budget.

    The last underlying error is available as ``__cause__``.
    """

    def __init__(self, message: str, *, attempts: int) -> None:
        self.attempts = attempts
        super().__init__(message)


class CalypshomeUnknownDeviceError(CalypshomeError):
    """A command targeted an identity that discovery never reported."""

    def __init__(self, identity: str) -> None:
        self.identity = identity
        super().__init__(f"Unknown shutter identity: {identity!r}")
