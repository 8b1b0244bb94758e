"""Error types raised by adapters and handled by the core."""

from __future__ import annotations


class DoppelError(Exception):
    """Base class for expected runtime failures."""


class TransportError(DoppelError):
    """Send, edit, typing or history call to the messaging bridge failed."""


class EditWindowExpired(TransportError):
    """The transport refused an edit because the message is too old."""


class OracleError(DoppelError):
    """Completion or correction call failed or returned unusable output."""
