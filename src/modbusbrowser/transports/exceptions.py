"""Errors raised by protocol clients.

Every client error is a :class:`~modbusbrowser.exceptions.ModbusBrowserError`.
The polling engine turns them into a server's ``ConnectionStatus.error``
message, so none of them escapes a poller task.
"""

from __future__ import annotations

from modbusbrowser.exceptions import ModbusBrowserError


class TransportError(ModbusBrowserError):
    """A Modbus device could not be reached or answered badly."""

    pass


class TransportConnectionError(TransportError):
    """No TCP session to the device (refused, unreachable, or not connected yet)."""

    pass


class TransportTimeoutError(TransportError):
    """The device did not answer a request within the client timeout."""

    pass


class TransportReadError(TransportError):
    """A register read failed or returned an exception response."""

    pass


__all__ = [
    "TransportConnectionError",
    "TransportError",
    "TransportReadError",
    "TransportTimeoutError",
]
