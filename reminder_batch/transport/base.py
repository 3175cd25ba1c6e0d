"""
MessageTransport -- the channel the dispatcher sends through.

Connection lifecycle (pairing, reconnection, session storage) belongs to the
gateway process, not to this package; a transport only reports whether it
can send right now and sends one text.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class MessageTransport(Protocol):
    """Protocol for messaging transports.

    ``sender`` is the digits of the account messages go out from, or None
    while unknown.

    ``send`` returns the channel's message id ("" when it has none) and
    raises:
        InvalidContactError: the contact cannot be addressed.
        DeliveryError: this message failed; others may still succeed.
        TransportUnavailableError: the channel is down; stop the run.
    """

    @property
    def sender(self) -> str | None: ...

    def is_available(self) -> bool: ...

    def send(self, contact: str, text: str) -> str: ...
