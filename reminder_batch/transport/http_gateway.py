"""
HTTP client for the WhatsApp gateway.

The gateway exposes:
    GET  /status  -> {"connected": bool, "user": "<jid>"}
    POST /send    {"to": "<jid>", "message": "<text>"} -> {"id": "<message id>"}

An optional bearer token is sent on every request.  A 503 from /send, or a
connection failure, means the gateway lost its WhatsApp session and the run
should stop; any other failure concerns that single message.
"""

from __future__ import annotations

import httpx

from reminder_batch.domain.contact import jid_to_phone, to_jid
from reminder_kernel.config import TransportSettings
from reminder_kernel.exceptions import (
    DeliveryError,
    InvalidContactError,
    TransportUnavailableError,
)
from reminder_kernel.logging_config import get_logger

logger = get_logger("transport.http_gateway")


class HttpGatewayTransport:
    """MessageTransport backed by the gateway's HTTP API."""

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = 15.0,
        client: httpx.Client | None = None,
    ):
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._owns_client = client is None
        self._client = client or httpx.Client(
            base_url=base_url, timeout=timeout, headers=headers,
        )
        if client is not None:
            self._client.headers.update(headers)
        self._sender: str | None = None

    @classmethod
    def from_settings(cls, settings: TransportSettings) -> HttpGatewayTransport:
        return cls(
            base_url=settings.base_url,
            token=settings.token,
            timeout=settings.timeout_seconds,
        )

    @property
    def sender(self) -> str | None:
        """Phone of the connected account, learned from the last /status."""
        return self._sender

    def is_available(self) -> bool:
        try:
            response = self._client.get("/status")
            response.raise_for_status()
            status = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("gateway_status_failed", extra={"error": str(exc)})
            return False
        connected = bool(status.get("connected"))
        if connected:
            self._sender = jid_to_phone(status.get("user")) or self._sender
        return connected

    def send(self, contact: str, text: str) -> str:
        jid = to_jid(contact)
        if jid is None:
            raise InvalidContactError(contact)

        try:
            response = self._client.post(
                "/send", json={"to": jid, "message": text.strip()},
            )
        except httpx.TimeoutException as exc:
            # The gateway may still deliver it; the lock stays held.
            raise DeliveryError(contact, f"timeout: {exc}") from exc
        except httpx.TransportError as exc:
            raise TransportUnavailableError(str(exc)) from exc

        if response.status_code == httpx.codes.SERVICE_UNAVAILABLE:
            raise TransportUnavailableError(response.text or "gateway not connected")
        if response.is_error:
            raise DeliveryError(
                contact,
                response.text or response.reason_phrase,
                status_code=response.status_code,
            )

        try:
            return str(response.json().get("id") or "")
        except ValueError:
            return ""

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> HttpGatewayTransport:
        return self

    def __exit__(self, *exc) -> None:
        self.close()
