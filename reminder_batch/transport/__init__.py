"""Messaging transport collaborators."""

from reminder_batch.transport.base import MessageTransport
from reminder_batch.transport.http_gateway import HttpGatewayTransport

__all__ = ["HttpGatewayTransport", "MessageTransport"]
