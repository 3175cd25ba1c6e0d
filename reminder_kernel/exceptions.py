"""
Typed Exception Hierarchy for the reminder engine.

Every error has a typed class (catch by type, not by message), a class-level
``code`` attribute (machine-readable, log-safe) and structured attributes
instead of information buried in the message string.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    ReminderError (base)
    |
    +-- ConfigurationError
    |
    +-- StorageError
    |
    +-- MessageCompositionError
    |
    +-- TransportError
    |   +-- TransportUnavailableError
    |   +-- DeliveryError
    |   +-- InvalidContactError
    |
    +-- ScheduleError
        +-- InvalidCronExpressionError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Configuration   | CONFIGURATION_ERROR         | Missing / malformed setting
----------------|-----------------------------|-----------------------------------------
Storage         | STORAGE_ERROR               | Data store unreachable or query failed
----------------|-----------------------------|-----------------------------------------
Messages        | MESSAGE_COMPOSITION_FAILED  | No message can be built for a group
----------------|-----------------------------|-----------------------------------------
Transport       | TRANSPORT_UNAVAILABLE       | Messaging channel not connected
                | DELIVERY_FAILED             | Channel rejected / failed one message
                | INVALID_CONTACT             | Phone number cannot be addressed
----------------|-----------------------------|-----------------------------------------
Schedule        | INVALID_CRON_EXPRESSION     | Cron trigger expression malformed

===============================================================================
HANDLING PATTERNS
===============================================================================

1. The dispatcher isolates DeliveryError, InvalidContactError and
   MessageCompositionError per recipient group; they never abort a batch.

2. TransportUnavailableError and StorageError abort the whole run.  Nothing
   partial is committed because locks are only taken per group right before
   a send.

3. ConfigurationError is raised at startup only; a disabled tenant or a
   closed operating-hours window is NOT an error (the run is skipped).
"""


class ReminderError(Exception):
    """
    Base exception for all reminder engine errors.

    All subclasses must have a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "REMINDER_ERROR"


# Configuration


class ConfigurationError(ReminderError):
    """A setting is missing or cannot be parsed."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, setting: str, reason: str):
        self.setting = setting
        self.reason = reason
        super().__init__(f"Invalid configuration for {setting}: {reason}")


# Storage


class StorageError(ReminderError):
    """The data store could not complete an operation."""

    code: str = "STORAGE_ERROR"

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"Storage operation {operation} failed: {reason}")


# Messages


class MessageCompositionError(ReminderError):
    """No message can be built for a recipient group."""

    code: str = "MESSAGE_COMPOSITION_FAILED"

    def __init__(self, contact: str, reason: str):
        self.contact = contact
        self.reason = reason
        super().__init__(f"Cannot compose message for {contact}: {reason}")


# Transport


class TransportError(ReminderError):
    """Base exception for messaging transport errors."""

    code: str = "TRANSPORT_ERROR"


class TransportUnavailableError(TransportError):
    """The messaging channel is not connected."""

    code: str = "TRANSPORT_UNAVAILABLE"

    def __init__(self, reason: str = "transport not connected"):
        self.reason = reason
        super().__init__(f"Transport unavailable: {reason}")


class DeliveryError(TransportError):
    """The channel failed to deliver a single message."""

    code: str = "DELIVERY_FAILED"

    def __init__(self, contact: str, reason: str, status_code: int | None = None):
        self.contact = contact
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"Delivery to {contact} failed: {reason}")


class InvalidContactError(TransportError):
    """A phone number or JID cannot be addressed."""

    code: str = "INVALID_CONTACT"

    def __init__(self, contact: str | None):
        self.contact = contact
        super().__init__(f"Invalid contact: {contact!r}")


# Schedule


class ScheduleError(ReminderError):
    """Base exception for trigger schedule errors."""

    code: str = "SCHEDULE_ERROR"


class InvalidCronExpressionError(ScheduleError):
    """Cron expression cannot be parsed."""

    code: str = "INVALID_CRON_EXPRESSION"

    def __init__(self, expression: str, reason: str):
        self.expression = expression
        self.reason = reason
        super().__init__(f"Invalid cron expression '{expression}': {reason}")
