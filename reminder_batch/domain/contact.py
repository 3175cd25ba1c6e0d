"""
Phone number normalization for the WhatsApp gateway.

Borrower phones are stored free-form ("+54 9 381 555-1111").  The gateway
addresses users by JID (``<digits>@s.whatsapp.net``); group JIDs
(``@g.us``) are never valid reminder targets.
"""

from __future__ import annotations

import re

MIN_PHONE_DIGITS = 8
MAX_PHONE_DIGITS = 15
USER_SUFFIX = "@s.whatsapp.net"
GROUP_SUFFIX = "@g.us"

_NON_DIGIT = re.compile(r"\D")


def jid_to_phone(number_or_jid: object) -> str | None:
    """Digits of a phone number or JID, or None when not 8-15 digits long."""
    if not number_or_jid:
        return None
    value = str(number_or_jid).strip()
    # "<digits>:<device>@s.whatsapp.net" is the gateway's own account
    local_part = value.split("@", 1)[0].split(":", 1)[0]
    digits = _NON_DIGIT.sub("", local_part)
    if not MIN_PHONE_DIGITS <= len(digits) <= MAX_PHONE_DIGITS:
        return None
    return digits


def to_jid(number: object) -> str | None:
    """User JID for ``number``; None for group JIDs and unusable numbers."""
    if not number:
        return None
    value = str(number).strip()
    if value.endswith(GROUP_SUFFIX):
        return None
    digits = jid_to_phone(value)
    if digits is None:
        return None
    return f"{digits}{USER_SUFFIX}"
