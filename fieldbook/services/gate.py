"""
Abuse gate consulted before a reservation is created.

The booking service only sees the ``ReservationGate`` protocol.  The
production implementation checks the blacklist table; phone numbers
and emails are normalized the same way on insert and on lookup.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Protocol

from fieldbook import db

logger = logging.getLogger(__name__)

_NON_PHONE_CHARS = re.compile(r"[^\d+]")
_COUNTRY_PREFIXES = ("+216", "216")
LOCAL_PHONE_DIGITS = 8


@dataclass(frozen=True)
class GateDecision:
    allowed: bool
    reason: str | None = None


ALLOW = GateDecision(allowed=True)


class ReservationGate(Protocol):
    async def may_reserve(
        self, phone: str, email: str, device_fingerprint: str | None
    ) -> GateDecision: ...


def normalize_phone(phone: str) -> str:
    """Strip punctuation and the +216 prefix, keep the 8-digit local number."""
    if not phone:
        return ""
    clean = _NON_PHONE_CHARS.sub("", re.sub(r"\s+", "", phone))
    for prefix in _COUNTRY_PREFIXES:
        if clean.startswith(prefix):
            clean = clean[len(prefix):]
            break
    return clean[:LOCAL_PHONE_DIGITS]


def normalize_email(email: str) -> str:
    return email.strip().lower()


def normalize(kind: str, value: str) -> str:
    return normalize_phone(value) if kind == "phone" else normalize_email(value)


class AllowAllGate:
    async def may_reserve(
        self, phone: str, email: str, device_fingerprint: str | None
    ) -> GateDecision:
        return ALLOW


class BlacklistGate:
    """Refuses customers whose phone or email is on the blacklist."""

    async def may_reserve(
        self, phone: str, email: str, device_fingerprint: str | None
    ) -> GateDecision:
        if await db.is_blacklisted("phone", normalize_phone(phone)):
            logger.info("Blocked reservation attempt from blacklisted phone")
            return GateDecision(False, "This phone number is not allowed to book")
        if await db.is_blacklisted("email", normalize_email(email)):
            logger.info("Blocked reservation attempt from blacklisted email")
            return GateDecision(False, "This email address is not allowed to book")
        return ALLOW
