"""Validation helpers for config editing."""

from __future__ import annotations

import re
from dataclasses import dataclass

from core.identity import normalize

_CONTACT_ID = re.compile(r"^[a-z0-9][a-z0-9_-]*$")


@dataclass
class PhoneInfo:
    raw: str
    digits: str | None
    error: str | None = None


def parse_phone_number(raw_value: str) -> PhoneInfo:
    raw_value = raw_value.strip()
    if not raw_value:
        return PhoneInfo(raw_value, None, "phone number is required")
    if re.search(r"[^\d\s+().-]", raw_value):
        return PhoneInfo(raw_value, None, "phone number has invalid characters")
    digits = normalize(raw_value)
    if len(digits) < 6:
        return PhoneInfo(raw_value, None, "phone number is too short")
    if len(digits) > 15:
        return PhoneInfo(raw_value, None, "phone number is too long")
    return PhoneInfo(raw_value, digits)


def parse_contact_id(raw_value: str, existing: set[str] | None = None) -> tuple[str | None, str | None]:
    """Return (contact_id, error)."""

    value = raw_value.strip().lower()
    if not value:
        return None, "id is required"
    if not _CONTACT_ID.match(value):
        return None, "id must be lowercase letters, digits, _ or -"
    if existing and value in existing:
        return None, f"contact {value} already exists"
    return value, None


def parse_non_negative_int(raw_value: str) -> tuple[int | None, str | None]:
    stripped = raw_value.strip()
    if not stripped:
        return None, None
    if not stripped.isdigit():
        return None, "Enter a non-negative integer"
    return int(stripped), None
