"""Phone-number identity normalization and matching.

Contacts are stored in whatever format the owner typed ("+33 6 12 34 56 78",
"612345678") while the transport reports ids like "33612345678@c.us". We
compare digit strings and tolerate a missing 2-digit country code on either
side. A national trunk prefix ("0612345678") is not stripped and does not
match.
"""

from __future__ import annotations

import re

_NON_DIGITS = re.compile(r"\D")
_COUNTRY_CODE_LEN = 2


def normalize(raw: str) -> str:
    """Return the digits of an identifier, without transport suffix or device part."""

    if not raw:
        return ""
    value = str(raw).split("@", 1)[0]
    # Multi-device ids look like 33612345678:12@s.whatsapp.net
    value = value.split(":", 1)[0]
    return _NON_DIGITS.sub("", value)


def matches(a: str, b: str) -> bool:
    """Suffix-aware comparison of two identifiers."""

    left = normalize(a)
    right = normalize(b)
    if not left or not right:
        return False
    if left == right:
        return True
    if len(left) <= _COUNTRY_CODE_LEN or len(right) <= _COUNTRY_CODE_LEN:
        return False
    return left[_COUNTRY_CODE_LEN:] == right or right[_COUNTRY_CODE_LEN:] == left


def matches_any(raw: str, candidates) -> bool:
    return any(matches(raw, candidate) for candidate in candidates)
