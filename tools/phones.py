import re
from typing import Optional


CANONICAL_PHONE_DIGITS = 10

_NON_DIGITS = re.compile(r"\D")


def canonical_phone(raw: Optional[str]) -> str:
    """
    Last 10 digits of a phone number after dropping every non-digit.

    "+91 98765 43210", "0091-9876543210" and "9876543210" all become
    "9876543210". Shorter numbers are returned as-is (never padded).
    """
    digits = _NON_DIGITS.sub("", str(raw or ""))
    return digits[-CANONICAL_PHONE_DIGITS:]


def phones_match(a: Optional[str], b: Optional[str]) -> bool:
    ca = canonical_phone(a)
    cb = canonical_phone(b)
    # short forms only ever equal an equally short form; empty never matches
    if not ca or not cb:
        return False
    return ca == cb


def mask_phone(raw: Optional[str]) -> Optional[str]:
    digits = _NON_DIGITS.sub("", str(raw or ""))
    if not digits:
        return None
    return "•" * max(len(digits[-CANONICAL_PHONE_DIGITS:]) - 4, 0) + digits[-4:]
