"""Phone and chat-handle normalization."""

import re
from typing import Optional

WHATSAPP_PREFIX = re.compile(r"^whatsapp:", re.IGNORECASE)


def strip_transport_prefix(handle: str) -> str:
    """'whatsapp:+919876543210' -> '+919876543210'."""
    return WHATSAPP_PREFIX.sub("", (handle or "").strip()).strip()


def normalize_phone(raw: Optional[str], country_code: str = "91") -> Optional[str]:
    """
    Normalize a phone number to E.164-ish form.

    Accepts a bare 10-digit local number, a trunk-prefixed 11-digit number,
    a number already carrying the country code, or any '+' number with at
    least 7 digits. Returns None when the input matches none of these.
    """
    if not raw:
        return None
    text = str(raw).strip()
    digits = re.sub(r"\D", "", text)

    if len(digits) == 10:
        return f"+{country_code}{digits}"
    if len(digits) == 11 and digits.startswith("0"):
        return f"+{country_code}{digits[1:]}"
    if len(digits) == 10 + len(country_code) and digits.startswith(country_code):
        return f"+{digits}"
    if text.startswith("+") and len(digits) >= 7:
        return f"+{digits}"
    return None
