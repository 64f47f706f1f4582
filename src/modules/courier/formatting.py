"""Field formatting applied by courier providers before a booking call."""

from __future__ import annotations

import logging
import re

from src.modules.courier.constants import (
    COUNTRY_DIALING_CODE,
    TCS_CITY_CODES,
    TCS_DEFAULT_CITY_CODE,
    TCS_NAME_PAD_CHAR,
    TCS_NAME_PART_MAX_LENGTH,
    TCS_NAME_PART_MIN_LENGTH,
)

logger = logging.getLogger(__name__)

_PHONE_SEPARATORS = re.compile(r"[\s-]")


def normalize_phone(phone: str | None) -> str:
    """Normalize a local or international number to the ``+92XXXXXXXXXX`` form."""
    if not phone:
        return ""
    cleaned = _PHONE_SEPARATORS.sub("", phone)
    if cleaned.startswith(COUNTRY_DIALING_CODE):
        return cleaned
    if cleaned.startswith(COUNTRY_DIALING_CODE[1:]):
        return f"+{cleaned}"
    if cleaned.startswith("0"):
        return f"{COUNTRY_DIALING_CODE}{cleaned[1:]}"
    return f"{COUNTRY_DIALING_CODE}{cleaned}"


def clamp_name_part(value: str, field_name: str, fallback: str | None = None) -> str:
    """Fit a name part into the TCS 3-50 character window.

    Long values are truncated. Short values are replaced by ``fallback`` when
    it is itself long enough, otherwise right-padded with ``x``.
    """
    trimmed = value.strip()
    if len(trimmed) > TCS_NAME_PART_MAX_LENGTH:
        logger.warning("%s '%s' exceeds %d characters, truncating", field_name, trimmed, TCS_NAME_PART_MAX_LENGTH)
        return trimmed[:TCS_NAME_PART_MAX_LENGTH]
    if len(trimmed) < TCS_NAME_PART_MIN_LENGTH:
        if fallback and len(fallback) >= TCS_NAME_PART_MIN_LENGTH:
            return fallback[:TCS_NAME_PART_MAX_LENGTH]
        padded = trimmed.ljust(TCS_NAME_PART_MIN_LENGTH, TCS_NAME_PAD_CHAR)
        logger.warning("%s '%s' is too short, padding to '%s'", field_name, trimmed, padded)
        return padded
    return trimmed


def split_customer_name(full_name: str) -> tuple[str, str, str]:
    """Split a full name into clamped (first, middle, last) parts.

    The last name defaults to the first name for single-word names and the
    middle name stays empty unless the name has three or more words.
    """
    parts = full_name.split()
    first = parts[0] if parts else ""
    last = parts[-1] if len(parts) > 1 else ""
    middle = " ".join(parts[1:-1]) if len(parts) > 2 else ""

    first = clamp_name_part(first, "firstname")
    last = clamp_name_part(last, "lastname", fallback=first)
    if middle:
        middle = clamp_name_part(middle, "middlename")
    return first, middle, last


def city_code(city_name: str | None) -> str:
    if not city_name:
        return TCS_DEFAULT_CITY_CODE
    return TCS_CITY_CODES.get(city_name.strip().lower(), TCS_DEFAULT_CITY_CODE)
