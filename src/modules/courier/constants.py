"""Courier gateway constants: manual-dispatch types, TCS field bounds, city codes."""

from __future__ import annotations

from src.models.enums import CourierType

# Courier types that have no booking API; tracking data is entered by an operator
MANUAL_DISPATCH_TYPES: set[CourierType] = {
    CourierType.TCS_OVERLAND,
    CourierType.SELF_DELIVERY,
}

COUNTRY_DIALING_CODE = "+92"

# TCS consignee name parts must be 3-50 characters
TCS_NAME_PART_MIN_LENGTH = 3
TCS_NAME_PART_MAX_LENGTH = 50
TCS_NAME_PAD_CHAR = "x"

# Seconds before the cached token's expiry at which it is treated as expired
TCS_TOKEN_EXPIRY_SKEW_SECONDS = 60

TCS_DEFAULT_CITY_CODE = "KHI"
TCS_CITY_CODES: dict[str, str] = {
    "karachi": "KHI",
    "lahore": "LHE",
    "islamabad": "ISB",
    "rawalpindi": "RWP",
    "faisalabad": "LYP",
    "multan": "MUX",
    "peshawar": "PEW",
    "quetta": "UET",
    "sialkot": "SKT",
    "gujranwala": "GRW",
    "hyderabad": "HDD",
    "sukkur": "SKZ",
}

TCS_DEFAULT_WEIGHT_KG = 0.5
TCS_DEFAULT_DIMENSION_CM = 10
TCS_SHIPMENT_DATE_FORMAT = "%d/%m/%Y, %H:%M:%S"

LEOPARDS_SUCCESS_STATUS = "success"
DEFAULT_CANCEL_REASON = "Cancelled by customer"
