"""Domain rules for fldr records — pure Python, no framework imports.

A fldr is kept as a JSON object (``dict``) throughout the sync engine so the
payload stays opaque to storage and transport. This module only knows the
handful of fields the engine has business rules about.
"""

from enum import Enum
from typing import Any

# A fldr record as it travels through cache, queue and transport
RecordData = dict[str, Any]


class FldrStatus(str, Enum):
    """Lifecycle states of a fldr."""

    INCOMPLETE = "incomplete"
    READY = "ready"
    ACTIVE = "active"
    COMPLETE = "complete"


# Optional module fields that are coerced to an explicit None when absent.
OPTIONAL_FIELDS: tuple[str, ...] = (
    "date_end",
    "location",
    "flight_info",
    "hotel_info",
    "venue_info",
    "rental_car_info",
    "job_info",
    "checklist",
    "people",
    "photos",
    "products",
    "wrap_up",
)

# Fields that must hold a value of their own "empty" kind when absent.
DEFAULTED_FIELDS: dict[str, Any] = {
    "notes": "",
    "polished_messages": [],
    "attending": False,
    "status": FldrStatus.INCOMPLETE.value,
}

_LODGING_KEYS = ("name", "address")
_VENUE_KEYS = ("name", "address")
_JOB_KEYS = ("client_name", "item")
_FLIGHT_KEYS = ("flight_number", "departure_code", "arrival_code", "departure_airport")


def _has_any(section: Any, keys: tuple[str, ...]) -> bool:
    return isinstance(section, dict) and any(section.get(k) for k in keys)


def has_key_info(record: RecordData) -> bool:
    """True when the record carries enough detail to be considered ready.

    Any one of: lodging name/address, venue name/address, job client/item,
    or a flight segment with a number or airport.
    """
    if _has_any(record.get("hotel_info"), _LODGING_KEYS):
        return True
    if _has_any(record.get("venue_info"), _VENUE_KEYS):
        return True
    if _has_any(record.get("job_info"), _JOB_KEYS):
        return True
    flights = record.get("flight_info")
    if isinstance(flights, list):
        return any(_has_any(seg, _FLIGHT_KEYS) for seg in flights)
    return False


def promoted_status(record: RecordData) -> FldrStatus | None:
    """Return the status the record should move to, or None to leave it alone.

    Only an ``incomplete`` record is ever promoted, and only to ``ready``.
    """
    if record.get("status") != FldrStatus.INCOMPLETE.value:
        return None
    if has_key_info(record):
        return FldrStatus.READY
    return None
