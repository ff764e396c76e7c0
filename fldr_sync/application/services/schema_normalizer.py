"""Schema normalizer — upgrades stored or received fldrs to the current shape.

Pure function: ``normalize(raw) -> (record, changed)``. It never mutates its
input and running it on its own output is a no-op (``changed`` is False).

Current shape rules:
    - optional module fields are always present, ``None`` when empty
    - ``notes`` is a string, ``polished_messages`` a list, ``attending`` a bool
    - ``status`` is one of the FldrStatus values
    - ``flight_info`` is ``None`` or a list of segments, each with an ``id``

Recognized legacy shape:
    - ``flight_info`` holding a single segment object (pre multi-leg)
"""

import copy
from collections.abc import Mapping
from typing import Any
from uuid import uuid4

from fldr_sync.domain.entities import (
    DEFAULTED_FIELDS,
    OPTIONAL_FIELDS,
    FldrStatus,
    RecordData,
)
from fldr_sync.domain.exceptions import RecordShapeError

_VALID_STATUSES = frozenset(s.value for s in FldrStatus)


def normalize(raw: Any) -> tuple[RecordData, bool]:
    """Return the record in its current shape and whether anything changed."""
    if not isinstance(raw, Mapping):
        raise RecordShapeError(f"expected an object, got {type(raw).__name__}")

    record_id = raw.get("id")
    if not isinstance(record_id, str) or not record_id:
        raise RecordShapeError("missing or empty 'id'")

    record: RecordData = copy.deepcopy(dict(raw))
    changed = False

    for name in OPTIONAL_FIELDS:
        if name not in record:
            record[name] = None
            changed = True

    for name, default in DEFAULTED_FIELDS.items():
        if record.get(name) is None:
            record[name] = copy.deepcopy(default)
            changed = True

    status = record["status"]
    if isinstance(status, FldrStatus):
        record["status"] = status.value
        changed = True
    elif status not in _VALID_STATUSES:
        raise RecordShapeError(f"unknown status {status!r}", record_id)

    flights, flights_changed = _normalize_flights(record["flight_info"], record_id)
    if flights_changed:
        record["flight_info"] = flights
        changed = True

    return record, changed


def _normalize_flights(value: Any, record_id: str) -> tuple[list[dict] | None, bool]:
    if value is None:
        return None, False

    changed = False
    if isinstance(value, Mapping):
        # Legacy: one segment object → one-element list
        segments: list[Any] = [dict(value)]
        changed = True
    elif isinstance(value, list):
        segments = value
    else:
        raise RecordShapeError(
            f"'flight_info' must be null, an object or a list, got {type(value).__name__}",
            record_id,
        )

    upgraded: list[dict] = []
    for index, segment in enumerate(segments):
        if not isinstance(segment, Mapping):
            raise RecordShapeError(
                f"flight segment {index} is {type(segment).__name__}, not an object",
                record_id,
            )
        if not segment.get("id"):
            segment = {**segment, "id": str(uuid4())}
            changed = True
        upgraded.append(dict(segment))

    return upgraded, changed


def normalize_many(raws: list[Any]) -> list[RecordData]:
    """Normalize a collection, dropping the ``changed`` flags."""
    return [normalize(raw)[0] for raw in raws]
