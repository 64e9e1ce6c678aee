"""
Restaurant documents and their public representation.

A stored restaurant looks like::

    {
        "_id": ObjectId,
        "name": str, "borough": str, "cuisine": str,
        "address": {"building": str, "street": str, "zipcode": str,
                    "coord": [str, str]},
        "grades": [{"date": datetime, "grade": str, "score": int}, ...],
    }

``address_string`` and ``most_recent_grade`` are computed on every read and
never written back.
"""

from datetime import datetime, timezone
from typing import Any, Mapping, Optional

REQUIRED_FIELDS = ("name", "borough", "cuisine")
UPDATABLE_FIELDS = ("name", "borough", "cuisine", "address")
QUERYABLE_FIELDS = ("cuisine", "borough")


_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def to_datetime(value: Any) -> Optional[datetime]:
    """
    Read a grade date as an aware UTC datetime.

    Accepts datetimes (naive ones are UTC, as pymongo returns them),
    ISO-8601 strings and epoch milliseconds. Anything else is None.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    if not isinstance(value, datetime):
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def _grade_list(value: Any) -> list:
    if not isinstance(value, list):
        return []
    return [g for g in value if isinstance(g, Mapping)]


def _stored_grade(entry: Mapping[str, Any]) -> dict:
    grade = dict(entry)
    if "date" in grade:
        date = to_datetime(grade["date"])
        # unreadable dates are kept as sent and sort as undated
        if date is not None:
            grade["date"] = date
    return grade


def new_restaurant(body: Mapping[str, Any]) -> dict:
    """Build the document to insert from an already-checked request body."""
    return {
        "name": body["name"],
        "borough": body["borough"],
        "cuisine": body["cuisine"],
        "grades": [_stored_grade(g) for g in _grade_list(body.get("grades"))],
        "address": body.get("address") or {},
    }


def address_string(doc: Mapping[str, Any]) -> str:
    address = doc.get("address")
    if not isinstance(address, Mapping):
        address = {}
    building = address.get("building") or ""
    street = address.get("street") or ""
    return f"{building} {street}".strip()


def _sort_key(entry: Mapping[str, Any]):
    date = to_datetime(entry.get("date"))
    return (date is not None, date or _EPOCH)


def most_recent_grade(doc: Mapping[str, Any]) -> Optional[str]:
    """
    Return the ``grade`` of the entry with the latest date, or None.

    Grades are re-sorted on every call. The sort is stable, so among entries
    sharing the latest date the one stored first wins; undated entries sort
    after every dated one.
    """
    entries = _grade_list(doc.get("grades"))
    if not entries:
        return None
    latest = sorted(entries, key=_sort_key, reverse=True)[0]
    return _text(latest.get("grade"))


def _text(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def api_repr(doc: Mapping[str, Any]) -> dict:
    """Public representation of a stored restaurant."""
    out = {
        "id": str(doc["_id"]),
        "name": _text(doc.get("name")),
        "cuisine": _text(doc.get("cuisine")),
        "borough": _text(doc.get("borough")),
        "address": address_string(doc),
    }
    grade = most_recent_grade(doc)
    if grade is not None:
        out["grade"] = grade
    return out
