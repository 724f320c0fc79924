"""Structured call data -> sheet row.

The keys of ``SHEET_COLUMNS`` must match the header row of the intake sheet
exactly; the sheet's upsert webhook matches rows on "Job ID".
"""

from datetime import datetime, timezone

import config

SHEET_COLUMNS = (
    "Job ID",
    "Created At",
    "Source",
    "Call ID",
    "Name",
    "Phone",
    "Email",
    "Address",
    "Job Type",
    "Scope",
    "Preferred Date",
    "Preferred Time",
    "Urgent",
    "Photo Link",
    "Status",
    "Notes",
)

SAME_NUMBER_PLACEHOLDER = "same number"

# Rendered into "Scope" in this order, labelled by key.
SCOPE_FIELDS = ("jobType", "location", "size", "access", "specialItems", "deadline")

DEFAULT_STATUS = "New"

_FALSY_STRINGS = {"", "false", "no", "n", "0", "none", "null"}


def _utcnow():
    return datetime.now(timezone.utc)


def _text(value):
    """Render a scalar or list as a single string; None becomes ''."""
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(_text(v) for v in value if _text(v))
    if isinstance(value, bool):
        return "Yes" if value else "No"
    return str(value).strip()


def _first_text(data, *keys):
    for key in keys:
        value = _text(data.get(key))
        if value:
            return value
    return ""


def _truthy(value):
    if isinstance(value, str):
        return value.strip().lower() not in _FALSY_STRINGS
    return bool(value)


def photo_link_for(job_id):
    return f"{config.BASE_URL}/upload?job={job_id}"


def resolve_phone(data):
    """callbackNumber, unless the caller said "same number"; then phone, then from."""
    callback = _text(data.get("callbackNumber"))
    if callback and callback.lower() != SAME_NUMBER_PLACEHOLDER:
        return callback
    return _first_text(data, "phone", "from")


def build_scope(data):
    """e.g. ``jobType: cleanup | specialItems: couch, fridge``."""
    parts = []
    for key in SCOPE_FIELDS:
        value = _text(data.get(key))
        if value:
            parts.append(f"{key}: {value}")
    return " | ".join(parts)


def is_urgent(data):
    return "Y" if (_truthy(data.get("urgent")) or _truthy(data.get("isUrgent"))) else "N"


def normalize(structured_data, job_id, source, call_id="", clock=None):
    """Build a full sheet row from whatever the caller gave us.

    Every column is always present. ``Created At`` comes from ``clock`` (a
    zero-arg callable returning an aware datetime) and is the only field
    that differs between two calls with identical input.
    """
    data = structured_data if isinstance(structured_data, dict) else {}
    now = (clock or _utcnow)()

    record = {
        "Job ID": job_id,
        "Created At": now.isoformat(),
        "Source": source or "",
        "Call ID": call_id or "",
        "Name": _first_text(data, "name", "customerName"),
        "Phone": resolve_phone(data),
        "Email": _first_text(data, "email"),
        "Address": _first_text(data, "address"),
        "Job Type": _first_text(data, "jobType"),
        "Scope": build_scope(data),
        "Preferred Date": _first_text(data, "preferredDate"),
        "Preferred Time": _first_text(data, "preferredTime"),
        "Urgent": is_urgent(data),
        "Photo Link": _first_text(data, "photoLink") or photo_link_for(job_id),
        "Status": _first_text(data, "status") or DEFAULT_STATUS,
        "Notes": _first_text(data, "notes"),
    }
    return {column: record[column] for column in SHEET_COLUMNS}


def summarize(record):
    """One-line owner notification for a normalized row."""
    urgent = " [URGENT]" if record.get("Urgent") == "Y" else ""
    who = record.get("Name") or "Unknown caller"
    phone = record.get("Phone") or "no phone"
    scope = record.get("Scope") or "no details"
    return (f"New job {record.get('Job ID')}{urgent}: {who} ({phone}) - {scope}. "
            f"Photos: {record.get('Photo Link')}")
