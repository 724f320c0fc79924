"""Best-effort field extraction from loosely-shaped webhook events.

Vapi has shipped several payload shapes over time (tool calls under
``message.toolCallList``, ``message.toolCalls`` or wrapped in
``message.toolWithToolCallList``; structured data under the analysis block or
at the top level). Each field below is an ordered tuple of access paths. The
first path that resolves to a usable value wins; otherwise the caller gets an
empty default. Nothing in this module raises.
"""

import json

CALL_ID_PATHS = (
    ("message", "call", "id"),
    ("call", "id"),
    ("message", "callId"),
    ("callId",),
    ("message", "call_id"),
    ("call_id",),
)

TOOL_CALL_PATHS = (
    ("message", "toolCallList"),
    ("message", "toolCalls"),
    ("toolCallList",),
    ("toolCalls",),
)

WRAPPED_TOOL_CALL_PATHS = (
    ("message", "toolWithToolCallList"),
    ("toolWithToolCallList",),
)

STRUCTURED_DATA_PATHS = (
    ("message", "analysis", "structuredData"),
    ("analysis", "structuredData"),
    ("message", "structuredData"),
    ("structuredData",),
)

EVENT_TYPE_PATHS = (
    ("message", "type"),
    ("type",),
)

CALL_SUMMARY_PATHS = (
    ("message", "analysis", "summary"),
    ("analysis", "summary"),
    ("message", "summary"),
)

CALLER_NUMBER_PATHS = (
    ("message", "call", "customer", "number"),
    ("message", "customer", "number"),
    ("call", "customer", "number"),
    ("customer", "number"),
)


def _get_path(obj, path):
    """Walk nested dicts; None if any hop is missing or not a dict."""
    current = obj
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
        if current is None:
            return None
    return current


def _usable(value, kind):
    if value is None or not isinstance(value, kind):
        return False
    if isinstance(value, (str, list, dict)) and not value:
        return False
    return True


def first_of(obj, paths, kind, default):
    """Return the first value along ``paths`` that is a non-empty ``kind``."""
    for path in paths:
        value = _get_path(obj, path)
        if kind is str and isinstance(value, (int, float)) and not isinstance(value, bool):
            value = str(value)
        if _usable(value, kind):
            return value
    return default


def extract_call_id(event):
    return first_of(event, CALL_ID_PATHS, str, "").strip()


def extract_event_type(event):
    return first_of(event, EVENT_TYPE_PATHS, str, "").strip()


def extract_caller_number(event):
    return first_of(event, CALLER_NUMBER_PATHS, str, "").strip()


def extract_call_summary(event):
    return first_of(event, CALL_SUMMARY_PATHS, str, "").strip()


def extract_structured_data(event):
    return dict(first_of(event, STRUCTURED_DATA_PATHS, dict, {}))


def _parse_arguments(raw):
    """Tool arguments arrive as a dict or a JSON-encoded string."""
    if isinstance(raw, dict):
        return dict(raw)
    if isinstance(raw, str) and raw.strip():
        try:
            parsed = json.loads(raw)
        except ValueError:
            return {}
        return parsed if isinstance(parsed, dict) else {}
    return {}


def _normalize_tool_call(item):
    if not isinstance(item, dict):
        return None
    function = item.get("function") if isinstance(item.get("function"), dict) else {}
    name = function.get("name") or item.get("name") or ""
    if not isinstance(name, str) or not name:
        return None
    raw_args = function.get("arguments")
    if raw_args is None:
        raw_args = item.get("arguments", item.get("parameters"))
    tool_call_id = item.get("id") or item.get("toolCallId") or ""
    return {
        "id": str(tool_call_id),
        "name": name,
        "arguments": _parse_arguments(raw_args),
    }


def _raw_tool_calls(event):
    raw = first_of(event, TOOL_CALL_PATHS, list, [])
    if raw:
        return raw
    wrapped = first_of(event, WRAPPED_TOOL_CALL_PATHS, list, [])
    return [w.get("toolCall") for w in wrapped if isinstance(w, dict)]


def extract_tool_calls(event):
    """Return ``[{id, name, arguments}]``; items without a name are dropped."""
    calls = []
    for item in _raw_tool_calls(event):
        call = _normalize_tool_call(item)
        if call:
            calls.append(call)
    return calls


def extract_media(form):
    """Collect Twilio ``MediaUrl{n}``/``MediaContentType{n}`` pairs."""
    if not isinstance(form, dict):
        return []
    try:
        count = int(form.get("NumMedia") or 0)
    except (TypeError, ValueError):
        count = 0
    media = []
    for i in range(max(count, 0)):
        url = form.get(f"MediaUrl{i}") or ""
        if not url:
            continue
        media.append({
            "url": url,
            "content_type": form.get(f"MediaContentType{i}") or "",
        })
    return media
