"""
memstat.logging
AUTHOR: carter-vin

Structured JSON event logging for ops ingestion

Contract:
- One JSON object per line to stdout
- Stable event vocabulary (allowlist)
- UTC timestamps only
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

# Event types
VALID_EVENT_TYPES = {
    "server_start",
    "stats_request",
    "collector_failed",
    "serialize_failed",
    "response_write_failed",
    "server_shutdown",
}


def _truncate_message(value: str, *, limit: int = 200) -> str:
    """
    Cap message length to keep events compact
    """
    if len(value) <= limit:
        return value
    return value[:limit] + f"...[truncated {len(value) - limit} chars]"


# Time: current in UTC ISO 8601
def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def emit_event(event_type: str, *, service_version: str, **fields: Any) -> None:
    """
    Emit structured event line to stdout

    Rules:
    - event_type in VALID_EVENT_TYPES
    - event_type, service_version, utc_now always present
    - sort_keys + compact separators for format
    """
    if event_type not in VALID_EVENT_TYPES:
        raise ValueError(f"invalid event_type: {event_type}")

    if "message" in fields and isinstance(fields["message"], str):
        fields["message"] = _truncate_message(fields["message"])

    payload: dict[str, Any] = {
        "event_type": event_type,
        "utc_now": utc_now_iso(),
        "service_version": service_version,
        **fields,
    }

    print(
        json.dumps(
            payload,
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
        ),
        flush=True,
    )
