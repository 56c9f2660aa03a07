"""Best-effort typing of response bodies by content type."""

import json
from typing import Any

BINARY_CONTENT_TYPES = (
    "image/",
    "audio/",
    "video/",
    "application/octet-stream",
    "application/pdf",
    "application/zip",
)


def is_likely_binary(data: bytes) -> bool:
    """More than 10% non-whitespace control bytes in the first KB."""
    sample = data[:1024]
    if not sample:
        return False
    control = sum(1 for byte in sample if byte < 32 and byte not in (9, 10, 13))
    return control / len(sample) > 0.10


def _try_json(text: str) -> tuple[bool, Any]:
    try:
        return True, json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return False, None


def parse_response_body(status_code: int, content_type: str, body: bytes) -> Any:
    """
    Parse a raw body into the value stored as a chain response's ``data``.

    - 204/304 yield a marker string
    - JSON content types (or text that looks like JSON) yield parsed JSON
    - binary payloads yield a size marker
    - anything else yields the decoded text
    """
    if status_code == 204:
        return "[204 No Content]"
    if status_code == 304:
        return "[304 Not Modified]"
    if not body:
        return ""

    content_type = (content_type or "").lower()
    text = body.decode("utf-8", errors="replace")
    stripped = text.strip()

    if "json" in content_type:
        parsed, value = _try_json(stripped)
        if parsed:
            return value
        return text

    if stripped.startswith(("{", "[")):
        parsed, value = _try_json(stripped)
        if parsed:
            return value

    if is_likely_binary(body) or any(marker in content_type for marker in BINARY_CONTENT_TYPES):
        return f"[Binary data: {len(body)} bytes]"

    return text
