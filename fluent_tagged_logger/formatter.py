"""Encode records as forward-protocol JSON entries."""

import json
import time


def format_forward_entry(tag: str, record: dict, timestamp: float | None = None) -> bytes:
    """Serialize ``[tag, time, record]`` as compact JSON + newline, UTF-8 encoded.

    Values JSON cannot represent natively are written with str().
    """
    event_time = int(time.time() if timestamp is None else timestamp)
    entry = [tag, event_time, record]
    return (json.dumps(entry, separators=(",", ":"), default=str) + "\n").encode("utf-8")


def parse_forward_entry(line: bytes) -> tuple[str, int, dict] | None:
    """Decode one JSON forward entry. Returns None if it is malformed."""
    try:
        entry = json.loads(line)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    if not isinstance(entry, list) or len(entry) != 3:
        return None
    tag, event_time, record = entry
    if not isinstance(tag, str) or not isinstance(event_time, int) or not isinstance(record, dict):
        return None
    return tag, event_time, record
