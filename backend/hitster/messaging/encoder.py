"""
JSON encoder/decoder for the text wire format.

Each WebSocket text frame carries exactly one ``{"type", "payload"}``
envelope encoded as JSON.
"""

import json
from typing import Any

# Hard ceiling on a single frame, in UTF-8 bytes. Servers configure a lower limit.
MAX_FRAME_LEN = 2 * 1024 * 1024


class DecodeError(Exception):
    """Error raised when a frame is not valid JSON."""


def encode(data: dict[str, Any]) -> str:
    """
    Encode a dict to a compact JSON string.
    """
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False)


def frame_size(data: str | bytes) -> int:
    """Size of a frame in bytes as it travels on the wire."""
    return len(data.encode()) if isinstance(data, str) else len(data)


def decode(data: str | bytes) -> Any:  # noqa: ANN401
    """
    Decode a JSON frame.

    Only syntax is checked here; the structure is validated by the router.
    Raises DecodeError if the frame is too large or not valid JSON.
    """
    size = frame_size(data)
    if size > MAX_FRAME_LEN:
        raise DecodeError(f"frame too large: {size} bytes (max {MAX_FRAME_LEN})")
    try:
        return json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise DecodeError(f"failed to decode JSON frame: {e}") from e
