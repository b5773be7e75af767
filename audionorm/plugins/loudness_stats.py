"""Decode measurements out of ffmpeg's diagnostic text.

ffmpeg has no dedicated channel for filter statistics: `loudnorm` dumps a
JSON object into the log stream and `volumedetect` prints `key: value dB`
lines. Everything that knows about those formats lives here.
"""
from __future__ import annotations
import json
import math
import re
from typing import Any, Dict, Optional, Tuple

from ..core.errors import ParseError
from ..core.models import LoudnessStats, VolumeStats

# Textual spellings ffmpeg uses for unmeasurable values (e.g. silent input).
UNDEFINED_TOKENS = frozenset({"-inf", "inf", "+inf", "nan", "-nan", "+nan"})

_OPTIONAL_NUMERIC = ("output_i", "output_lra", "output_tp", "output_thresh")

RE_VOLUME = re.compile(r"\b(mean_volume|max_volume):\s*(\S+)\s*dB")


def find_last_object(text: str) -> Tuple[int, int]:
    """Return (start, end) of the last balanced {...} block in text.

    Works backward from the final closing brace, so earlier fragments
    (decoys, other filters) never win over the one printed at the end.
    """
    end = text.rfind("}")
    if end < 0:
        raise ParseError("No loudness statistics block found in ffmpeg output")

    while end >= 0:
        depth = 0
        for i in range(end, -1, -1):
            ch = text[i]
            if ch == "}":
                depth += 1
            elif ch == "{":
                depth -= 1
                if depth == 0:
                    return i, end + 1
        # stray "}" printed after the block: try the previous one
        end = text.rfind("}", 0, end)
    raise ParseError("Unbalanced loudness statistics block in ffmpeg output")


def decode_value(name: str, raw: Any) -> Optional[float]:
    """Float for a measurement, None for ffmpeg's -inf/nan sentinels."""
    if isinstance(raw, bool) or raw is None:
        raise ParseError(f"Invalid loudness value for {name}: {raw!r}")
    if isinstance(raw, (int, float)):
        value = float(raw)
    else:
        token = str(raw).strip()
        if token.lower() in UNDEFINED_TOKENS:
            return None
        try:
            value = float(token)
        except ValueError as e:
            raise ParseError(f"Invalid loudness value for {name}: {raw!r}") from e
    if not math.isfinite(value):
        return None
    return value


def parse_loudness(captured_text: str) -> LoudnessStats:
    start, end = find_last_object(captured_text)
    try:
        data: Dict[str, Any] = json.loads(captured_text[start:end])
    except json.JSONDecodeError as e:
        raise ParseError(f"Malformed loudness statistics block: {e}") from e
    if not isinstance(data, dict):
        raise ParseError("Loudness statistics block is not an object")

    missing = [k for k in LoudnessStats.REQUIRED if k not in data]
    if missing:
        raise ParseError("Loudness statistics block lacks: " + ", ".join(missing))

    values = {k: decode_value(k, data[k]) for k in LoudnessStats.REQUIRED}
    for k in _OPTIONAL_NUMERIC:
        if k in data:
            values[k] = decode_value(k, data[k])
    if "normalization_type" in data:
        values["normalization_type"] = str(data["normalization_type"])
    return LoudnessStats(**values)


def parse_volume(captured_text: str) -> VolumeStats:
    found: Dict[str, Optional[float]] = {}
    for m in RE_VOLUME.finditer(captured_text):
        # later lines overwrite earlier ones
        found[m.group(1)] = decode_value(m.group(1), m.group(2))

    if not found:
        raise ParseError("No volumedetect statistics found in ffmpeg output")
    missing = [k for k in ("mean_volume", "max_volume") if k not in found]
    if missing:
        raise ParseError("volumedetect output lacks: " + ", ".join(missing))
    return VolumeStats(mean_volume=found["mean_volume"], max_volume=found["max_volume"])
