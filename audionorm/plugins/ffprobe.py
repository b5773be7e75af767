from __future__ import annotations
import json
import logging
import subprocess
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from ..core.config import ToolConfig
from ..core.errors import ExternalToolError, IoError, ParseError
from ..core.models import MediaInfo
from .ffmpeg_tools import resolve_binary

log = logging.getLogger(__name__)


def _float_or_none(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def media_info_from_json(data: Dict[str, Any]) -> MediaInfo:
    streams = data.get("streams") or []
    if not streams:
        raise ParseError("ffprobe found no audio stream in the input file")
    st = streams[-1]
    if "codec_name" not in st:
        raise ParseError("ffprobe did not report the audio codec")

    duration = _float_or_none(st.get("duration"))
    if duration is None:
        duration = _float_or_none((data.get("format") or {}).get("duration"))

    channels = st.get("channels")
    return MediaInfo(
        codec_name=st["codec_name"],
        bit_rate=st.get("bit_rate"),
        sample_rate=st.get("sample_rate"),
        channels=int(channels) if channels is not None else None,
        channel_layout=st.get("channel_layout"),
        duration=duration,
    )


def probe(
    input_path: Path,
    config: ToolConfig,
    run: Callable[..., subprocess.CompletedProcess] = subprocess.run,
) -> MediaInfo:
    """Describe the first audio stream of input_path."""
    ffprobe = resolve_binary(config.ffprobe, config.search_dir)
    cmd = [
        ffprobe,
        "-i", str(input_path),
        "-loglevel", "error",
        "-print_format", "json",
        "-show_streams",
        "-show_format",
        "-select_streams", "a:0",
    ]
    log.debug("Running ffprobe: %s", " ".join(cmd))
    try:
        p = run(cmd, capture_output=True, text=True, encoding="utf-8", errors="replace", stdin=subprocess.DEVNULL)
    except FileNotFoundError as e:
        raise IoError(f"ffprobe not found ({ffprobe}). Install ffmpeg and ensure it's in PATH.") from e

    if p.returncode != 0:
        raise ExternalToolError("ffprobe", None, p.returncode, (p.stderr or "") + (p.stdout or ""))

    try:
        data = json.loads(p.stdout or "{}")
    except json.JSONDecodeError as e:
        raise ParseError(f"Failed to parse ffprobe output: {e}") from e
    return media_info_from_json(data)
