from __future__ import annotations
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from dotenv import load_dotenv

from .errors import ConfigurationError


@dataclass
class ToolConfig:
    ffmpeg: str = "ffmpeg"
    ffprobe: str = "ffprobe"
    # Checked before the executable search path.
    search_dir: Optional[Path] = None
    show_progress: bool = True
    verbose: bool = False


def load_tool_config(
    search_dir: Optional[Path] = None,
    show_progress: Optional[bool] = None,
    verbose: bool = False,
) -> ToolConfig:
    """Build a ToolConfig from the environment (and .env), explicit args win."""
    load_dotenv()
    env_dir = os.getenv("AUDIONORM_SEARCH_DIR")
    if search_dir is None:
        search_dir = Path(env_dir) if env_dir else Path.cwd()
    if show_progress is None:
        show_progress = os.getenv("AUDIONORM_NO_PROGRESS", "0") != "1"

    return ToolConfig(
        ffmpeg=os.getenv("AUDIONORM_FFMPEG", "ffmpeg"),
        ffprobe=os.getenv("AUDIONORM_FFPROBE", "ffprobe"),
        search_dir=Path(search_dir),
        show_progress=show_progress,
        verbose=verbose,
    )


def _check_range(name: str, value: float, lo: float, hi: float) -> None:
    if not (lo <= value <= hi):
        raise ConfigurationError(f"{name}={value} is not in [{lo} .. {hi}]")


@dataclass(frozen=True)
class EbuMode:
    target_level: float = -23.0           # integrated loudness target, LUFS
    loudness_range_target: float = 7.0    # LU
    true_peak: float = -2.0               # dBTP
    # Applied in the first pass only; pass 2 uses the measured target_offset.
    offset: float = 0.0

    name = "ebu"

    def __post_init__(self):
        _check_range("target_level", self.target_level, -70.0, -5.0)
        _check_range("loudness_range_target", self.loudness_range_target, 1.0, 20.0)
        _check_range("true_peak", self.true_peak, -9.0, 0.0)
        _check_range("offset", self.offset, -99.0, 99.0)


@dataclass(frozen=True)
class RmsMode:
    target_level: float = -23.0

    name = "rms"

    def __post_init__(self):
        _check_range("target_level", self.target_level, -99.0, 0.0)


@dataclass(frozen=True)
class PeakMode:
    target_level: float = -23.0

    name = "peak"

    def __post_init__(self):
        _check_range("target_level", self.target_level, -99.0, 0.0)


@dataclass(frozen=True)
class DialogueMode:
    # -31 means no level change on playback.
    target_level: int = -31

    name = "dialogue"

    def __post_init__(self):
        if isinstance(self.target_level, bool) or not isinstance(self.target_level, int):
            raise ConfigurationError(f"target_level must be a whole number, got {self.target_level!r}")
        _check_range("target_level", self.target_level, -31, -1)


NormalizationMode = Union[EbuMode, RmsMode, PeakMode, DialogueMode]
