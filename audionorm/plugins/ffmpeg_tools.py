from __future__ import annotations
import os
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from ..core.models import MediaInfo, PassPlan


def resolve_binary(name: str, search_dir: Optional[Path]) -> str:
    """Prefer a binary sitting in search_dir, otherwise leave it to PATH lookup."""
    exe = f"{name}.exe" if sys.platform.startswith("win") and not name.endswith(".exe") else name
    if search_dir is not None:
        local = Path(search_dir) / exe
        if local.is_file():
            return str(local)
    return exe


def base_args(input_path: Path) -> List[str]:
    return [
        # machine readable progress on stdout (merged with stderr by the runner)
        "-progress", "-",
        "-nostats",
        "-nostdin",
        "-hide_banner",
        "-i", str(input_path),
    ]


def analysis_command(
    pass_number: int,
    input_path: Path,
    mode_args: Sequence[str],
    extra_args: Sequence[str],
    label: str = "",
) -> PassPlan:
    # Output goes to the null muxer; ffmpeg still needs a target path.
    args = base_args(input_path) + list(mode_args) + ["-vn", "-sn", "-f", "null"]
    args += list(extra_args)
    args.append(os.devnull)
    return PassPlan(pass_number=pass_number, args=args, discard_output=True, label=label)


def render_command(
    pass_number: int,
    input_path: Path,
    output_path: Path,
    mode_args: Sequence[str],
    extra_args: Sequence[str],
    media: Optional[MediaInfo] = None,
    overwrite: bool = False,
    label: str = "",
) -> PassPlan:
    args = base_args(input_path) + list(mode_args)
    if media is not None:
        if media.bit_rate:
            args += ["-b:a", str(media.bit_rate)]
        if media.codec_name:
            args += ["-c:a", media.codec_name]
    args.append("-y" if overwrite else "-n")
    # user overrides go last: ffmpeg keeps the last occurrence of a flag
    args += list(extra_args)
    args.append(str(output_path))
    return PassPlan(pass_number=pass_number, args=args, discard_output=False, label=label)
