import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from .core.config import DialogueMode, EbuMode, PeakMode, RmsMode, load_tool_config
from .core.errors import ConfigurationError, ExternalToolError, IoError, NormalizationError
from .core.runner import run_job

log = logging.getLogger("audionorm")

FFMPEG_ARGS_HELP = 'Custom ffmpeg arguments after "--", e.g. -- -c:a ac3 -b:a 640k -ar 48000'


def split_extra_args(argv: List[str]) -> Tuple[List[str], List[str]]:
    """Everything after the first bare "--" is forwarded to ffmpeg untouched."""
    if "--" in argv:
        i = argv.index("--")
        return argv[:i], argv[i + 1:]
    return argv, []


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="audionorm",
        description="Normalize audio loudness with ffmpeg (EBU R128, RMS, peak or dialogue).",
        epilog=FFMPEG_ARGS_HELP,
    )
    p.add_argument("--verbose", action="store_true", help="Verbose output (ffmpeg command lines, measured values)")
    p.add_argument("-i", "--input-file", required=True, type=Path, help="Input audio file")
    p.add_argument("-o", "--output-file", required=True, type=Path, help="Output audio file after normalization")
    p.add_argument("--overwrite", action="store_true", help="Force overwrite existing output file")
    p.add_argument("--no-progress", action="store_true", help="Do not draw progress bars")
    p.add_argument("--report", type=Path, default=None, help="Write a JSON report of the run to this path")

    sub = p.add_subparsers(dest="cmd", required=True)

    ebu = sub.add_parser("ebu", help="Two passes, normalizes according to EBU R128")
    ebu.add_argument("--target-level", type=float, default=-23.0,
                     help="Integrated loudness target in LUFS, [-70.0 .. -5.0]")
    ebu.add_argument("--loudness-range-target", type=float, default=7.0,
                     help="Loudness range target in LU, [1.0 .. 20.0]")
    ebu.add_argument("--true-peak", type=float, default=-2.0, help="Maximum true peak in dBTP, [-9.0 .. 0.0]")
    ebu.add_argument("--offset", type=float, default=0.0,
                     help="Offset gain applied in the first pass only, [-99.0 .. +99.0]")

    rms = sub.add_parser("rms", help="Bring the mean (RMS) level to the target")
    rms.add_argument("--target-level", type=float, default=-23.0, help="Target level in dB, [-99.0 .. 0.0]")

    peak = sub.add_parser("peak", help="Bring the peak level to the target")
    peak.add_argument("--target-level", type=float, default=-23.0, help="Target level in dB, [-99.0 .. 0.0]")

    dlg = sub.add_parser("dialogue", help="Set the dialogue normalization (dialnorm) value")
    dlg.add_argument("--target-level", type=int, default=-31,
                     help="Whole number in [-31 .. -1]; -31 leaves playback level unchanged")
    return p


def mode_from_args(args: argparse.Namespace):
    if args.cmd == "ebu":
        return EbuMode(
            target_level=args.target_level,
            loudness_range_target=args.loudness_range_target,
            true_peak=args.true_peak,
            offset=args.offset,
        )
    if args.cmd == "rms":
        return RmsMode(target_level=args.target_level)
    if args.cmd == "peak":
        return PeakMode(target_level=args.target_level)
    return DialogueMode(target_level=args.target_level)


def check_paths(input_file: Path, output_file: Path, overwrite: bool) -> None:
    if not input_file.is_file():
        raise IoError(f"Input file not found: {input_file}")
    if input_file.resolve() == output_file.resolve():
        raise ConfigurationError("Input and output files must be different")
    if output_file.exists() and not overwrite:
        raise IoError(f"Output file already exists: {output_file} (use --overwrite)")
    try:
        output_file.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise IoError(f"Cannot create output directory {output_file.parent}: {e}") from e


def _write_report(path: Optional[Path], report) -> None:
    if path is None or report is None:
        return
    path.write_text(json.dumps(report.__dict__, ensure_ascii=False, indent=2, default=str), encoding="utf-8")
    print(f"Report: {path}")


def main(argv: Optional[List[str]] = None) -> int:
    argv, ffmpeg_args = split_extra_args(list(sys.argv[1:] if argv is None else argv))
    p = build_parser()
    args = p.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(message)s" if not args.verbose else "%(levelname)s %(name)s: %(message)s",
    )

    try:
        mode = mode_from_args(args)
    except ConfigurationError as e:
        p.error(str(e))

    config = load_tool_config(show_progress=False if args.no_progress else None, verbose=args.verbose)

    try:
        check_paths(args.input_file, args.output_file, args.overwrite)
        report = run_job(
            mode=mode,
            input_file=args.input_file,
            output_file=args.output_file,
            config=config,
            extra_args=ffmpeg_args,
            overwrite=args.overwrite,
        )
    except NormalizationError as e:
        log.error("Error: %s", e)
        if isinstance(e, ExternalToolError) and e.captured_text:
            log.error("%s output (tail):\n%s", e.tool, e.tail())
        _write_report(args.report, e.report)
        return 1

    print(f"Done. Normalized audio: {args.output_file}")
    _write_report(args.report, report)
    return 0
