from __future__ import annotations
import dataclasses
import logging
from pathlib import Path
from typing import Callable, Optional, Sequence

from .config import NormalizationMode, ToolConfig
from .errors import ConfigurationError, NormalizationError
from .models import JobReport, JobState, MediaInfo
from ..plugins.command_builder import build_pass
from ..plugins.ffprobe import probe
from ..plugins.process_runner import ProcessRunner
from ..plugins.strategies import strategy_for

log = logging.getLogger(__name__)


def run_job(
    mode: NormalizationMode,
    input_file: Optional[Path],
    output_file: Optional[Path],
    config: ToolConfig,
    extra_args: Sequence[str] = (),
    overwrite: bool = False,
    runner=None,
    prober: Optional[Callable[[Path, ToolConfig], MediaInfo]] = None,
) -> JobReport:
    """Normalize input_file into output_file.

    Start -> Pass1Running -> Pass1Parsed -> Pass2Running -> Done, or Failed
    from any of them. Nothing is retried and a partially written output file
    from a failed render pass is left where it is.

    `runner` (anything with run(plan) -> RunResult) and `prober` are
    injectable; by default ffprobe is asked for the input duration/codec and
    ffmpeg is driven by ProcessRunner.
    """
    if input_file is None or output_file is None:
        raise ConfigurationError("Both input and output files must be set")

    strategy = strategy_for(mode)
    report = JobReport(input_file=str(input_file), output_file=str(output_file), mode=mode.name)
    extra = list(extra_args or [])

    try:
        # 1) Probe input (duration drives the progress bar, codec/bit rate the render pass)
        media = (prober or probe)(Path(input_file), config)
        report.media = dataclasses.asdict(media)
        log.info(
            "Input audio file: %s (codec: %s, channels: %s, layout: %s, duration: %s, bit-rate: %s, sample-rate: %s)",
            input_file, media.codec_name, media.channels, media.channel_layout,
            f"{media.duration:.2f}s" if media.duration is not None else "unknown",
            media.bit_rate, media.sample_rate,
        )
        if runner is None:
            runner = ProcessRunner(config, duration=media.duration)

        # 2) Analysis pass
        stats = None
        correction = None
        if strategy.two_pass:
            report.advance(JobState.PASS1_RUNNING)
            plan = build_pass(mode, 1, input_file, None, extra_args=extra)
            report.commands.append(plan.args)
            result = runner.run(plan)

            stats = strategy.parse_stats(result.captured_text)
            report.stats = dataclasses.asdict(stats)
            correction = strategy.compute_correction(stats)
            report.advance(JobState.PASS1_PARSED)
            log.debug("Measured: %s", report.stats)
            log.debug("Correction: %s", correction)

        if correction is None:
            correction = strategy.compute_correction(stats)
        report.correction = dataclasses.asdict(correction)

        # 3) Render pass
        report.advance(JobState.PASS2_RUNNING)
        pass_number = 2 if strategy.two_pass else 1
        plan = build_pass(
            mode, pass_number, input_file, output_file,
            prior_stats=stats, extra_args=extra, media=media, overwrite=overwrite,
            correction=correction,
        )
        report.commands.append(plan.args)
        result = runner.run(plan)
        if config.verbose:
            log.debug("ffmpeg output:\n%s", result.captured_text)
    except NormalizationError as e:
        failed_in = report.state
        report.advance(JobState.FAILED)
        report.error = str(e)
        e.report = report
        if failed_in == JobState.PASS2_RUNNING:
            log.warning("Render pass failed; %s may hold partial output", output_file)
        raise

    report.advance(JobState.DONE)
    return report
