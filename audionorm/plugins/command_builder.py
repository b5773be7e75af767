from __future__ import annotations
from pathlib import Path
from typing import Any, Optional, Sequence

from ..core.config import NormalizationMode
from ..core.errors import ConfigurationError
from ..core.models import MediaInfo, PassPlan
from .ffmpeg_tools import analysis_command, render_command
from .strategies import strategy_for


def build_pass(
    mode: NormalizationMode,
    pass_number: int,
    input_path: Optional[Path],
    output_path: Optional[Path],
    prior_stats: Any = None,
    extra_args: Sequence[str] = (),
    media: Optional[MediaInfo] = None,
    overwrite: bool = False,
    correction: Any = None,
) -> PassPlan:
    """Build the ffmpeg arguments for one pass of `mode`.

    Two-pass modes: pass 1 measures (null output), pass 2 renders using the
    correction derived from `prior_stats` (or the already computed
    `correction`, which then wins). Single-pass modes only have a pass 1,
    which renders. `extra_args` always end up after every flag we
    manage, right before the output target.
    """
    if input_path is None:
        raise ConfigurationError("Input file is not set")

    strategy = strategy_for(mode)
    total = 2 if strategy.two_pass else 1
    if pass_number < 1 or pass_number > total:
        raise ConfigurationError(f"{strategy.title} normalization has no pass {pass_number}")

    extra = list(extra_args or [])

    if strategy.two_pass and pass_number == 1:
        return analysis_command(
            pass_number,
            Path(input_path),
            strategy.analysis_args(),
            extra,
            label=f"[1/{total}] Processing audio file to measure loudness values",
        )

    if output_path is None:
        raise ConfigurationError("Output file is not set")

    if correction is None and strategy.two_pass:
        if prior_stats is None:
            raise ConfigurationError("Render pass needs the statistics measured by pass 1")
        correction = strategy.compute_correction(prior_stats)

    return render_command(
        pass_number,
        Path(input_path),
        Path(output_path),
        strategy.render_args(correction),
        extra,
        media=media,
        overwrite=overwrite,
        label=f"[{pass_number}/{total}] {strategy.title} normalizing audio file",
    )
