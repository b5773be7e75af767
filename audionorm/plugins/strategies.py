from __future__ import annotations
from typing import Any, Dict, List, Optional, Type

from ..core.config import DialogueMode, EbuMode, NormalizationMode, PeakMode, RmsMode
from ..core.errors import ConfigurationError, UndefinedMeasurementError
from ..core.models import (
    DialnormCorrection,
    EbuCorrection,
    GainCorrection,
    LoudnessStats,
    VolumeStats,
)
from .loudness_stats import parse_loudness, parse_volume


def _num(value: float) -> str:
    return str(float(value))


class EbuStrategy:
    """EBU R128: measure with loudnorm, then re-run loudnorm fed with the measurements."""

    two_pass = True
    title = "EBU R128"

    def __init__(self, mode: EbuMode):
        self.mode = mode

    def analysis_args(self) -> List[str]:
        m = self.mode
        flt = (
            f"loudnorm=I={_num(m.target_level)}:LRA={_num(m.loudness_range_target)}"
            f":TP={_num(m.true_peak)}:offset={_num(m.offset)}:print_format=json"
        )
        return ["-filter:a", flt]

    def parse_stats(self, captured_text: str) -> LoudnessStats:
        return parse_loudness(captured_text)

    def compute_correction(self, stats: LoudnessStats) -> EbuCorrection:
        undefined = stats.undefined_fields()
        if undefined:
            raise UndefinedMeasurementError(undefined)
        m = self.mode
        return EbuCorrection(
            target_level=m.target_level,
            loudness_range_target=m.loudness_range_target,
            true_peak=m.true_peak,
            offset=stats.target_offset,
            measured_i=stats.input_i,
            measured_lra=stats.input_lra,
            measured_tp=stats.input_tp,
            measured_thresh=stats.input_thresh,
        )

    def render_args(self, correction: Optional[EbuCorrection]) -> List[str]:
        c = correction
        flt = (
            f"loudnorm=I={_num(c.target_level)}:LRA={_num(c.loudness_range_target)}"
            f":TP={_num(c.true_peak)}:offset={_num(c.offset)}"
            f":measured_I={_num(c.measured_i)}:measured_LRA={_num(c.measured_lra)}"
            f":measured_TP={_num(c.measured_tp)}:measured_thresh={_num(c.measured_thresh)}"
            ":linear=true:print_format=summary"
        )
        return ["-filter:a", flt]


class _GainStrategy:
    """Flat gain = target - measured, measured by volumedetect."""

    two_pass = True
    measured_field = ""

    def __init__(self, mode):
        self.mode = mode

    def analysis_args(self) -> List[str]:
        return ["-filter:a", "volumedetect"]

    def parse_stats(self, captured_text: str) -> VolumeStats:
        return parse_volume(captured_text)

    def compute_correction(self, stats: VolumeStats) -> GainCorrection:
        measured = getattr(stats, self.measured_field)
        if measured is None:
            raise UndefinedMeasurementError([self.measured_field])
        return GainCorrection(gain_db=self.mode.target_level - measured)

    def render_args(self, correction: Optional[GainCorrection]) -> List[str]:
        return ["-filter:a", f"volume={_num(correction.gain_db)}dB"]


class RmsStrategy(_GainStrategy):
    measured_field = "mean_volume"
    title = "RMS"


class PeakStrategy(_GainStrategy):
    measured_field = "max_volume"
    title = "Peak"


class DialogueStrategy:
    """Metadata-only: sets the encoder's dialnorm value, no measurement needed."""

    two_pass = False
    title = "Dialogue"

    def __init__(self, mode: DialogueMode):
        self.mode = mode

    def analysis_args(self) -> List[str]:
        return []

    def parse_stats(self, captured_text: str) -> None:
        return None

    def compute_correction(self, stats: Any = None) -> DialnormCorrection:
        return DialnormCorrection(dialnorm=self.mode.target_level)

    def render_args(self, correction: Optional[DialnormCorrection]) -> List[str]:
        if correction is None:
            correction = self.compute_correction()
        return ["-dialnorm", str(correction.dialnorm)]


_STRATEGIES: Dict[type, Type] = {
    EbuMode: EbuStrategy,
    RmsMode: RmsStrategy,
    PeakMode: PeakStrategy,
    DialogueMode: DialogueStrategy,
}


def strategy_for(mode: NormalizationMode):
    cls = _STRATEGIES.get(type(mode))
    if cls is None:
        raise ConfigurationError(f"Unsupported normalization mode: {mode!r}")
    return cls(mode)
