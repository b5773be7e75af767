from __future__ import annotations
import enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class PassPlan:
    """Arguments for one ffmpeg invocation (the binary itself is added by the runner)."""
    pass_number: int
    args: List[str]
    # True for analysis passes writing to the null sink.
    discard_output: bool
    label: str = ""


@dataclass(frozen=True)
class RunResult:
    exit_status: int
    captured_text: str


@dataclass(frozen=True)
class LoudnessStats:
    # None means ffmpeg reported the value as -inf/nan (undefined measurement).
    input_i: Optional[float]
    input_lra: Optional[float]
    input_tp: Optional[float]
    input_thresh: Optional[float]
    target_offset: Optional[float]

    output_i: Optional[float] = None
    output_lra: Optional[float] = None
    output_tp: Optional[float] = None
    output_thresh: Optional[float] = None
    normalization_type: Optional[str] = None

    REQUIRED = ("input_i", "input_lra", "input_tp", "input_thresh", "target_offset")

    def undefined_fields(self) -> List[str]:
        return [name for name in self.REQUIRED if getattr(self, name) is None]


@dataclass(frozen=True)
class VolumeStats:
    mean_volume: Optional[float]
    max_volume: Optional[float]


@dataclass(frozen=True)
class EbuCorrection:
    target_level: float
    loudness_range_target: float
    true_peak: float
    offset: float
    measured_i: float
    measured_lra: float
    measured_tp: float
    measured_thresh: float


@dataclass(frozen=True)
class GainCorrection:
    gain_db: float


@dataclass(frozen=True)
class DialnormCorrection:
    dialnorm: int


@dataclass
class MediaInfo:
    codec_name: str
    bit_rate: Optional[str] = None
    sample_rate: Optional[str] = None
    channels: Optional[int] = None
    channel_layout: Optional[str] = None
    duration: Optional[float] = None  # seconds


class JobState(str, enum.Enum):
    START = "start"
    PASS1_RUNNING = "pass1_running"
    PASS1_PARSED = "pass1_parsed"
    PASS2_RUNNING = "pass2_running"
    DONE = "done"
    FAILED = "failed"


@dataclass
class JobReport:
    input_file: str
    output_file: str
    mode: str
    state: JobState = JobState.START
    states: List[str] = field(default_factory=lambda: [JobState.START.value])
    media: Dict[str, Any] = field(default_factory=dict)
    stats: Dict[str, Any] = field(default_factory=dict)
    correction: Dict[str, Any] = field(default_factory=dict)
    commands: List[List[str]] = field(default_factory=list)
    error: Optional[str] = None

    def advance(self, state: JobState) -> None:
        self.state = state
        self.states.append(state.value)
