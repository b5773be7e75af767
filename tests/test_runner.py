import dataclasses
from pathlib import Path

import pytest

from audionorm.core.config import DialogueMode, EbuMode, RmsMode
from audionorm.core.errors import ConfigurationError, ExternalToolError, ParseError, UndefinedMeasurementError
from audionorm.core.models import JobState, RunResult
from audionorm.core import runner as runner_module
from audionorm.core.runner import run_job


class FakeRunner:
    def __init__(self, *results):
        self.results = list(results)
        self.plans = []

    def run(self, plan):
        self.plans.append(plan)
        res = self.results.pop(0)
        if isinstance(res, Exception):
            raise res
        return res


def _prober(media):
    return lambda path, config: media


def test_ebu_two_pass(tool_config, media, loudnorm_output):
    runner = FakeRunner(RunResult(0, loudnorm_output), RunResult(0, "done\n"))
    report = run_job(EbuMode(), Path("in.wav"), Path("out.wav"), tool_config,
                     extra_args=["-ar", "48000"], runner=runner, prober=_prober(media))

    assert report.state == JobState.DONE
    assert report.states == ["start", "pass1_running", "pass1_parsed", "pass2_running", "done"]
    assert [p.pass_number for p in runner.plans] == [1, 2]
    assert runner.plans[0].discard_output
    render = runner.plans[1].args
    flt = render[render.index("-filter:a") + 1]
    assert "measured_I=-23.5" in flt
    assert render[-3:] == ["-ar", "48000", "out.wav"]
    assert report.stats["input_i"] == -23.5
    assert report.correction["measured_lra"] == 5.3


def test_rms_two_pass(tool_config, media, volumedetect_output):
    runner = FakeRunner(RunResult(0, volumedetect_output), RunResult(0, ""))
    report = run_job(RmsMode(target_level=-20.0), Path("in.wav"), Path("out.wav"), tool_config,
                     runner=runner, prober=_prober(media))
    assert report.correction == {"gain_db": 6.0}
    assert "volume=6.0dB" in runner.plans[1].args


def test_dialogue_skips_analysis(tool_config, media):
    runner = FakeRunner(RunResult(0, ""))
    report = run_job(DialogueMode(), Path("in.wav"), Path("out.ac3"), tool_config,
                     runner=runner, prober=_prober(media))
    assert report.states == ["start", "pass2_running", "done"]
    assert len(runner.plans) == 1
    assert report.correction == {"dialnorm": -31}


def test_undefined_loudness_fails_before_render(tool_config, media):
    text = '{"input_i": "-inf", "input_tp": "-inf", "input_lra": "0.00", "input_thresh": "-70.00", "target_offset": "inf"}'
    runner = FakeRunner(RunResult(0, text))
    with pytest.raises(UndefinedMeasurementError) as exc:
        run_job(EbuMode(), Path("in.wav"), Path("out.wav"), tool_config, runner=runner, prober=_prober(media))
    assert len(runner.plans) == 1
    assert "input_i" in exc.value.fields
    assert exc.value.report.state == JobState.FAILED


def test_missing_stats_is_parse_error(tool_config, media):
    runner = FakeRunner(RunResult(0, "no statistics here\n"))
    with pytest.raises(ParseError):
        run_job(EbuMode(), Path("in.wav"), Path("out.wav"), tool_config, runner=runner, prober=_prober(media))


def test_render_failure_propagates(tool_config, media, loudnorm_output):
    err = ExternalToolError("ffmpeg", 2, 1, "Unknown encoder 'foo'\n")
    runner = FakeRunner(RunResult(0, loudnorm_output), err)
    with pytest.raises(ExternalToolError) as exc:
        run_job(EbuMode(), Path("in.wav"), Path("out.wav"), tool_config, runner=runner, prober=_prober(media))
    assert exc.value.pass_number == 2
    assert exc.value.report.states[-2:] == ["pass2_running", "failed"]
    assert exc.value.report.error


def test_paths_required(tool_config):
    with pytest.raises(ConfigurationError):
        run_job(EbuMode(), Path("in.wav"), None, tool_config, runner=FakeRunner())


def test_report_records_the_correction_the_plan_used(tool_config, media, loudnorm_output, monkeypatch):
    built = []
    real_build_pass = runner_module.build_pass

    def recording_build_pass(*args, **kwargs):
        built.append(kwargs.get("correction"))
        return real_build_pass(*args, **kwargs)

    monkeypatch.setattr(runner_module, "build_pass", recording_build_pass)
    runner = FakeRunner(RunResult(0, loudnorm_output), RunResult(0, ""))
    report = run_job(EbuMode(), Path("in.wav"), Path("out.wav"), tool_config, runner=runner, prober=_prober(media))

    correction = built[-1]
    assert correction is not None
    assert report.correction == dataclasses.asdict(correction)
    assert f"measured_thresh={correction.measured_thresh}" in runner.plans[1].args[runner.plans[1].args.index("-filter:a") + 1]
