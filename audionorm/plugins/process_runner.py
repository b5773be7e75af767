from __future__ import annotations
import contextlib
import logging
import re
import shlex
import signal
import subprocess
import sys
import threading
from typing import Callable, List, Optional

import tqdm
from tqdm.contrib.logging import logging_redirect_tqdm

from ..core.config import ToolConfig
from ..core.errors import ExternalToolError, IoError
from ..core.models import PassPlan, RunResult
from .ffmpeg_tools import resolve_binary

log = logging.getLogger(__name__)

# -progress emits out_time_us (out_time_ms on old builds, also in microseconds)
RE_OUT_TIME = re.compile(r"^\s*out_time_(?:us|ms)\s*=\s*(\d+)\s*$")
RE_STATS_TIME = re.compile(r"(?:^|\s)time=\s*(\d+):(\d{2}):(\d{2}(?:\.\d+)?)")


def progress_seconds(line: str) -> Optional[float]:
    """Position in seconds if the line is a progress marker."""
    m = RE_OUT_TIME.match(line)
    if m:
        return int(m.group(1)) / 1_000_000
    m = RE_STATS_TIME.search(line)
    if m:
        h, mnt, s = m.groups()
        return int(h) * 3600 + int(mnt) * 60 + float(s)
    return None


@contextlib.contextmanager
def _sigterm_as_exit():
    """Turn SIGTERM into SystemExit so the child gets reaped on the way out."""
    if threading.current_thread() is not threading.main_thread():
        # only the main thread may install handlers
        yield
        return

    def _raise(signum, frame):
        raise SystemExit(128 + signum)

    previous = signal.signal(signal.SIGTERM, _raise)
    try:
        yield
    finally:
        signal.signal(signal.SIGTERM, previous if previous is not None else signal.SIG_DFL)


@contextlib.contextmanager
def _progress_bar(enabled: bool, duration: Optional[float], desc: str):
    with contextlib.ExitStack() as cm:
        if enabled and sys.stderr.isatty() and log.isEnabledFor(logging.INFO):
            if duration:
                bar = tqdm.tqdm(total=round(duration, 2), desc=desc, unit="s", leave=True,
                                bar_format="{l_bar}{bar:50}| {n:.0f}/{total:.0f}s [{elapsed}<{remaining}]")
            else:
                bar = tqdm.tqdm(desc=desc, unit="s", leave=True,
                                bar_format="{desc}: {n:.0f}s [{elapsed}]")
            cm.enter_context(bar)
            cm.enter_context(logging_redirect_tqdm())
            yield bar
        else:
            yield None


class ProcessRunner:
    """Runs ffmpeg for one PassPlan, collecting its merged stdout/stderr."""

    def __init__(
        self,
        config: ToolConfig,
        duration: Optional[float] = None,
        popen: Callable[..., subprocess.Popen] = subprocess.Popen,
        progress: Callable = _progress_bar,
    ):
        self.config = config
        self.duration = duration
        self.ffmpeg = resolve_binary(config.ffmpeg, config.search_dir)
        self._popen = popen
        self._progress = progress

    def command(self, plan: PassPlan) -> List[str]:
        return [self.ffmpeg] + list(plan.args)

    def run(self, plan: PassPlan) -> RunResult:
        cmd = self.command(plan)
        if plan.label:
            log.info(plan.label)
        log.debug("Running ffmpeg: %s", shlex.join(cmd))

        with _sigterm_as_exit():
            returncode, captured = self._execute(cmd, plan)
        if returncode != 0:
            raise ExternalToolError("ffmpeg", plan.pass_number, returncode, captured)
        return RunResult(exit_status=returncode, captured_text=captured)

    def _execute(self, cmd: List[str], plan: PassPlan):
        try:
            proc = self._popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                encoding="utf-8",
                errors="replace",
                bufsize=1,
            )
        except FileNotFoundError as e:
            raise IoError(f"ffmpeg not found ({self.ffmpeg}). Install ffmpeg and ensure it's in PATH.") from e
        except OSError as e:
            raise IoError(f"Failed to run ffmpeg ({self.ffmpeg}): {e}") from e

        lines: List[str] = []
        with proc:
            try:
                with self._progress(self.config.show_progress, self.duration, f"pass {plan.pass_number}") as bar:
                    for line in proc.stdout:
                        lines.append(line)
                        if bar is None:
                            continue
                        pos = progress_seconds(line)
                        if pos is not None:
                            if bar.total:
                                pos = min(pos, bar.total)
                            if pos > bar.n:
                                bar.update(pos - bar.n)
                        elif line.strip() == "progress=end" and bar.total and bar.n < bar.total:
                            bar.update(bar.total - bar.n)
                returncode = proc.wait()
            except BaseException:
                # Ctrl-C, SIGTERM or any early exit: reap the child
                proc.kill()
                proc.wait()
                raise

        return returncode, "".join(lines)
