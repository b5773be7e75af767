from __future__ import annotations
from typing import List, Optional


class NormalizationError(Exception):
    """Base class for every failure surfaced by a normalization run."""

    # JobReport of the run that failed, attached by run_job
    report = None


class ConfigurationError(NormalizationError, ValueError):
    pass


class UndefinedMeasurementError(ConfigurationError):
    """A required measurement came back as -inf/nan (silent or invalid input)."""

    def __init__(self, fields: List[str]):
        self.fields = list(fields)
        super().__init__(
            "Cannot compute a correction: measured value(s) undefined: " + ", ".join(self.fields)
        )


class ParseError(NormalizationError, ValueError):
    pass


class IoError(NormalizationError, OSError):
    pass


class ExternalToolError(NormalizationError):
    def __init__(
        self,
        tool: str,
        pass_number: Optional[int],
        returncode: Optional[int],
        captured_text: str,
    ):
        self.tool = tool
        self.pass_number = pass_number
        self.returncode = returncode
        self.captured_text = captured_text
        where = f" (pass {pass_number})" if pass_number is not None else ""
        super().__init__(f"{tool}{where} failed with exit code={returncode}")

    def tail(self, limit: int = 2000) -> str:
        return (self.captured_text or "")[-limit:]
