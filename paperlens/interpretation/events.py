"""
Events emitted by the interpretation pipeline.

The pipeline never touches a rendering surface; it yields these values and
the caller decides how to show them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from .result_types import InterpretationResult


@dataclass(frozen=True)
class ProgressEvent:
    """Overall progress: phase label, 0-100 percent, and a human-readable detail."""

    phase: str
    percent: int
    detail: str = ""

    def as_tuple(self) -> tuple[str, int, str]:
        return self.phase, self.percent, self.detail


@dataclass(frozen=True)
class ContentEvent:
    """The full report text rendered so far (never shorter than the previous one)."""

    text: str


@dataclass(frozen=True)
class ResultEvent:
    """Final event of a successful request."""

    result: InterpretationResult


PipelineEvent = Union[ProgressEvent, ContentEvent, ResultEvent]
