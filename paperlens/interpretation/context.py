"""
Request-scoped state for one interpretation.

Every interpretation request gets a fresh InterpretationContext that is
passed explicitly to each stage. Nothing here outlives the request.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import Enum

from paperlens.errors import InterpretationCancelled

from .result_types import Chunk, Document, SummaryResult


class PipelineStage(Enum):
    """Stages of a single interpretation request."""

    IDLE = "idle"
    EXTRACTING = "extracting"
    PLANNING = "planning"
    SINGLE_PASS = "single_pass"
    SUMMARIZING = "summarizing"
    SYNTHESIZING = "synthesizing"
    DONE = "done"
    FAILED = "failed"


# Allowed transitions; DONE and FAILED are terminal
_TRANSITIONS = {
    PipelineStage.IDLE: {PipelineStage.EXTRACTING, PipelineStage.DONE, PipelineStage.FAILED},
    PipelineStage.EXTRACTING: {PipelineStage.PLANNING, PipelineStage.FAILED},
    PipelineStage.PLANNING: {PipelineStage.SINGLE_PASS, PipelineStage.SUMMARIZING, PipelineStage.FAILED},
    PipelineStage.SINGLE_PASS: {PipelineStage.DONE, PipelineStage.FAILED},
    PipelineStage.SUMMARIZING: {PipelineStage.SYNTHESIZING, PipelineStage.FAILED},
    PipelineStage.SYNTHESIZING: {PipelineStage.DONE, PipelineStage.FAILED},
    PipelineStage.DONE: set(),
    PipelineStage.FAILED: set(),
}


class CancellationToken:
    """
    Cooperative cancellation flag shared between a caller and a running pipeline.

    The pipeline calls raise_if_cancelled() at every stage boundary and
    streamed delta, and wait() for its pauses so a cancel ends them early.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, where: str = "") -> None:
        if self._event.is_set():
            raise InterpretationCancelled(f"stopped {where}".strip() if where else "stopped by caller")

    def wait(self, seconds: float) -> bool:
        """Sleep up to seconds; returns True if cancelled meanwhile."""
        return self._event.wait(timeout=seconds)


@dataclass
class InterpretationContext:
    """
    In-flight state of one interpretation request.

    Attributes:
        cancel_token: Cancellation flag for this request
        stage: Current pipeline stage
        history: Every stage entered, in order
        document: Extracted document (after EXTRACTING)
        chunks: Planned chunks (after PLANNING)
        summaries: Per-chunk summary results, in chunk order
        synthesis_text: Accumulated synthesis output
    """

    cancel_token: CancellationToken = field(default_factory=CancellationToken)
    stage: PipelineStage = PipelineStage.IDLE
    history: list[PipelineStage] = field(default_factory=lambda: [PipelineStage.IDLE])
    document: Document | None = None
    chunks: list[Chunk] = field(default_factory=list)
    summaries: list[SummaryResult] = field(default_factory=list)
    synthesis_text: str = ""

    def enter(self, stage: PipelineStage) -> None:
        """
        Move to the next stage.

        Raises:
            RuntimeError: If the transition is not part of the stage machine
        """
        if stage not in _TRANSITIONS[self.stage]:
            raise RuntimeError(f"Illegal pipeline transition {self.stage.value} -> {stage.value}")
        self.stage = stage
        self.history.append(stage)

    def fail(self) -> None:
        """Record a failure unless the request already finished."""
        if self.stage not in (PipelineStage.DONE, PipelineStage.FAILED):
            self.enter(PipelineStage.FAILED)

    @property
    def failed_summaries(self) -> int:
        return sum(1 for summary in self.summaries if not summary.ok)
