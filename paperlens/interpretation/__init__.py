"""
PaperLens Interpretation Module

Produces one coherent report for a whole paper with a bounded-context LLM.

Pipeline:
1. ChunkPlanner: split the paper into budget-bounded chunks
2. SummaryStage: summarize each chunk (sequential, rate-limited)
3. SynthesisStage: stream the final interpretation
4. InterpretationOrchestrator: path selection, progress, persistence

Usage:
    from paperlens.interpretation import InterpretationOrchestrator

    orchestrator = InterpretationOrchestrator.from_config()
    for event in orchestrator.interpret("paper.pdf"):
        ...
"""

from .chunk_planner import ChunkPlanner
from .context import CancellationToken, InterpretationContext, PipelineStage
from .events import ContentEvent, PipelineEvent, ProgressEvent, ResultEvent
from .orchestrator import InterpretationOrchestrator
from .result_types import (
    NO_RESPONSE_MARKER,
    Chunk,
    Document,
    InterpretationResult,
    SummaryFailed,
    SummaryOk,
)
from .summary_stage import SummaryStage
from .synthesis_stage import SynthesisStage
from .token_estimator import estimate_tokens

__all__ = [
    'ChunkPlanner',
    'CancellationToken',
    'InterpretationContext',
    'PipelineStage',
    'ContentEvent',
    'PipelineEvent',
    'ProgressEvent',
    'ResultEvent',
    'InterpretationOrchestrator',
    'NO_RESPONSE_MARKER',
    'Chunk',
    'Document',
    'InterpretationResult',
    'SummaryFailed',
    'SummaryOk',
    'SummaryStage',
    'SynthesisStage',
    'estimate_tokens',
]
