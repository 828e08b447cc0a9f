"""
PaperLens - whole-paper interpretation with a bounded-context language model.

Usage:
    from paperlens import InterpretationOrchestrator, load_pipeline_config

    orchestrator = InterpretationOrchestrator.from_config(load_pipeline_config())
    result = orchestrator.run("paper.pdf", progress_sink=print)
    print(result.content)
"""

from paperlens.config import PipelineConfig, load_pipeline_config
from paperlens.errors import (
    ConfigurationError,
    ExtractionError,
    InterpretationCancelled,
    InterpretationError,
    PipelineBusyError,
    ProviderError,
)
from paperlens.interpretation import InterpretationOrchestrator, InterpretationResult

__version__ = "0.3.0"

__all__ = [
    'PipelineConfig',
    'load_pipeline_config',
    'InterpretationOrchestrator',
    'InterpretationResult',
    'InterpretationError',
    'ExtractionError',
    'ConfigurationError',
    'ProviderError',
    'PipelineBusyError',
    'InterpretationCancelled',
]
