"""
Error taxonomy for the interpretation pipeline.

Every error shown to the user reads "<Label>: <cause>" so the kind of
failure and the low-level reason travel together.
"""


class InterpretationError(Exception):
    """Base class for every failure the pipeline surfaces to its caller."""

    label = "Interpretation error"

    def __init__(self, cause: str):
        self.cause = cause
        super().__init__(f"{self.label}: {cause}")


class ExtractionError(InterpretationError):
    """The document has no (or too little) extractable text."""

    label = "Extraction error"


class ConfigurationError(InterpretationError):
    """Endpoint, model, credential or context budget is unusable."""

    label = "Configuration error"


class ProviderError(InterpretationError):
    """Network, auth, rate-limit or malformed-response failure from the LLM service."""

    label = "Provider error"

    def __init__(self, cause: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(cause)


class PipelineBusyError(InterpretationError):
    """An interpretation is already running on this pipeline."""

    label = "Pipeline busy"


class InterpretationCancelled(InterpretationError):
    """The caller cancelled the in-flight interpretation."""

    label = "Interpretation cancelled"
