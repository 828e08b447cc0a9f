"""
Synthesis Stage - final streaming completion.

Fills the interpretation template with the combined input (the whole
document on the single-pass path, labelled section summaries on the
two-stage path) and streams the model's answer. Each delta produces a
ContentEvent carrying the full text so far, so a consumer can simply
re-render what it receives.
"""

from collections.abc import Iterator

from paperlens.config import LLM_MAX_OUTPUT_TOKENS, LLM_TEMPERATURE
from paperlens.logging_config import Timer, debug_log, warning

from .context import InterpretationContext
from .events import ContentEvent, PipelineEvent, ProgressEvent
from .prompts import fill_template
from .result_types import NO_RESPONSE_MARKER

PROGRESS_BEFORE_CALL = 60
PROGRESS_STREAMING = 90
PROGRESS_COMPLETE = 100


class SynthesisStage:
    """Streams one completion and accumulates it into the report text."""

    def __init__(
        self,
        client,
        max_output_tokens: int = LLM_MAX_OUTPUT_TOKENS,
        temperature: float = LLM_TEMPERATURE,
    ):
        self.client = client
        self.max_output_tokens = max_output_tokens
        self.temperature = temperature

    def run(self, prompt_template: str, combined_input: str,
            context: InterpretationContext) -> Iterator[PipelineEvent]:
        """
        Stream the interpretation for combined_input.

        Provider errors propagate; there is no partial-result fallback here.
        The final text is left in context.synthesis_text.

        Yields:
            ProgressEvent at 60, 90 and 100 percent, and one ContentEvent per
            non-empty delta (or a single ContentEvent with the no-response
            marker when the model streamed nothing)
        """
        token = context.cancel_token
        token.raise_if_cancelled("before synthesis")

        prompt = fill_template(prompt_template, combined_input)
        yield ProgressEvent("synthesizing", PROGRESS_BEFORE_CALL, "Requesting interpretation")

        with Timer("Synthesis"):
            stream = self.client.complete_stream(
                prompt,
                max_output_tokens=self.max_output_tokens,
                temperature=self.temperature,
            )
            parts: list[str] = []
            try:
                yield ProgressEvent("synthesizing", PROGRESS_STREAMING, "Receiving interpretation")

                for delta in stream:
                    token.raise_if_cancelled("while streaming the interpretation")
                    if not delta:
                        continue
                    parts.append(delta)
                    context.synthesis_text = "".join(parts)
                    yield ContentEvent(context.synthesis_text)
            finally:
                close = getattr(stream, "close", None)
                if close is not None:
                    close()

        if not context.synthesis_text:
            warning("[SYNTHESIS STAGE] Model returned no content")
            context.synthesis_text = NO_RESPONSE_MARKER
            yield ContentEvent(NO_RESPONSE_MARKER)

        debug_log(f"[SYNTHESIS STAGE] Received {len(context.synthesis_text)} chars "
                  f"in {len(parts)} deltas")
        yield ProgressEvent("synthesizing", PROGRESS_COMPLETE, "Interpretation complete")
