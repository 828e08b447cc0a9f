"""
Summary Stage (MAP step of two-stage interpretation).

Summarizes each chunk with one non-streaming completion call. Calls run
strictly one after another with a fixed pause between them, which keeps
hosted providers under their request-rate limits.

A failed chunk never fails the request: the provider error is logged and
the chunk gets a SummaryFailed placeholder so synthesis can still proceed
over the remaining sections.
"""

import math
from collections.abc import Iterator

from paperlens.config import (
    CHARS_PER_SUMMARY_TOKEN,
    LLM_MAX_OUTPUT_TOKENS,
    LLM_TEMPERATURE,
    SUMMARY_DELAY_SECONDS,
)
from paperlens.errors import ProviderError
from paperlens.logging_config import debug_log, warning

from .context import InterpretationContext
from .events import ProgressEvent
from .prompts import build_chunk_summary_prompt
from .result_types import Chunk, SummaryFailed, SummaryOk, SummaryResult

TRUNCATION_SUFFIX = "..."

# Summaries fill the first half of the progress bar
SUMMARY_PROGRESS_SPAN = 50


class SummaryStage:
    """
    Sequential per-chunk summarizer.

    Example:
        stage = SummaryStage(client)
        for event in stage.run(chunks, budget_tokens=1146, context=context):
            print(event.percent)
        summaries = context.summaries
    """

    def __init__(
        self,
        client,
        max_output_tokens: int = LLM_MAX_OUTPUT_TOKENS,
        temperature: float = LLM_TEMPERATURE,
        delay_seconds: float = SUMMARY_DELAY_SECONDS,
    ):
        """
        Args:
            client: Object with complete(prompt, max_output_tokens=, temperature=) -> str
            max_output_tokens: Response cap per summary call
            temperature: Sampling temperature per summary call
            delay_seconds: Pause between successive calls (not after the last)
        """
        self.client = client
        self.max_output_tokens = max_output_tokens
        self.temperature = temperature
        self.delay_seconds = delay_seconds

    @staticmethod
    def max_chars_for(budget_tokens: int) -> int:
        """Character allowance of one summary: floor(budget_tokens * 3)."""
        return math.floor(budget_tokens * CHARS_PER_SUMMARY_TOKEN)

    @staticmethod
    def truncate(text: str, max_chars: int) -> str:
        """Hard-truncate text to max_chars, ending in '...' when cut."""
        if len(text) <= max_chars:
            return text
        keep = max(0, max_chars - len(TRUNCATION_SUFFIX))
        return text[:keep] + TRUNCATION_SUFFIX

    def summarize(self, chunk: Chunk, budget_tokens: int,
                  context: InterpretationContext) -> SummaryResult:
        """
        Summarize one chunk.

        Returns:
            SummaryOk with text no longer than floor(budget_tokens * 3) characters,
            or SummaryFailed when the provider failed or returned nothing
        """
        context.cancel_token.raise_if_cancelled(f"before summarizing chunk {chunk.number}")

        max_chars = self.max_chars_for(budget_tokens)
        prompt = build_chunk_summary_prompt(chunk.text, max_chars)

        try:
            text = self.client.complete(
                prompt,
                max_output_tokens=self.max_output_tokens,
                temperature=self.temperature,
            )
        except ProviderError as e:
            warning(f"[SUMMARY STAGE] Chunk {chunk.number} ({chunk.page_range}) failed: {e}")
            return SummaryFailed(index=chunk.index, reason=e.cause)

        text = (text or "").strip()
        if not text:
            warning(f"[SUMMARY STAGE] Chunk {chunk.number} returned an empty summary")
            return SummaryFailed(index=chunk.index, reason="empty response")

        if len(text) > max_chars:
            debug_log(f"[SUMMARY STAGE] Chunk {chunk.number} summary truncated "
                      f"from {len(text)} to {max_chars} chars")
            text = self.truncate(text, max_chars)

        return SummaryOk(index=chunk.index, text=text)

    def run(self, chunks: list[Chunk], budget_tokens: int,
            context: InterpretationContext) -> Iterator[ProgressEvent]:
        """
        Summarize every chunk in order, appending results to context.summaries.

        Yields:
            ProgressEvent("summarizing", floor(50 * completed / total), detail)
            after each chunk
        """
        total = len(chunks)
        debug_log(f"[SUMMARY STAGE] Summarizing {total} chunks, "
                  f"{budget_tokens} tokens / {self.max_chars_for(budget_tokens)} chars each")

        for position, chunk in enumerate(chunks):
            if position > 0 and self.delay_seconds > 0:
                if context.cancel_token.wait(self.delay_seconds):
                    context.cancel_token.raise_if_cancelled("between chunk summaries")

            result = self.summarize(chunk, budget_tokens, context)
            context.summaries.append(result)

            completed = position + 1
            status = "done" if result.ok else "failed"
            yield ProgressEvent(
                "summarizing",
                math.floor(SUMMARY_PROGRESS_SPAN * completed / total),
                f"Summarized section {completed}/{total} ({status})",
            )

        debug_log(f"[SUMMARY STAGE] Complete: {total - context.failed_summaries}/{total} succeeded")
