"""
Interpretation Orchestrator for whole-paper interpretation.

Coordinates the full pipeline from a document file to a saved report:
1. CACHE: Return the saved interpretation when the document is unchanged
2. EXTRACT: Page-marked full text
3. PLAN: Budget-bounded chunks
4a. SINGLE PASS: One streamed interpretation of the whole text, or
4b. MAP: Per-chunk summaries, then REDUCE: one streamed interpretation of
    the labelled summaries
5. PERSIST: Save the report under the document identity

interpret() is a generator of ProgressEvent / ContentEvent / ResultEvent
values. Stages never touch a UI; the caller renders what it receives.
"""

import math
import threading
from collections.abc import Callable, Iterator
from datetime import datetime, timezone
from pathlib import Path

from paperlens.ai import ChatCompletionClient
from paperlens.config import SUMMARY_BUDGET_FACTOR, PipelineConfig, load_pipeline_config
from paperlens.errors import (
    ExtractionError,
    InterpretationCancelled,
    InterpretationError,
    PipelineBusyError,
)
from paperlens.extraction import PdfTextExtractor
from paperlens.logging_config import Timer, debug_log, error, info
from paperlens.storage import DocumentIdentity, InterpretationStore

from .chunk_planner import ChunkPlanner
from .context import CancellationToken, InterpretationContext, PipelineStage
from .events import ContentEvent, PipelineEvent, ProgressEvent, ResultEvent
from .prompts import build_reduce_template, combine_summaries
from .result_types import NO_RESPONSE_MARKER, Document, InterpretationResult
from .summary_stage import SummaryStage
from .synthesis_stage import SynthesisStage
from .token_estimator import estimate_tokens

# Progress sink signature: (phase, percent, detail)
ProgressSink = Callable[[str, int, str], None]
ContentSink = Callable[[str], None]


class InterpretationOrchestrator:
    """
    Main coordinator for document interpretation.

    One request runs at a time per orchestrator; a second interpret() started
    while one is in flight raises PipelineBusyError.

    Example:
        orchestrator = InterpretationOrchestrator.from_config(load_pipeline_config())

        for event in orchestrator.interpret("paper.pdf"):
            if isinstance(event, ContentEvent):
                render(event.text)

        # or, without handling events:
        result = orchestrator.run("paper.pdf", progress_sink=print)
    """

    def __init__(
        self,
        config: PipelineConfig,
        client,
        extractor=None,
        store: InterpretationStore | None = None,
        planner: ChunkPlanner | None = None,
        summary_stage: SummaryStage | None = None,
        synthesis_stage: SynthesisStage | None = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            config: Pipeline settings (validated when a request starts)
            client: LLM client with complete() and complete_stream()
            extractor: Object with extract_full_text(path) -> str
            store: Interpretation store (default location if None)
            planner: Chunk planner (creates one if None)
            summary_stage: Per-chunk summarizer (built from config if None)
            synthesis_stage: Streaming synthesizer (built from config if None)
        """
        self.config = config
        self.client = client
        self.extractor = extractor or PdfTextExtractor()
        self.store = store or InterpretationStore()
        self.planner = planner or ChunkPlanner()
        self.summary_stage = summary_stage or SummaryStage(
            client,
            max_output_tokens=config.max_output_tokens,
            temperature=config.temperature,
            delay_seconds=config.summary_delay_seconds,
        )
        self.synthesis_stage = synthesis_stage or SynthesisStage(
            client,
            max_output_tokens=config.max_output_tokens,
            temperature=config.temperature,
        )

        self._busy = threading.Lock()
        self._context: InterpretationContext | None = None
        self.last_context: InterpretationContext | None = None

        debug_log(f"[ORCHESTRATOR] Initialized for model {config.llm_model}, "
                  f"context length {config.context_length}")

    @classmethod
    def from_config(cls, config: PipelineConfig | None = None, **components) -> "InterpretationOrchestrator":
        """Build an orchestrator with a real chat-completions client."""
        config = config or load_pipeline_config()
        client = ChatCompletionClient(
            api_url=config.llm_url,
            model=config.llm_model,
            api_key=config.llm_api_key,
            timeout=config.timeout_seconds,
        )
        return cls(config, client, **components)

    @property
    def is_busy(self) -> bool:
        return self._busy.locked()

    @property
    def current_stage(self) -> PipelineStage | None:
        context = self._context
        return context.stage if context else None

    def cancel(self) -> None:
        """Ask the in-flight request (if any) to stop at its next checkpoint."""
        context = self._context
        if context is not None:
            debug_log("[ORCHESTRATOR] Cancellation requested")
            context.cancel_token.cancel()

    def interpret(
        self,
        document_path,
        force_refresh: bool = False,
        cancel_token: CancellationToken | None = None,
    ) -> Iterator[PipelineEvent]:
        """
        Interpret a document, yielding events as the pipeline advances.

        Args:
            document_path: Path of the PDF or TXT file
            force_refresh: Ignore a saved interpretation and run the pipeline
            cancel_token: Token the caller can use to stop the request

        Yields:
            ProgressEvent, ContentEvent and finally one ResultEvent

        Raises:
            PipelineBusyError: If another request is running on this orchestrator
            ConfigurationError: If the settings are unusable
            ExtractionError: If the document has too little text
            ProviderError: If the synthesis call fails
            InterpretationCancelled: If the request was cancelled
        """
        if not self._busy.acquire(blocking=False):
            raise PipelineBusyError("another interpretation is already running")

        context = InterpretationContext(cancel_token=cancel_token or CancellationToken())
        self._context = context
        self.last_context = context
        try:
            yield from self._interpret(Path(document_path), force_refresh, context)
        except InterpretationCancelled as e:
            context.fail()
            info(f"[ORCHESTRATOR] {e}")
            raise
        except InterpretationError as e:
            context.fail()
            error(f"[ORCHESTRATOR] {e}")
            raise
        except BaseException:
            context.fail()
            raise
        finally:
            self._context = None
            self._busy.release()

    def _interpret(self, document_path: Path, force_refresh: bool,
                   context: InterpretationContext) -> Iterator[PipelineEvent]:
        token = context.cancel_token
        identity = DocumentIdentity.from_path(document_path)

        if not force_refresh:
            stored = self.store.get(identity)
            if stored is not None:
                info(f"[ORCHESTRATOR] Using saved interpretation for {document_path.name}")
                context.enter(PipelineStage.DONE)
                result = InterpretationResult(
                    content=stored.content,
                    identity=identity,
                    timestamp=stored.timestamp,
                    from_cache=True,
                )
                yield ProgressEvent(
                    "done", 100,
                    f"Loaded saved interpretation from {stored.timestamp.astimezone():%Y-%m-%d %H:%M}",
                )
                yield ContentEvent(stored.content)
                yield ResultEvent(result)
                return

        self.config.validate()

        # EXTRACT
        context.enter(PipelineStage.EXTRACTING)
        yield ProgressEvent("extracting", 0, f"Extracting text from {document_path.name}")
        document = self._extract(document_path)
        context.document = document
        token.raise_if_cancelled("after extraction")

        # PLAN
        context.enter(PipelineStage.PLANNING)
        budget = self.config.available_budget
        with Timer("ChunkPlanning"):
            chunks = self.planner.plan(document, budget)
        context.chunks = chunks
        total_tokens = estimate_tokens(document.text)
        yield ProgressEvent(
            "planning", 0,
            f"Document: ~{total_tokens} tokens, {len(chunks)} chunk(s), "
            f"context length {self.config.context_length}",
        )
        token.raise_if_cancelled("after planning")

        if len(chunks) == 1:
            # SINGLE PASS
            context.enter(PipelineStage.SINGLE_PASS)
            yield from self.synthesis_stage.run(
                self.config.interpretation_prompt, chunks[0].text, context
            )
        else:
            # MAP
            context.enter(PipelineStage.SUMMARIZING)
            summary_budget = self.summary_budget(budget, len(chunks))
            yield from self.summary_stage.run(chunks, summary_budget, context)
            token.raise_if_cancelled("after summarizing")

            # REDUCE
            context.enter(PipelineStage.SYNTHESIZING)
            yield from self.synthesis_stage.run(
                build_reduce_template(self.config.interpretation_prompt),
                combine_summaries(context.summaries),
                context,
            )

        # PERSIST
        content = context.synthesis_text
        timestamp = datetime.now(timezone.utc)
        context.enter(PipelineStage.DONE)
        if content != NO_RESPONSE_MARKER:
            self._persist(identity, content, timestamp)

        result = InterpretationResult(
            content=content,
            identity=identity,
            timestamp=timestamp,
            single_pass=len(chunks) == 1,
            chunk_count=len(chunks),
            failed_summaries=context.failed_summaries,
        )
        info(f"[ORCHESTRATOR] Interpretation of {document_path.name} complete: "
             f"{len(chunks)} chunk(s), {result.failed_summaries} failed summaries")
        yield ProgressEvent("done", 100, "Interpretation complete")
        yield ResultEvent(result)

    def _extract(self, document_path: Path) -> Document:
        with Timer(f"Extracting {document_path.name}"):
            text = self.extractor.extract_full_text(document_path)

        document = Document(text=text or "", source=str(document_path))
        if document.is_empty:
            raise ExtractionError(f"no text could be extracted from {document_path.name}")

        length = document.content_length()
        if length < self.config.min_document_chars:
            raise ExtractionError(
                f"only {length} characters extracted from {document_path.name}; "
                f"at least {self.config.min_document_chars} are needed"
            )
        return document

    @staticmethod
    def summary_budget(available_budget: int, chunk_count: int) -> int:
        """Token budget of each chunk summary: floor(available / chunks * 0.8), at least 1."""
        return max(1, math.floor(available_budget / chunk_count * SUMMARY_BUDGET_FACTOR))

    def _persist(self, identity: DocumentIdentity, content: str, timestamp: datetime) -> None:
        try:
            self.store.put(identity, content, timestamp)
        except OSError as e:
            error(f"[ORCHESTRATOR] Could not save interpretation for {identity.path}: {e}")

    def run(
        self,
        document_path,
        progress_sink: ProgressSink | None = None,
        content_sink: ContentSink | None = None,
        force_refresh: bool = False,
        cancel_token: CancellationToken | None = None,
    ) -> InterpretationResult:
        """
        Run interpret() to completion, forwarding events to optional sinks.

        Args:
            document_path: Path of the PDF or TXT file
            progress_sink: Called with (phase, percent, detail) per progress event
            content_sink: Called with the full report text so far per content event
            force_refresh: Ignore a saved interpretation
            cancel_token: Token the caller can use to stop the request

        Returns:
            InterpretationResult
        """
        result = None
        for event in self.interpret(document_path, force_refresh=force_refresh, cancel_token=cancel_token):
            if isinstance(event, ProgressEvent):
                if progress_sink:
                    progress_sink(*event.as_tuple())
            elif isinstance(event, ContentEvent):
                if content_sink:
                    content_sink(event.text)
            elif isinstance(event, ResultEvent):
                result = event.result
        return result

    def test_connection(self) -> tuple[bool, str]:
        """Check endpoint, model and credential with a tiny completion."""
        try:
            self.config.validate()
        except InterpretationError as e:
            return False, str(e)
        return self.client.test_connection()
