"""
Chunk Planner for whole-document interpretation.

Partitions a document's extracted text into chunks whose token estimate
fits the provider's context budget, so each chunk can be summarized in a
single completion call.

Key Features:
- Single-pass detection: a document that already fits is one chunk
- Page-aware packing: whole pages are greedily packed in document order
- Sentence fallback: a page that alone exceeds the budget is split at
  Latin (.!?) and CJK (。！？) sentence boundaries
- An atomic unit (page, then sentence) larger than the budget is kept whole
"""

import re

from paperlens.logging_config import debug_log

from .result_types import PAGE_MARKER_PATTERN, Chunk, Document
from .token_estimator import count_chars, estimate_tokens, tokens_from_counts


class _ChunkBuilder:
    """Greedy accumulator that closes a chunk when the next unit would overflow."""

    def __init__(self, budget: int):
        self.budget = budget
        self.chunks: list[Chunk] = []
        self._parts: list[str] = []
        self._separators: list[str] = []
        self._cjk = 0
        self._other = 0
        self._first_page: int | None = None
        self._last_page: int | None = None

    def add(self, unit: str, page_number: int | None, separator: str) -> None:
        unit_cjk, unit_other = count_chars(unit)

        if self._parts:
            candidate = tokens_from_counts(
                self._cjk + unit_cjk,
                self._other + unit_other + len(separator),
            )
            if candidate > self.budget:
                self.close()

        if self._parts:
            self._separators.append(separator)
            self._other += len(separator)
        self._parts.append(unit)
        self._cjk += unit_cjk
        self._other += unit_other

        if page_number is not None:
            if self._first_page is None:
                self._first_page = page_number
            self._last_page = page_number

    def close(self) -> None:
        if not self._parts:
            return

        pieces = [self._parts[0]]
        for separator, part in zip(self._separators, self._parts[1:]):
            pieces.append(separator)
            pieces.append(part)

        self.chunks.append(Chunk(
            index=len(self.chunks),
            text="".join(pieces),
            estimated_tokens=tokens_from_counts(self._cjk, self._other),
            first_page=self._first_page,
            last_page=self._last_page,
        ))

        self._parts = []
        self._separators = []
        self._cjk = 0
        self._other = 0
        self._first_page = None
        self._last_page = None


class ChunkPlanner:
    """
    Budget-bounded document chunker.

    Example:
        planner = ChunkPlanner()
        chunks = planner.plan(Document(text=full_text), available_budget=5734)
        if len(chunks) == 1:
            ...  # whole document fits one request
    """

    PAGE_SEPARATOR = "\n\n"
    SENTENCE_SEPARATOR = " "

    # Split after CJK terminal punctuation, or at the whitespace following
    # Latin terminal punctuation (so "3.14" and "e.g.x" stay intact)
    SENTENCE_BOUNDARY = re.compile(r'(?<=[。！？])|(?<=[.!?])\s+')

    def plan(self, document: Document, available_budget: int) -> list[Chunk]:
        """
        Partition the document into chunks of at most available_budget tokens.

        Args:
            document: Extracted document (must contain text)
            available_budget: Token budget per chunk (>= 1)

        Returns:
            Chunks in document order. Exactly one chunk holding the whole
            document text when the document already fits.

        Raises:
            ValueError: If the document is empty or the budget is below 1
        """
        if document.is_empty:
            raise ValueError("Cannot plan chunks for an empty document")
        if available_budget < 1:
            raise ValueError(f"Available budget must be at least 1 token, got {available_budget}")

        total_tokens = estimate_tokens(document.text)
        if total_tokens <= available_budget:
            debug_log(
                f"[CHUNK PLANNER] {document.source or 'document'}: {total_tokens} tokens "
                f"fit budget {available_budget}; single pass"
            )
            return [Chunk(index=0, text=document.text, estimated_tokens=total_tokens)]

        pages = self._split_pages(document.text)
        builder = _ChunkBuilder(available_budget)
        forced_splits = 0

        for page_number, page_text in pages:
            if estimate_tokens(page_text) > available_budget:
                # Oversized page: its sentences start a fresh chunk, and the
                # trailing sentence group stays open for the following pages
                builder.close()
                forced_splits += 1
                for sentence in self._split_sentences(page_text):
                    builder.add(sentence, page_number, self.SENTENCE_SEPARATOR)
            else:
                builder.add(page_text, page_number, self.PAGE_SEPARATOR)

        builder.close()
        chunks = builder.chunks

        debug_log(
            f"[CHUNK PLANNER] {document.source or 'document'}: {total_tokens} tokens, "
            f"{len(pages)} pages -> {len(chunks)} chunks (budget {available_budget}, "
            f"{forced_splits} pages split at sentences)"
        )
        return chunks

    def _split_pages(self, text: str) -> list[tuple[int | None, str]]:
        """
        Split text on "=== page N ===" marker lines.

        Text before the first marker (normally an empty artifact) is kept as an
        unnumbered page when it has content. Empty pages are dropped.

        Returns:
            List of (page_number, stripped page text)
        """
        parts = PAGE_MARKER_PATTERN.split(text)
        pages: list[tuple[int | None, str]] = []

        leading = parts[0].strip()
        if leading:
            pages.append((None, leading))

        # re.split with one group yields [lead, number, text, number, text, ...]
        for number, page_text in zip(parts[1::2], parts[2::2]):
            page_text = page_text.strip()
            if page_text:
                pages.append((int(number), page_text))

        return pages

    def _split_sentences(self, text: str) -> list[str]:
        """Split text at terminal punctuation, keeping punctuation with its sentence."""
        sentences = [s.strip() for s in self.SENTENCE_BOUNDARY.split(text) if s and s.strip()]
        return sentences
