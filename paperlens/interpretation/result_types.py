"""
Result Types for Document Interpretation

Simple dataclasses passed between the pipeline stages.

Key Types:
    Document - Extracted full text with page-boundary markers
    Chunk - A budget-bounded span of the document
    SummaryOk / SummaryFailed - Tagged per-chunk summary result
    InterpretationResult - The final report for one document
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from paperlens.storage.document_identity import DocumentIdentity

# Page-boundary marker written by the text extractor between page texts
PAGE_MARKER_TEMPLATE = "=== page {number} ==="
PAGE_MARKER_PATTERN = re.compile(r'^[ \t]*=== page (\d+) ===[ \t]*$', re.MULTILINE)

# Shown in place of a blank report when the model streams nothing
NO_RESPONSE_MARKER = "[No response received from the language model]"


def format_page_marker(page_number: int) -> str:
    """Marker line placed before the text of page_number (1-based)."""
    return PAGE_MARKER_TEMPLATE.format(number=page_number)


@dataclass(frozen=True)
class Document:
    """
    Full extracted document text.

    Attributes:
        text: Page texts separated by "=== page N ===" marker lines
        source: Where the text came from (file path or label), for logging
    """

    text: str
    source: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.text or not self.text.strip()

    def content_length(self) -> int:
        """Characters of page content, excluding markers and surrounding whitespace."""
        return len(PAGE_MARKER_PATTERN.sub('', self.text).strip())


@dataclass(frozen=True)
class Chunk:
    """
    A budget-bounded span of document text.

    Attributes:
        index: 0-based position in document order
        text: Chunk text (page markers removed, except in the single-pass chunk)
        estimated_tokens: TokenEstimator value for text
        first_page: First page number the chunk draws from (None if unknown)
        last_page: Last page number the chunk draws from (None if unknown)
    """

    index: int
    text: str
    estimated_tokens: int
    first_page: int | None = None
    last_page: int | None = None

    @property
    def number(self) -> int:
        """1-based chunk number for display."""
        return self.index + 1

    @property
    def page_range(self) -> str:
        if self.first_page is None:
            return "whole document"
        if self.first_page == self.last_page:
            return f"page {self.first_page}"
        return f"pages {self.first_page}-{self.last_page}"


@dataclass(frozen=True)
class SummaryOk:
    """A chunk summary the provider returned."""

    index: int
    text: str

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class SummaryFailed:
    """
    Placeholder for a chunk whose summary call failed.

    The text property renders a sentinel line so the failure is visible to
    the synthesis prompt instead of silently dropping the section.
    """

    index: int
    reason: str

    @property
    def ok(self) -> bool:
        return False

    @property
    def text(self) -> str:
        return f"[Summary of section {self.index + 1} unavailable: {self.reason}]"


SummaryResult = Union[SummaryOk, SummaryFailed]


@dataclass(frozen=True)
class InterpretationResult:
    """
    Final report for one document.

    Attributes:
        content: Report text as produced by the model (Markdown)
        identity: Identity of the source document
        timestamp: When the report was produced (UTC)
        from_cache: True if loaded from the store without any LLM call
        single_pass: True if the whole document went to one synthesis call
        chunk_count: Chunks planned (0 for cache hits)
        failed_summaries: Chunks whose summary fell back to a sentinel
    """

    content: str
    identity: DocumentIdentity
    timestamp: datetime
    from_cache: bool = False
    single_pass: bool = True
    chunk_count: int = 0
    failed_summaries: int = 0
