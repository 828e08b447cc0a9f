"""
Shared fixtures: fake LLM service, fake extractor, and page builders whose
token estimates are exact (ASCII text estimates at 4 characters per token).
"""

import sys
from pathlib import Path

import pytest

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from paperlens.config import PipelineConfig
from paperlens.interpretation.result_types import format_page_marker
from paperlens.storage import InterpretationStore

SENTENCE = "Alpha beta gamma delta. "


def make_page(tokens: int) -> str:
    """ASCII page text estimating at exactly `tokens` tokens, no outer whitespace."""
    length = tokens * 4
    text = (SENTENCE * (length // len(SENTENCE) + 1))[:length]
    if text.endswith(" "):
        text = text[:-1] + "."
    return text


def make_document_text(pages: list[str]) -> str:
    """Page-marked text in the extractor's format."""
    return "\n\n".join(f"{format_page_marker(i)}\n{page}" for i, page in enumerate(pages, 1))


class FakeLLMClient:
    """
    Records prompts and replays scripted responses.

    Args:
        responses: complete() results in call order; an Exception is raised
            instead of returned. Calls beyond the script return "summary N".
        deltas: Text deltas complete_stream() yields
        stream_error: Raised by the stream after yielding the deltas
        request_error: Raised by complete_stream() itself, before any delta
    """

    def __init__(self, responses=None, deltas=None, stream_error=None, request_error=None):
        self.responses = list(responses or [])
        self.deltas = list(deltas) if deltas is not None else ["## Report", "\nBody"]
        self.stream_error = stream_error
        self.request_error = request_error
        self.complete_calls: list[str] = []
        self.stream_calls: list[str] = []
        self.connection_result = (True, "Connected")

    def complete(self, prompt, model=None, max_output_tokens=2000, temperature=0.7):
        index = len(self.complete_calls)
        self.complete_calls.append(prompt)
        if index < len(self.responses):
            response = self.responses[index]
            if isinstance(response, Exception):
                raise response
            return response
        return f"summary {index + 1}"

    def complete_stream(self, prompt, model=None, max_output_tokens=2000, temperature=0.7):
        self.stream_calls.append(prompt)
        if self.request_error is not None:
            raise self.request_error
        return self._stream()

    def _stream(self):
        yield from self.deltas
        if self.stream_error is not None:
            raise self.stream_error

    def test_connection(self):
        return self.connection_result


class FakeExtractor:
    """Returns fixed text for any path and counts calls."""

    def __init__(self, text: str):
        self.text = text
        self.calls: list = []

    def extract_full_text(self, file_path) -> str:
        self.calls.append(file_path)
        return self.text


@pytest.fixture
def config():
    """Valid settings with the default 8192-token context and no pauses."""
    return PipelineConfig(llm_api_key="test-key", summary_delay_seconds=0)


@pytest.fixture
def store(tmp_path):
    return InterpretationStore(tmp_path / "interpretations")


@pytest.fixture
def document_file(tmp_path):
    """A real file on disk so the document identity has size and mtime."""
    path = tmp_path / "paper.txt"
    path.write_text("placeholder contents", encoding="utf-8")
    return path
