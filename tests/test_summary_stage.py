"""
Tests for the sequential per-chunk summary stage.
"""

from unittest.mock import MagicMock, call

import pytest

from paperlens.errors import InterpretationCancelled, ProviderError
from paperlens.interpretation.context import InterpretationContext
from paperlens.interpretation.events import ProgressEvent
from paperlens.interpretation.result_types import Chunk, SummaryFailed, SummaryOk
from paperlens.interpretation.summary_stage import SummaryStage

from conftest import FakeLLMClient


def make_chunks(count: int) -> list[Chunk]:
    return [
        Chunk(index=i, text=f"Chunk {i + 1} text.", estimated_tokens=5, first_page=i + 1, last_page=i + 1)
        for i in range(count)
    ]


@pytest.fixture
def context():
    ctx = InterpretationContext()
    ctx.cancel_token.wait = MagicMock(return_value=False)
    return ctx


class TestSummarize:
    """Single-chunk behaviour."""

    def test_successful_summary(self, context):
        client = FakeLLMClient(responses=["  A short summary.  "])
        stage = SummaryStage(client)

        result = stage.summarize(make_chunks(1)[0], budget_tokens=100, context=context)

        assert result == SummaryOk(index=0, text="A short summary.")
        assert result.ok

    def test_prompt_carries_character_limit_and_chunk_text(self, context):
        client = FakeLLMClient()
        SummaryStage(client).summarize(make_chunks(1)[0], budget_tokens=1529, context=context)

        assert "4587" in client.complete_calls[0]
        assert "Chunk 1 text." in client.complete_calls[0]

    def test_long_summary_is_truncated_with_ellipsis(self, context):
        client = FakeLLMClient(responses=["x" * 50])
        result = SummaryStage(client).summarize(make_chunks(1)[0], budget_tokens=10, context=context)

        assert result.text == "x" * 27 + "..."
        assert len(result.text) == 30

    def test_summary_at_limit_is_kept(self, context):
        client = FakeLLMClient(responses=["y" * 30])
        result = SummaryStage(client).summarize(make_chunks(1)[0], budget_tokens=10, context=context)
        assert result.text == "y" * 30

    def test_empty_response_is_a_failure(self, context):
        client = FakeLLMClient(responses=["   "])
        result = SummaryStage(client).summarize(make_chunks(1)[0], budget_tokens=10, context=context)

        assert result == SummaryFailed(index=0, reason="empty response")
        assert not result.ok

    def test_provider_error_becomes_sentinel(self, context):
        client = FakeLLMClient(responses=[ProviderError("rate limited", status_code=429)])
        result = SummaryStage(client).summarize(make_chunks(1)[0], budget_tokens=10, context=context)

        assert isinstance(result, SummaryFailed)
        assert result.reason == "rate limited"
        assert result.text == "[Summary of section 1 unavailable: rate limited]"

    def test_non_provider_errors_propagate(self, context):
        client = FakeLLMClient(responses=[RuntimeError("bug")])
        with pytest.raises(RuntimeError):
            SummaryStage(client).summarize(make_chunks(1)[0], budget_tokens=10, context=context)


class TestRun:
    """Sequencing, pauses, progress and failure isolation."""

    def test_failed_middle_chunk_keeps_order(self, context):
        client = FakeLLMClient(responses=["first", ProviderError("boom"), "third"])
        stage = SummaryStage(client, delay_seconds=0)

        list(stage.run(make_chunks(3), budget_tokens=100, context=context))

        assert [type(s) for s in context.summaries] == [SummaryOk, SummaryFailed, SummaryOk]
        assert [s.index for s in context.summaries] == [0, 1, 2]
        assert context.summaries[0].text == "first"
        assert context.summaries[2].text == "third"
        assert context.failed_summaries == 1

    def test_progress_owns_first_half(self, context):
        stage = SummaryStage(FakeLLMClient(), delay_seconds=0)

        events = list(stage.run(make_chunks(3), budget_tokens=100, context=context))

        assert all(isinstance(e, ProgressEvent) for e in events)
        assert [e.percent for e in events] == [16, 33, 50]
        assert {e.phase for e in events} == {"summarizing"}

    def test_pauses_between_calls_but_not_after_last(self, context):
        stage = SummaryStage(FakeLLMClient(), delay_seconds=1.0)

        list(stage.run(make_chunks(3), budget_tokens=100, context=context))

        assert context.cancel_token.wait.call_args_list == [call(1.0), call(1.0)]

    def test_single_chunk_never_pauses(self, context):
        stage = SummaryStage(FakeLLMClient(), delay_seconds=1.0)
        list(stage.run(make_chunks(1), budget_tokens=100, context=context))
        context.cancel_token.wait.assert_not_called()

    def test_calls_are_made_in_chunk_order(self, context):
        client = FakeLLMClient()
        list(SummaryStage(client, delay_seconds=0).run(make_chunks(3), 100, context))

        for number, prompt in enumerate(client.complete_calls, 1):
            assert f"Chunk {number} text." in prompt

    def test_cancelled_before_start_makes_no_calls(self):
        context = InterpretationContext()
        context.cancel_token.cancel()
        client = FakeLLMClient()

        with pytest.raises(InterpretationCancelled):
            list(SummaryStage(client, delay_seconds=0).run(make_chunks(2), 100, context))

        assert client.complete_calls == []

    def test_cancel_during_pause_stops_stage(self):
        context = InterpretationContext()
        client = FakeLLMClient()
        stage = SummaryStage(client, delay_seconds=30)
        events = stage.run(make_chunks(3), 100, context)

        next(events)
        context.cancel_token.cancel()

        with pytest.raises(InterpretationCancelled):
            next(events)
        assert len(client.complete_calls) == 1
