"""
Tests for pipeline.py - extract_and_confirm.
"""
import pytest
import sys
import os
from datetime import timezone

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from errors import ErrorKind, ExtractionError
from pipeline import extract_and_confirm


def _reference_time(prompt):
    return prompt.split("Current date and time: ")[1].splitlines()[0]


@pytest.mark.anyio
async def test_returns_task_and_message(extractor_factory):
    extractor = extractor_factory('{"Title":"Buy groceries","Priority":"medium"}')

    outcome = await extract_and_confirm("Buy groceries", extractor, timezone.utc)

    assert outcome.task.title == "Buy groceries"
    assert outcome.task.priority == "medium"
    assert outcome.message == 'Created task: "Buy groceries"'


@pytest.mark.anyio
async def test_coerced_priority_and_due_line(extractor_factory):
    extractor = extractor_factory(
        '{"Title":"Finish report","Priority":"urgent","DueDate":"2025-03-10T17:00:00Z"}'
    )

    task, message = await extract_and_confirm("finish report by 5 tomorrow, urgent", extractor, timezone.utc)

    assert task.priority == "medium"
    assert "Due: Mon, Mar 10, 5:00 PM" in message
    assert "Priority" not in message


@pytest.mark.anyio
async def test_context_created_per_call(extractor_factory):
    extractor = extractor_factory('{"Title":"x"}')

    await extract_and_confirm("x", extractor, timezone.utc)
    await extract_and_confirm("x", extractor, timezone.utc)

    first, second = (r.messages[0].content for r in extractor.provider.requests)
    assert "+00:00" in first
    assert _reference_time(first) <= _reference_time(second)


@pytest.mark.anyio
async def test_missing_title_produces_no_outcome(extractor_factory):
    extractor = extractor_factory("{}")

    with pytest.raises(ExtractionError) as exc_info:
        await extract_and_confirm("hmm", extractor)
    assert exc_info.value.kind is ErrorKind.MISSING_TITLE


@pytest.mark.anyio
async def test_provider_failure_propagates(extractor_factory, provider_error):
    extractor = extractor_factory(error=provider_error)

    with pytest.raises(ExtractionError) as exc_info:
        await extract_and_confirm("call mom", extractor)
    assert exc_info.value.kind is ErrorKind.PROVIDER_FAILURE
