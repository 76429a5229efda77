from datetime import tzinfo
from typing import NamedTuple, Optional

from extractor import Extractor
from models import ExtractionContext, ParsedTask
from presenter import render_confirmation


class ExtractionOutcome(NamedTuple):
    task: ParsedTask
    message: str


async def extract_and_confirm(text: str, extractor: Extractor, tz: Optional[tzinfo] = None) -> ExtractionOutcome:
    """Extract a task from free text and render its confirmation message.

    The context is created per call so relative dates resolve against now.
    ExtractionError propagates to the caller, who owns retries and user messaging.
    """
    context = ExtractionContext.current(tz)
    task = await extractor.extract(text, context)
    return ExtractionOutcome(task=task, message=render_confirmation(task, tz))
