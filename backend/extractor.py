import json
import logging
from typing import Optional

from pydantic import ValidationError

from errors import ErrorKind, ExtractionError, ProviderError
from models import ChatMessage, CompletionRequest, CompletionResponse, ExtractionContext, ParsedTask
from prompts import TASK_SCHEMA, build_system_prompt
from providers import CompletionProvider

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = 500


class Extractor:
    """Turns free text into a validated ParsedTask with one provider call.

    The provider handle is shared and read-only; each call builds its own
    request and context, so concurrent calls need no locking.
    """

    def __init__(self, provider: CompletionProvider, model: str, max_tokens: int = DEFAULT_MAX_TOKENS):
        self.provider = provider
        self.model = model
        self.max_tokens = max_tokens

    def build_request(self, text: str, context: ExtractionContext) -> CompletionRequest:
        return CompletionRequest(
            model=self.model,
            max_tokens=self.max_tokens,
            json_output=True,
            json_schema=TASK_SCHEMA,
            messages=[
                ChatMessage(role="system", content=build_system_prompt(context.reference_time)),
                ChatMessage(role="user", content=text),
            ],
        )

    async def extract(self, text: str, context: Optional[ExtractionContext] = None) -> ParsedTask:
        if not text or not text.strip():
            raise ValueError("input text must not be empty")
        if context is None:
            context = ExtractionContext.current()

        request = self.build_request(text, context)
        try:
            response = await self.provider.complete(request)
        except ProviderError as e:
            logger.warning("Provider failure during extraction: %s", e)
            raise ExtractionError(ErrorKind.PROVIDER_FAILURE, str(e), cause=e) from e

        payload = _first_content(response)
        logger.debug("Provider response: %s", payload)
        if payload is None or not payload.strip():
            logger.warning("Provider returned no usable text")
            raise ExtractionError(ErrorKind.EMPTY_RESPONSE, "Failed to parse task from AI response")

        return parse_task_payload(payload, context)


def _first_content(response: CompletionResponse) -> Optional[str]:
    if not response.candidates:
        return None
    return response.candidates[0].content


def strip_code_fence(text: str) -> str:
    """Remove a Markdown code block wrapping the whole payload, if present."""
    text = text.strip()
    if text.startswith("```"):
        lines = text.split("\n")
        lines = lines[1:]  # Remove first line (```json)
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]  # Remove last line (```)
        text = "\n".join(lines)
    return text


def parse_task_payload(payload: str, context: ExtractionContext) -> ParsedTask:
    """Parse and validate the provider's structured answer.

    Raises ExtractionError(MALFORMED_RESPONSE) for anything that is not a JSON
    object matching the record shape, and ExtractionError(MISSING_TITLE) when
    the object has no usable Title.
    """
    try:
        data = json.loads(strip_code_fence(payload))
    except json.JSONDecodeError as e:
        logger.warning("Provider response is not valid JSON: %s", e)
        raise ExtractionError(ErrorKind.MALFORMED_RESPONSE, "Response is not valid JSON", cause=e) from e

    if not isinstance(data, dict):
        logger.warning("Provider response is JSON but not an object: %s", type(data).__name__)
        raise ExtractionError(ErrorKind.MALFORMED_RESPONSE, "Response is not a JSON object")

    title = data.get("Title")
    if title is None or (isinstance(title, str) and not title.strip()):
        logger.warning("Provider response has no title")
        raise ExtractionError(ErrorKind.MISSING_TITLE, "Could not determine task title from input")

    try:
        return ParsedTask.model_validate(data, context={"tz": context.tz})
    except ValidationError as e:
        logger.warning("Provider response does not match the task schema: %s", e)
        raise ExtractionError(ErrorKind.MALFORMED_RESPONSE, "Response does not match the task schema", cause=e) from e
