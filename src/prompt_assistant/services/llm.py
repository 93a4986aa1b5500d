"""Prompt generation backed by Google's Gemini model."""

import json
import re
from typing import Optional

import google.generativeai as genai
import pydantic
import structlog
from google.api_core import exceptions

from ..config import Settings, get_settings
from ..domain.errors import GenerationError
from ..domain.models import GenerationRequest, GenerationResult

logger = structlog.get_logger()

NOT_CONFIGURED = "Generation service is not configured"
RATE_LIMITED = "rate limited"

_CODE_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


class GenerationService:
    """Turns a plain-language request into a reusable prompt template."""

    def __init__(self, settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self.model_name = settings.model
        self.model = None
        if settings.gemini_api_key:
            genai.configure(api_key=settings.gemini_api_key)
            self.model = genai.GenerativeModel(self.model_name)
        logger.info(
            "generation_service_init",
            model=self.model_name,
            configured=self.model is not None,
        )

    async def __call__(self, request: GenerationRequest) -> GenerationResult:
        return await self.generate_prompt(request)

    def _format_authoring_prompt(self, request: GenerationRequest) -> str:
        """Wrap the user's request in authoring instructions."""
        try:
            context = json.loads(request.context_data or "{}")
        except ValueError:
            context = {}

        prompt = f"""You are an expert prompt engineer. Write a reusable prompt template for the request below.
Mark every value that changes between uses as a placeholder of the form {{{{variable_name}}}} (letters, digits and underscores only).
Reply with a JSON object with the keys:
  "generatedPrompt": the prompt template text,
  "confidence": a number between 0 and 1,
  "suggestions": up to three short follow-up requests the user might make next.
Context: {json.dumps(context) if context else 'None'}
Request: {request.user_query}"""
        return prompt

    def _extract_text(self, response) -> str:
        try:
            text = response.text
        except ValueError as e:
            # Raised when the candidate was blocked and carries no text part
            logger.warning("generation_blocked", error=str(e))
            return ""
        return (text or "").strip()

    def _parse_reply(self, text: str) -> GenerationResult:
        """Read the model's JSON reply; plain text is taken as the prompt itself."""
        match = _CODE_FENCE.match(text)
        if match:
            text = match.group(1)
        try:
            payload = json.loads(text)
        except ValueError:
            logger.debug("generation_reply_not_json", length=len(text))
            return GenerationResult(generated_prompt=text or None)

        if not isinstance(payload, dict):
            logger.warning("generation_reply_unexpected_shape", kind=type(payload).__name__)
            return GenerationResult()
        try:
            return GenerationResult.model_validate(payload)
        except pydantic.ValidationError as e:
            logger.warning("generation_reply_invalid", error=str(e))
            return GenerationResult()

    async def generate_prompt(self, request: GenerationRequest) -> GenerationResult:
        """Generate a prompt template for ``request``."""
        if self.model is None:
            logger.error("generation_service_not_configured")
            raise GenerationError(NOT_CONFIGURED)

        prompt = self._format_authoring_prompt(request)
        try:
            response = await self.model.generate_content_async(
                prompt,
                generation_config={"response_mime_type": "application/json"},
            )
        except exceptions.ResourceExhausted:
            logger.warning("gemini_quota_exhausted", model=self.model_name)
            raise GenerationError(RATE_LIMITED)
        except exceptions.GoogleAPIError as e:
            message = getattr(e, "message", None) or str(e)
            logger.error("generation_api_error", model=self.model_name, error=message)
            raise GenerationError(message)

        result = self._parse_reply(self._extract_text(response))
        logger.info(
            "generation_completed",
            model=self.model_name,
            has_prompt=bool(result.generated_prompt),
            suggestions=len(result.suggestions or []),
        )
        return result
