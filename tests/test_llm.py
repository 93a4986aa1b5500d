"""Test suite for the Gemini-backed generation service."""

import pytest
from google.api_core import exceptions

from prompt_assistant.config import Settings
from prompt_assistant.domain.errors import GenerationError
from prompt_assistant.domain.models import GenerationRequest
from prompt_assistant.services.llm import NOT_CONFIGURED, RATE_LIMITED, GenerationService


class FakeResponse:
    def __init__(self, text=None, blocked=False):
        self._text = text
        self._blocked = blocked

    @property
    def text(self):
        if self._blocked:
            raise ValueError("response was blocked")
        return self._text


class FakeModel:
    def __init__(self, reply):
        self.reply = reply
        self.prompts = []

    async def generate_content_async(self, prompt, generation_config=None):
        self.prompts.append(prompt)
        if isinstance(self.reply, BaseException):
            raise self.reply
        return self.reply


def service_with(reply) -> GenerationService:
    service = GenerationService(Settings(gemini_api_key=None))
    service.model = FakeModel(reply)
    return service


@pytest.mark.asyncio
async def test_unconfigured_service_fails():
    """Test that a missing API key surfaces as a generation error."""
    service = GenerationService(Settings(gemini_api_key=None))
    with pytest.raises(GenerationError) as info:
        await service.generate_prompt(GenerationRequest(user_query="anything"))
    assert info.value.body == {"message": NOT_CONFIGURED}


@pytest.mark.asyncio
async def test_json_reply_is_parsed():
    """Test the structured JSON reply."""
    service = service_with(FakeResponse(
        '{"generatedPrompt": "Qualify {{lead}}", "confidence": 0.6, "suggestions": ["Add scoring"]}'
    ))
    result = await service(GenerationRequest(user_query="lead qualification", context_data='{"org": "acme"}'))

    assert result.generated_prompt == "Qualify {{lead}}"
    assert result.confidence == 0.6
    assert result.suggestions == ["Add scoring"]
    prompt = service.model.prompts[0]
    assert "Request: lead qualification" in prompt
    assert '"org": "acme"' in prompt
    assert "{{variable_name}}" in prompt


@pytest.mark.asyncio
async def test_fenced_and_plain_replies():
    """Test replies wrapped in a code fence or given as plain text."""
    fenced = service_with(FakeResponse('```json\n{"generatedPrompt": "Fenced"}\n```'))
    assert (await fenced(GenerationRequest(user_query="q"))).generated_prompt == "Fenced"

    plain = service_with(FakeResponse("Just a prompt about {{topic}}"))
    assert (await plain(GenerationRequest(user_query="q"))).generated_prompt == "Just a prompt about {{topic}}"


@pytest.mark.asyncio
async def test_null_optional_fields_are_tolerated():
    """Test that null suggestions and confidence keep the generated prompt."""
    service = service_with(FakeResponse(
        '{"generatedPrompt": "Qualify {{lead}}", "confidence": null, "suggestions": null}'
    ))
    result = await service(GenerationRequest(user_query="q"))
    assert result.generated_prompt == "Qualify {{lead}}"
    assert result.confidence is None
    assert result.suggestions == []

    unreadable = service_with(FakeResponse(
        '{"generatedPrompt": "Qualify {{lead}}", "confidence": "high", "suggestions": "Add scoring"}'
    ))
    result = await unreadable(GenerationRequest(user_query="q"))
    assert result.generated_prompt == "Qualify {{lead}}"
    assert result.confidence is None
    assert result.suggestions == ["Add scoring"]


@pytest.mark.asyncio
@pytest.mark.parametrize("reply", ['{"generatedPrompt": ["x"]}', "[1, 2]", '"quoted"', "{}"])
async def test_unusable_json_is_never_the_prompt(reply):
    """Test that JSON without a usable prompt yields no artifact rather than the raw text."""
    service = service_with(FakeResponse(reply))
    result = await service(GenerationRequest(user_query="q"))
    assert result.generated_prompt is None


@pytest.mark.asyncio
async def test_blocked_reply_has_no_artifact():
    """Test that a blocked candidate yields an empty result."""
    service = service_with(FakeResponse(blocked=True))
    result = await service(GenerationRequest(user_query="q"))
    assert result.generated_prompt is None


@pytest.mark.asyncio
async def test_quota_exhaustion_is_rate_limited():
    """Test the mapping of quota errors."""
    service = service_with(exceptions.ResourceExhausted("quota exceeded"))
    with pytest.raises(GenerationError) as info:
        await service(GenerationRequest(user_query="q"))
    assert info.value.body == {"message": RATE_LIMITED}


@pytest.mark.asyncio
async def test_api_errors_are_wrapped():
    """Test that other API errors keep their message."""
    service = service_with(exceptions.InternalServerError("backend unavailable"))
    with pytest.raises(GenerationError) as info:
        await service(GenerationRequest(user_query="q"))
    assert info.value.body["message"] == "backend unavailable"
