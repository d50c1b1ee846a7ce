"""LLM service tests."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from eat.exceptions import LLMResponseError, LLMUnavailableError
from eat.services.llm import LLMService, strip_code_fences


@pytest.mark.parametrize(
    ("raw", "cleaned"),
    [
        ('{"matches": []}', '{"matches": []}'),
        ('```json\n{"matches": []}\n```', '{"matches": []}'),
        ('```\n{"a": 1}\n```', '{"a": 1}'),
        ('  {"a": 1}  \n', '{"a": 1}'),
    ],
)
def test_strip_code_fences(raw, cleaned):
    assert strip_code_fences(raw) == cleaned


@pytest.mark.asyncio
async def test_generate_json_parses_fenced_reply():
    service = LLMService()
    service.generate = AsyncMock(return_value='```json\n{"matches": [], "unmatched": ["salt"]}\n```')

    result = await service.generate_json("prompt")

    assert result == {"matches": [], "unmatched": ["salt"]}


@pytest.mark.asyncio
async def test_generate_json_rejects_invalid_json():
    service = LLMService()
    service.generate = AsyncMock(return_value="Sure! Here are your matches: chicken")

    with pytest.raises(LLMResponseError):
        await service.generate_json("prompt")


@pytest.mark.asyncio
async def test_anthropic_without_key_is_unavailable():
    service = LLMService()
    service.provider = "anthropic"
    service.settings = service.settings.model_copy(update={"anthropic_api_key": None})

    with pytest.raises(LLMUnavailableError):
        await service.generate("prompt")


@pytest.mark.asyncio
async def test_ollama_connection_error_is_unavailable():
    service = LLMService()
    service.provider = "ollama"

    client = MagicMock()
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=False)
    client.post = AsyncMock(side_effect=httpx.ConnectError("connection refused"))

    with (
        patch("eat.services.llm.httpx.AsyncClient", return_value=client),
        pytest.raises(LLMUnavailableError),
    ):
        await service.generate("prompt")


@pytest.mark.asyncio
async def test_ollama_reply_content_is_returned():
    service = LLMService()
    service.provider = "ollama"

    response = MagicMock()
    response.json.return_value = {"message": {"content": '{"matches": []}'}}
    client = MagicMock()
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=False)
    client.post = AsyncMock(return_value=response)

    with patch("eat.services.llm.httpx.AsyncClient", return_value=client):
        result = await service.generate("prompt", system_prompt="system")

    assert result == '{"matches": []}'
    sent = client.post.call_args.kwargs["json"]
    assert sent["messages"][0] == {"role": "system", "content": "system"}
    assert sent["stream"] is False
