"""LLM service for ingredient matching (Anthropic or a local Ollama)."""

import json
import logging
from typing import Any

import anthropic
import httpx

from eat.config import get_settings
from eat.exceptions import LLMResponseError, LLMUnavailableError

logger = logging.getLogger(__name__)


def strip_code_fences(text: str) -> str:
    """Remove a surrounding markdown code block, if the model added one."""
    text = text.strip()
    if text.startswith("```json"):
        text = text[7:]
    if text.startswith("```"):
        text = text[3:]
    if text.endswith("```"):
        text = text[:-3]
    return text.strip()


class LLMService:
    """Single-shot completions from the configured provider. No retries."""

    def __init__(self) -> None:
        self.settings = get_settings()
        self.provider = self.settings.llm_provider
        self.timeout = self.settings.llm_timeout_seconds

    async def generate(
        self,
        prompt: str,
        system_prompt: str | None = None,
        temperature: float = 0.3,
        max_tokens: int = 2048,
    ) -> str:
        """Generate a response from the LLM."""
        if self.provider == "anthropic":
            return await self._generate_anthropic(prompt, system_prompt, temperature, max_tokens)
        return await self._generate_ollama(prompt, system_prompt, temperature, max_tokens)

    async def _generate_anthropic(
        self,
        prompt: str,
        system_prompt: str | None,
        temperature: float,
        max_tokens: int,
    ) -> str:
        if not self.settings.anthropic_api_key:
            raise LLMUnavailableError("Anthropic API not configured")

        client = anthropic.AsyncAnthropic(
            api_key=self.settings.anthropic_api_key,
            timeout=self.timeout,
            max_retries=0,
        )
        kwargs: dict[str, Any] = {}
        if system_prompt:
            kwargs["system"] = system_prompt

        try:
            message = await client.messages.create(
                model=self.settings.anthropic_model,
                max_tokens=max_tokens,
                temperature=temperature,
                messages=[{"role": "user", "content": prompt}],
                **kwargs,
            )
        except anthropic.AnthropicError as e:
            logger.error(f"Anthropic API error: {e}")
            raise LLMUnavailableError(f"Anthropic API error: {e}") from e

        text_blocks = [block.text for block in message.content if block.type == "text"]
        if not text_blocks:
            raise LLMResponseError("Anthropic response contained no text")
        return text_blocks[0]

    async def _generate_ollama(
        self,
        prompt: str,
        system_prompt: str | None,
        temperature: float,
        max_tokens: int,
    ) -> str:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.settings.ollama_base_url}/api/chat",
                    json={
                        "model": self.settings.llm_model,
                        "messages": messages,
                        "stream": False,
                        "format": "json",
                        "options": {
                            "temperature": temperature,
                            "num_predict": max_tokens,
                        },
                    },
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as e:
            logger.error(f"HTTP error calling Ollama: {e}")
            raise LLMUnavailableError(f"Ollama request failed: {e}") from e
        except ValueError as e:
            raise LLMResponseError("Ollama returned a non-JSON body") from e

        try:
            return data["message"]["content"]
        except (KeyError, TypeError) as e:
            raise LLMResponseError("Ollama response is missing message content") from e

    async def generate_json(
        self,
        prompt: str,
        system_prompt: str | None = None,
        temperature: float = 0.1,
    ) -> Any:
        """Generate a response and parse it as JSON.

        Raises:
            LLMUnavailableError: the provider could not be reached.
            LLMResponseError: the reply was not valid JSON.
        """
        result = await self.generate(
            prompt=prompt,
            system_prompt=system_prompt,
            temperature=temperature,
        )
        cleaned = strip_code_fences(result)
        try:
            return json.loads(cleaned)
        except json.JSONDecodeError as e:
            logger.warning(f"Failed to parse LLM response as JSON: {e}")
            logger.warning(f"Raw response: {result}")
            raise LLMResponseError("LLM response was not valid JSON") from e
