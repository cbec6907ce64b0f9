"""OpenAI driver for text generation using AsyncOpenAI."""

from __future__ import annotations

from typing import Any

from openai import AsyncOpenAI

from shared.openai_client import create_openai_client
from shared.utils import config

from .base import TextGenerationDriver


class OpenAITextGenerationDriver(TextGenerationDriver):
    """Chat-completions implementation of the text generation boundary."""

    def __init__(self, client: AsyncOpenAI | None = None, model: str | None = None):
        """Initialize OpenAI client."""
        self.client = client or create_openai_client(async_client=True)
        self.model = model or config.get("text_model", "gpt-4o")

    async def generate(self, prompt: str, system_prompt: str | None = None, **kwargs: Any) -> str:
        """Generate text using OpenAI chat completions."""
        messages: list[dict[str, str]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        response = await self.client.chat.completions.create(
            model=kwargs.get("model", self.model),
            messages=messages,
            temperature=kwargs.get("temperature", 0.7),
            max_tokens=kwargs.get("max_tokens", 500),
        )

        if not response.choices:
            return ""
        content = response.choices[0].message.content
        if content is not None:
            return content.strip()
        return ""
