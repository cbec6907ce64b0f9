"""Builder for creating OpenAI clients.

This module provides a factory function to create properly configured OpenAI clients
shared by the text-generation and speech drivers.
"""

from __future__ import annotations

import os

from openai import AsyncOpenAI, OpenAI

from shared.utils import config


def create_openai_client(
    api_key: str | None = None,
    async_client: bool = True,
    timeout: float | None = None,
) -> AsyncOpenAI | OpenAI:
    """
    Create a direct OpenAI client.

    Args:
        api_key: OpenAI API key (auto-detected if None)
        async_client: Whether to return AsyncOpenAI (True) or sync OpenAI (False)
        timeout: Transport timeout in seconds (defaults to ``provider_timeout``)

    Returns:
        Configured AsyncOpenAI or OpenAI client

    Raises:
        ValueError: If API key is not configured
    """
    api_key = api_key or config.get("openai_api_key") or os.getenv("OPENAI_API_KEY")

    if not api_key:
        raise ValueError("OpenAI API key not configured. Set OPENAI_API_KEY environment variable.")

    timeout = timeout if timeout is not None else float(config.get("provider_timeout", 60))

    if async_client:
        return AsyncOpenAI(api_key=api_key, timeout=timeout)
    return OpenAI(api_key=api_key, timeout=timeout)
