from abc import ABC, abstractmethod
from typing import Any


class TextGenerationDriver(ABC):
    """Abstract base class for text generation drivers."""

    @abstractmethod
    async def generate(self, prompt: str, system_prompt: str | None = None, **kwargs: Any) -> str:
        """Return the provider's completion for ``prompt``."""
        pass
