"""Text generation driver implementations"""

from .base import TextGenerationDriver
from .openai_driver import OpenAITextGenerationDriver

__all__ = ["OpenAITextGenerationDriver", "TextGenerationDriver"]
