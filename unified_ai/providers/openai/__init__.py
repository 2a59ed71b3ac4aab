"""OpenAI provider package."""

from .mapper import OpenAIMapper
from .provider import OpenAIProvider

__all__ = ["OpenAIMapper", "OpenAIProvider"]
