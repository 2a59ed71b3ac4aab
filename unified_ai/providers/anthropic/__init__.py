"""Anthropic provider package."""

from .mapper import AnthropicMapper
from .provider import AnthropicProvider

__all__ = ["AnthropicMapper", "AnthropicProvider"]
