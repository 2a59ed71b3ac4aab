"""
Providers Module

Adapters that translate unified requests into provider wire calls and back.

Public API:
    - BaseProvider: Abstract base class for all provider adapters
    - ProviderMapper: Shared mapping helpers (model resolution, roles)
    - ParameterPolicy / ParameterRestriction: Restricted-parameter tables

    Provider implementations:
    - OpenAIProvider: OpenAI Chat Completions, Responses, media and video
    - AnthropicProvider: Anthropic Claude messages
    - GoogleProvider: Google Gemini / Imagen / Veo
    - CohereProvider: Cohere v2 chat and embeddings
    - OpenAICompatibleProvider: Custom OpenAI-compatible endpoints
    - MistralProvider, XaiProvider: Hosted OpenAI-compatible presets

    Management:
    - ProviderRegistry: id -> adapter mapping
    - ProviderFactory: builds adapters from ProviderConfig

Usage:
    >>> from unified_ai.config import ProviderConfig
    >>> from unified_ai.providers import ProviderFactory
    >>>
    >>> provider = ProviderFactory.create_provider(ProviderConfig(id="openai", api_key="sk-..."))
    >>> await provider.init()
    >>> response = await provider.chat(ChatRequest(messages=[Message(role="user", content="Hello!")]))
"""

from .anthropic import AnthropicMapper, AnthropicProvider
from .base import BaseProvider
from .cohere import CohereMapper, CohereProvider
from .factory import ProviderFactory
from .google import GoogleMapper, GoogleProvider
from .mapper import ProviderMapper, resolve_model
from .openai import OpenAIMapper, OpenAIProvider
from .openai_compatible import MistralProvider, OpenAICompatibleProvider, XaiProvider
from .policy import (
    ANTHROPIC_POLICY,
    OPENAI_CHAT_POLICY,
    OPENAI_RESPONSES_POLICY,
    ParameterPolicy,
    ParameterRestriction,
)
from .polling import PollSettings, poll_job
from .registry import ProviderRegistry

__all__ = [
    # Base classes
    "BaseProvider",
    "ProviderMapper",
    "resolve_model",
    # Parameter policies
    "ParameterPolicy",
    "ParameterRestriction",
    "OPENAI_CHAT_POLICY",
    "OPENAI_RESPONSES_POLICY",
    "ANTHROPIC_POLICY",
    # Provider implementations
    "OpenAIProvider",
    "OpenAIMapper",
    "AnthropicProvider",
    "AnthropicMapper",
    "GoogleProvider",
    "GoogleMapper",
    "CohereProvider",
    "CohereMapper",
    "OpenAICompatibleProvider",
    "MistralProvider",
    "XaiProvider",
    # Management
    "ProviderRegistry",
    "ProviderFactory",
    # Async jobs
    "PollSettings",
    "poll_job",
]
