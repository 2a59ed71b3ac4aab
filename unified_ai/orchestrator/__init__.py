"""
Unified AI - Orchestration Helpers

Components that sit beside the client:
- Multi-turn conversation history with token-budgeted context windows
- Provider health checks with cached per-provider status
"""

from .conversation import Conversation, ConversationManager, estimate_message_tokens, estimate_tokens
from .health import (
    DEFAULT_HEALTH_CHECK_TIMEOUT,
    ProviderHealthChecker,
    ProviderHealthResult,
    ProviderHealthStatus,
)

__all__ = [
    # Conversations
    "Conversation",
    "ConversationManager",
    "estimate_tokens",
    "estimate_message_tokens",
    # Health
    "ProviderHealthChecker",
    "ProviderHealthResult",
    "ProviderHealthStatus",
    "DEFAULT_HEALTH_CHECK_TIMEOUT",
]
