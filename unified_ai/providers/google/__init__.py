"""Google Gemini provider package."""

from .mapper import GoogleMapper
from .provider import GoogleProvider

__all__ = ["GoogleMapper", "GoogleProvider"]
