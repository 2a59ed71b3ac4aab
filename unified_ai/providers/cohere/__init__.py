"""Cohere provider package."""

from .mapper import CohereMapper
from .provider import CohereProvider

__all__ = ["CohereMapper", "CohereProvider"]
