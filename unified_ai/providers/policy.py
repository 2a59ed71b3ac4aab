"""
Unified AI - Restricted-Parameter Policies

Some model families accept only a reduced set of sampling parameters. The
rules live in data (one ParameterRestriction per family) so new families are
added to a table instead of to mapping code.

Model patterns are shell-style globs matched case-insensitively:
"o1" matches exactly, "o1-*" matches every o1 variant.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from fnmatch import fnmatchcase
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParameterRestriction:
    """
    Parameter rules for one model family.

    Attributes:
        patterns: Model-id globs this restriction applies to
        fixed: Parameters accepted only with one value; other values are dropped
        renames: Wire key renames (e.g. max_tokens -> max_completion_tokens)
        drop: Parameters never sent
        exclusive: If the key is present, the listed parameters are dropped
    """

    patterns: tuple[str, ...]
    fixed: Mapping[str, Any] = field(default_factory=dict)
    renames: Mapping[str, str] = field(default_factory=dict)
    drop: frozenset[str] = frozenset()
    exclusive: Mapping[str, frozenset[str]] = field(default_factory=dict)

    def matches(self, model: str) -> bool:
        lowered = model.lower()
        return any(fnmatchcase(lowered, pattern.lower()) for pattern in self.patterns)

    def apply(self, params: Mapping[str, Any]) -> dict[str, Any]:
        result = dict(params)

        for key in self.drop:
            result.pop(key, None)

        for key, allowed in self.fixed.items():
            if key in result and result[key] != allowed:
                result.pop(key)

        for key, removed in self.exclusive.items():
            if result.get(key) is not None:
                for name in removed:
                    result.pop(name, None)

        for old, new in self.renames.items():
            if old in result:
                result[new] = result.pop(old)

        return result


class ParameterPolicy:
    """Ordered restriction table for one provider endpoint; first match wins."""

    def __init__(self, restrictions: Iterable[ParameterRestriction] = ()) -> None:
        self.restrictions = tuple(restrictions)

    def restriction_for(self, model: str) -> ParameterRestriction | None:
        for restriction in self.restrictions:
            if restriction.matches(model):
                return restriction
        return None

    def is_restricted(self, model: str) -> bool:
        return self.restriction_for(model) is not None

    def apply(self, model: str, params: Mapping[str, Any]) -> dict[str, Any]:
        """
        Filter sampling parameters for a model.

        Unrestricted models get every parameter back unchanged. None values
        are never sent.
        """
        params = {k: v for k, v in params.items() if v is not None}
        restriction = self.restriction_for(model)
        if restriction is None:
            return params

        filtered = restriction.apply(params)
        removed = sorted(set(params) - set(filtered) - set(restriction.renames))
        if removed:
            logger.debug(
                f"Dropped restricted parameters for {model}: {', '.join(removed)}",
                extra={"model": model, "dropped": removed},
            )
        return filtered


_OPENAI_REASONING_MODELS = ("o1", "o1-*", "o3*", "o4-*", "gpt-5*")

OPENAI_CHAT_POLICY = ParameterPolicy(
    [
        ParameterRestriction(
            patterns=_OPENAI_REASONING_MODELS,
            fixed={"temperature": 1.0},
            renames={"max_tokens": "max_completion_tokens"},
            drop=frozenset({"top_p", "presence_penalty", "frequency_penalty", "logprobs", "logit_bias"}),
        ),
    ]
)

OPENAI_RESPONSES_POLICY = ParameterPolicy(
    [
        ParameterRestriction(
            patterns=_OPENAI_REASONING_MODELS,
            fixed={"temperature": 1.0},
            drop=frozenset({"top_p"}),
        ),
    ]
)

ANTHROPIC_POLICY = ParameterPolicy(
    [
        ParameterRestriction(
            patterns=("claude-opus-4-1*", "claude-sonnet-4-5*", "claude-haiku-4-5*"),
            exclusive={"temperature": frozenset({"top_p"})},
        ),
    ]
)
