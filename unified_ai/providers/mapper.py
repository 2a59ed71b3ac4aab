"""
Unified AI - Provider Mapper Base

Shared helpers for the pure translation layer between unified records and
provider wire payloads. Mappers never touch the transport; every validation
failure they detect is a ClientError.
"""

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from ..errors import ClientError, ErrorCode
from ..models import Role

_MISSING = object()


def resolve_model(request_model: str | None, default_model: str | None, provider: str | None = None) -> str:
    """
    Effective model: the request's model, else the provider default.

    Raises:
        ClientError(MISSING_MODEL): If neither is set
    """
    model = (request_model or "").strip() or (default_model or "").strip()
    if not model:
        raise ClientError(
            "Model is required. Either specify model in the request or provide a default model.",
            ErrorCode.MISSING_MODEL,
            provider=provider,
        )
    return model


def option(options: Mapping[str, Any], snake: str, camel: str | None = None, default: Any = None) -> Any:
    """Read a provider option under its snake_case or camelCase key."""
    if snake in options:
        return options[snake]
    if camel is not None and camel in options:
        return options[camel]
    return default


def first_key(data: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    """Value of the first key present (and not None), tried in order."""
    for key in keys:
        value = data.get(key, _MISSING)
        if value is not _MISSING and value is not None:
            return value
    return default


def from_epoch_seconds(value: Any) -> datetime | None:
    """Epoch seconds to an aware UTC datetime (None when absent)."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, UTC)
    return None


def collect_metadata(data: Mapping[str, Any], keys: tuple[str, ...]) -> dict[str, Any]:
    """Copy the listed wire fields that are present, under their wire names."""
    return {key: data[key] for key in keys if data.get(key) is not None}


class ProviderMapper:
    """
    Base class for per-provider mappers.

    Subclasses declare ROLES_TO_WIRE / ROLES_FROM_WIRE and implement the
    map_* methods for the operations their provider supports.
    """

    ROLES_TO_WIRE: dict[Role, str] = {
        Role.SYSTEM: "system",
        Role.USER: "user",
        Role.ASSISTANT: "assistant",
    }
    ROLES_FROM_WIRE: dict[str, Role] = {
        "system": Role.SYSTEM,
        "user": Role.USER,
        "assistant": Role.ASSISTANT,
    }

    def __init__(self, provider_id: str) -> None:
        self.provider_id = provider_id

    def role_to_wire(self, role: Role) -> str:
        try:
            return self.ROLES_TO_WIRE[role]
        except KeyError:
            raise ClientError(
                f"Role '{role.value}' is not supported by {self.provider_id}",
                ErrorCode.INVALID_ROLE,
                provider=self.provider_id,
            ) from None

    def role_from_wire(self, role: str | None) -> Role:
        try:
            return self.ROLES_FROM_WIRE[role or "assistant"]
        except KeyError:
            raise ClientError(
                f"Unknown role '{role}' in {self.provider_id} response",
                ErrorCode.INVALID_ROLE,
                provider=self.provider_id,
            ) from None

    def resolve_model(self, request_model: str | None, default_model: str | None) -> str:
        return resolve_model(request_model, default_model, self.provider_id)

    def require_dict(self, data: Any, what: str = "response") -> dict[str, Any]:
        """Ensure a decoded payload is a JSON object."""
        if not isinstance(data, dict):
            raise ClientError(
                f"Invalid {self.provider_id} {what}: expected a JSON object",
                ErrorCode.INVALID_RESPONSE,
                provider=self.provider_id,
            )
        return data

    def require_field(self, data: Mapping[str, Any], *keys: str) -> Any:
        """First present key, or INVALID_RESPONSE naming the expected field."""
        value = first_key(data, *keys)
        if value is None:
            raise ClientError(
                f"Invalid {self.provider_id} response: missing '{keys[0]}'",
                ErrorCode.INVALID_RESPONSE,
                provider=self.provider_id,
            )
        return value

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(provider_id={self.provider_id})"
