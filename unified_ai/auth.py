"""
Unified AI - Static Authentication Headers

Only static header material is supported: API keys and fixed custom headers.
"""

from abc import ABC, abstractmethod

from .errors import ClientError, ErrorCode


class Authentication(ABC):
    """Produces the headers attached to every provider request."""

    @abstractmethod
    def build_headers(self) -> dict[str, str]:
        pass


class ApiKeyAuth(Authentication):
    """
    API key sent in a single header.

    The Authorization header uses the Bearer scheme; any other header name
    (x-api-key, x-goog-api-key, ...) carries the raw key.
    """

    def __init__(self, api_key: str, header_name: str = "Authorization") -> None:
        if not api_key:
            raise ClientError("API key cannot be empty", ErrorCode.INVALID_API_KEY)
        if not header_name:
            raise ClientError("Header name cannot be empty", ErrorCode.INVALID_HEADER_NAME)
        self.api_key = api_key
        self.header_name = header_name

    def build_headers(self) -> dict[str, str]:
        if self.header_name.lower() == "authorization":
            return {self.header_name: f"Bearer {self.api_key}"}
        return {self.header_name: self.api_key}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ApiKeyAuth):
            return NotImplemented
        return self.api_key == other.api_key and self.header_name == other.header_name

    def __hash__(self) -> int:
        return hash((self.api_key, self.header_name))

    def __repr__(self) -> str:
        key = self.api_key
        masked = f"{key[:4]}...{key[-4:]}" if len(key) > 8 else "***"
        return f"ApiKeyAuth(header_name={self.header_name}, api_key={masked})"


class CustomHeaderAuth(Authentication):
    """Fixed set of custom headers."""

    def __init__(self, headers: dict[str, str]) -> None:
        if not headers:
            raise ClientError("Headers map cannot be empty", ErrorCode.INVALID_HEADERS)
        for name, value in headers.items():
            if not name:
                raise ClientError("Header name cannot be empty", ErrorCode.INVALID_HEADER_NAME)
            if not value:
                raise ClientError(f'Header value cannot be empty for header "{name}"', ErrorCode.INVALID_HEADERS)
        self.headers = dict(headers)

    def build_headers(self) -> dict[str, str]:
        return dict(self.headers)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CustomHeaderAuth):
            return NotImplemented
        return self.headers == other.headers

    def __hash__(self) -> int:
        return hash(tuple(sorted(self.headers.items())))

    def __repr__(self) -> str:
        return f"CustomHeaderAuth(headers=[{', '.join(self.headers)}])"
