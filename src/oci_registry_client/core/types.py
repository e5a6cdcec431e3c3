"""Core data types shared by the session, auth and client layers."""

from __future__ import annotations

from dataclasses import dataclass, field, replace

from multidict import CIMultiDict, CIMultiDictProxy
from yarl import URL

from ..exceptions import ValidationError
from ..utils.validator import is_valid_registry

DEFAULT_TIMEOUT = 30
DEFAULT_USER_AGENT = "oci-registry-client/0.1.0"


@dataclass(frozen=True)
class RegistryConfig:
    """Registry endpoint configuration.

    Args:
        registry: Registry host with optional port (e.g., localhost:5000)
        insecure: Use plain HTTP instead of HTTPS
        timeout: Total timeout for each request in seconds
        user_agent: User-Agent header sent with every request
    """

    registry: str
    insecure: bool = False
    timeout: float = DEFAULT_TIMEOUT
    user_agent: str = DEFAULT_USER_AGENT

    def __post_init__(self) -> None:
        if not is_valid_registry(self.registry):
            raise ValidationError(f"Invalid registry: {self.registry!r}")

    @property
    def base_url(self) -> URL:
        scheme = "http" if self.insecure else "https"
        return URL(f"{scheme}://{self.registry}")


@dataclass(frozen=True)
class HttpRequest:
    """An HTTP request that can be sent, and re-sent after authorization."""

    method: str
    url: URL
    headers: dict[str, str] = field(default_factory=dict)
    data: bytes | None = None

    def with_header(self, name: str, value: str) -> HttpRequest:
        """Return a copy of the request with an extra header."""
        return replace(self, headers={**self.headers, name: value})

    @property
    def authorized(self) -> bool:
        return "Authorization" in self.headers


@dataclass(frozen=True)
class HttpResponse:
    """Status, headers and fully read body of a registry response."""

    status: int
    headers: CIMultiDictProxy[str]
    body: bytes = b""

    @classmethod
    def build(
        cls, status: int, headers: dict[str, str] | None = None, body: bytes = b""
    ) -> HttpResponse:
        return cls(status, CIMultiDictProxy(CIMultiDict(headers or {})), body)
