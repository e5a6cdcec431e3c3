"""Registry authentication: local credentials and challenge handling."""

from __future__ import annotations

import base64
import json
import logging
import netrc
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

import aiofiles
from yarl import URL

from ..exceptions import (
    AuthenticationError,
    DecodingError,
    RegistryError,
)
from ..models import decode_json
from .challenge import parse_challenge, split_challenge
from .types import HttpRequest, HttpResponse

logger = logging.getLogger(__name__)

DEFAULT_DOCKER_CONFIG = Path.home() / ".docker" / "config.json"
DOCKER_HUB_HOSTS = ("docker.io", "index.docker.io", "registry-1.docker.io")

TokenExecutor = Callable[[HttpRequest], Awaitable[HttpResponse]]


class AuthorizationProvider(Protocol):
    """Credential store lookup: URL to Authorization header value."""

    def http_authorization_header(self, url: URL) -> str | None: ...


def basic_authorization(username: str, password: str) -> str:
    """Encode username and password as a Basic Authorization header value."""
    credentials = base64.b64encode(f"{username}:{password}".encode()).decode("ascii")
    return f"Basic {credentials}"


class NetrcAuthorizationProvider:
    """Look up Basic credentials for a URL's host in a netrc file."""

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path) if path else Path.home() / ".netrc"
        try:
            self._netrc: netrc.netrc | None = netrc.netrc(str(self.path))
        except FileNotFoundError:
            logger.debug("No netrc file at %s", self.path)
            self._netrc = None
        except netrc.NetrcParseError as e:
            raise AuthenticationError(f"Cannot parse netrc file {self.path}: {e}") from e

    def http_authorization_header(self, url: URL) -> str | None:
        if self._netrc is None or not url.host:
            return None
        entry = self._netrc.authenticators(url.host)
        if entry is None:
            return None
        login, _, password = entry
        return basic_authorization(login or "", password or "")


class DockerConfigAuthorizationProvider:
    """Look up credentials in the ``auths`` map of a Docker config.json."""

    def __init__(self, auths: dict[str, dict[str, Any]] | None = None) -> None:
        self.auths: dict[str, str] = {}
        for endpoint, entry in (auths or {}).items():
            header = self._entry_header(entry)
            if header:
                self.auths[self._endpoint_host(endpoint)] = header

    @classmethod
    async def from_file(
        cls, path: str | Path | None = None
    ) -> DockerConfigAuthorizationProvider:
        """Load credentials from a Docker config file; a missing file yields no credentials."""
        config_path = Path(path) if path else DEFAULT_DOCKER_CONFIG
        if not config_path.exists():
            logger.debug("No Docker config at %s", config_path)
            return cls()

        async with aiofiles.open(config_path, mode="r") as file:
            content = await file.read()

        try:
            config = json.loads(content)
        except json.JSONDecodeError as e:
            raise AuthenticationError(f"Invalid Docker config {config_path}: {e}") from e
        return cls(config.get("auths", {}))

    @staticmethod
    def _endpoint_host(endpoint: str) -> str:
        # Keys may be bare hosts ("localhost:5000") or URLs ("https://index.docker.io/v1/")
        if "://" not in endpoint:
            endpoint = f"https://{endpoint}"
        url = URL(endpoint)
        host = url.host or ""
        if host in DOCKER_HUB_HOSTS:
            return "index.docker.io"
        return f"{host}:{url.port}" if url.explicit_port else host

    @staticmethod
    def _entry_header(entry: dict[str, Any]) -> str | None:
        if entry.get("auth"):
            return f"Basic {entry['auth']}"
        if entry.get("username") and entry.get("password"):
            return basic_authorization(entry["username"], entry["password"])
        return None

    def http_authorization_header(self, url: URL) -> str | None:
        host = url.host or ""
        if host in DOCKER_HUB_HOSTS:
            return self.auths.get("index.docker.io")
        if url.explicit_port:
            header = self.auths.get(f"{host}:{url.port}")
            if header:
                return header
        return self.auths.get(host)


@dataclass(frozen=True)
class BearerTokenResponse:
    """Token endpoint response body.

    ``access_token`` is the OAuth 2.0 synonym for ``token``.
    """

    token: str
    access_token: str | None = None
    expires_in: int | None = None
    issued_at: str | None = None
    refresh_token: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BearerTokenResponse:
        if not isinstance(data, dict):
            raise DecodingError("Token response must be a JSON object")
        token = data.get("token") or data.get("access_token")
        if not token:
            raise DecodingError("Token response contains no token")
        return cls(
            token=token,
            access_token=data.get("access_token"),
            expires_in=data.get("expires_in"),
            issued_at=data.get("issued_at"),
            refresh_token=data.get("refresh_token"),
        )


class AuthHandler:
    """Provides credentials for registry requests.

    Args:
        username: Default username, used if no credential store has an entry
        password: Default password, used if no credential store has an entry
        provider: Credential store lookup, such as a netrc file
    """

    def __init__(
        self,
        username: str | None = None,
        password: str | None = None,
        provider: AuthorizationProvider | None = None,
    ) -> None:
        self.username = username
        self.password = password
        self.provider = provider

    def local_credentials(self, url: URL) -> str | None:
        """Get locally configured credentials for url as an Authorization header value."""
        if self.provider is not None:
            header = self.provider.http_authorization_header(url)
            if header:
                return header

        if self.username is not None and self.password is not None:
            return basic_authorization(self.username, self.password)

        return None

    def authorize(self, request: HttpRequest) -> HttpRequest | None:
        """Authorize a request before it is first sent.

        Always returns None so that the registry issues a challenge.
        """
        return None

    async def authorize_challenge(
        self, request: HttpRequest, challenge: str, execute: TokenExecutor
    ) -> HttpRequest | None:
        """Authorize a request in response to a WWW-Authenticate challenge.

        Args:
            request: The request which was rejected
            challenge: Value of the WWW-Authenticate header
            execute: Sends a token request and returns its 200 response

        Returns:
            The request with an Authorization header, or None if no
            suitable credentials are available

        Raises:
            ChallengeParseError: If a Bearer challenge is malformed
            AuthenticationError: If the Bearer challenge has no realm or the
                token exchange fails
        """
        scheme, params = split_challenge(challenge)

        if scheme.lower() == "basic":
            credentials = self.local_credentials(request.url)
            if credentials is None:
                logger.debug("Basic challenge from %s but no credentials", request.url)
                return None
            return request.with_header("Authorization", credentials)

        if scheme.lower() == "bearer":
            token = await self._exchange_token(request, params, execute)
            return request.with_header("Authorization", f"Bearer {token}")

        logger.warning("Unsupported authentication scheme %r from %s", scheme, request.url)
        return None

    async def _exchange_token(
        self, request: HttpRequest, params: str, execute: TokenExecutor
    ) -> str:
        parsed = parse_challenge(params)
        token_url = parsed.url
        if token_url is None:
            logger.warning("Bearer challenge from %s has no realm", request.url)
            raise AuthenticationError(f"Bearer challenge from {request.url} has no realm")

        # Offer Basic credentials to the token server up front. Public token
        # servers hand out anonymous pull tokens when none are offered, and
        # never challenge for credentials afterwards.
        token_request = HttpRequest("GET", token_url)
        credentials = self.local_credentials(token_url) or self.local_credentials(
            request.url
        )
        if credentials is not None:
            token_request = token_request.with_header("Authorization", credentials)

        logger.debug("Requesting token from %s", token_url.with_query(None))
        try:
            response = await execute(token_request)
            token_response = BearerTokenResponse.from_dict(decode_json(response.body))
        except AuthenticationError:
            raise
        except RegistryError as e:
            raise AuthenticationError(f"Token exchange with {token_url} failed: {e}") from e

        return token_response.token
