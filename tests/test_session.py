"""Tests for request execution, status checking and challenge retries."""

import socket

import pytest
from yarl import URL

from oci_registry_client import RegistryClient
from oci_registry_client.core.auth import AuthHandler
from oci_registry_client.core.session import check_status
from oci_registry_client.core.types import DEFAULT_USER_AGENT, HttpRequest, HttpResponse
from oci_registry_client.exceptions import (
    AuthenticationError,
    RegistryConnectionError,
    UnexpectedStatusError,
)

REQUEST = HttpRequest("GET", URL("http://localhost:5000/v2/foo/tags/list"))
ERROR_BODY = b'{"errors": [{"code": "NAME_UNKNOWN", "message": "repository name not known"}]}'


def unused_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


# check_status


@pytest.mark.parametrize("expected,status", [(200, 200), ((200, 404), 404), ([201], 201)])
def test_check_status_expected(expected, status):
    """Test expected statuses return the response."""
    response = HttpResponse.build(status)
    assert check_status(REQUEST, response, expected) is response


def test_check_status_decodes_registry_errors():
    """Test listed statuses carry the decoded registry errors."""
    with pytest.raises(UnexpectedStatusError) as exc_info:
        check_status(REQUEST, HttpResponse.build(404, body=ERROR_BODY), 200, [404])

    error = exc_info.value
    assert error.status == 404
    assert error.url == str(REQUEST.url)
    assert [detail.code for detail in error.errors] == ["NAME_UNKNOWN"]
    assert "NAME_UNKNOWN" in str(error)


def test_check_status_raw_body():
    """Test other statuses keep the raw body without decoding it."""
    with pytest.raises(UnexpectedStatusError) as exc_info:
        check_status(REQUEST, HttpResponse.build(500, body=b"internal error"), 200, [404])

    assert exc_info.value.errors == []
    assert exc_info.value.body == b"internal error"
    assert "internal error" in str(exc_info.value)


def test_check_status_unauthorized():
    """Test a final 401 is an authentication error."""
    with pytest.raises(AuthenticationError, match="after retrying"):
        check_status(
            REQUEST.with_header("Authorization", "Basic x"), HttpResponse.build(401)
        )


# Requests against the fake registry


@pytest.mark.asyncio
async def test_unauthenticated_registry(client, fake_registry):
    """Test requests go out once and carry the User-Agent."""
    await client.check_api_version()

    (request,) = fake_registry.v2_requests()
    assert request.headers["User-Agent"] == DEFAULT_USER_AGENT
    assert "Authorization" not in request.headers


@pytest.mark.asyncio
async def test_basic_challenge_retry(client, fake_registry):
    """Test a Basic challenge is answered by exactly one retry."""
    fake_registry.auth = "basic"

    await client.check_api_version()

    first, retry = fake_registry.v2_requests()
    assert "Authorization" not in first.headers
    assert retry.headers["Authorization"] == fake_registry.basic_credentials
    assert fake_registry.token_requests == []


@pytest.mark.asyncio
async def test_bearer_challenge_retry(client, fake_registry):
    """Test a Bearer challenge exchanges credentials for a token, then retries once."""
    fake_registry.auth = "bearer"

    assert await client.blob_exists("foo", "sha256:" + "0" * 64) is False

    first, retry = fake_registry.v2_requests()
    assert "Authorization" not in first.headers
    assert retry.headers["Authorization"].startswith("Bearer token-")

    (token_request,) = fake_registry.token_requests
    assert token_request.headers["Authorization"] == fake_registry.basic_credentials
    assert token_request.query["service"] == ["fake-registry"]
    assert token_request.query["scope"] == ["repository:foo:pull,push"]


@pytest.mark.asyncio
async def test_bearer_anonymous_token(registry_server, fake_registry):
    """Test a client without credentials still gets an anonymous token."""
    fake_registry.auth = "bearer"

    async with RegistryClient(registry_server, insecure=True) as client:
        await client.check_api_version()

    (token_request,) = fake_registry.token_requests
    assert "Authorization" not in token_request.headers


@pytest.mark.asyncio
async def test_bearer_rejected_token_is_not_retried_again(client, fake_registry):
    """Test a second challenge after the retry fails instead of looping."""
    fake_registry.auth = "bearer"
    fake_registry.reject_tokens = True

    with pytest.raises(AuthenticationError):
        await client.check_api_version()

    assert len(fake_registry.v2_requests()) == 2
    assert len(fake_registry.token_requests) == 1


@pytest.mark.asyncio
async def test_bearer_token_endpoint_rejects_credentials(registry_server, fake_registry):
    """Test wrong credentials at the token endpoint fail authentication."""
    fake_registry.auth = "bearer"
    auth = AuthHandler(username="user", password="wrong")

    async with RegistryClient(registry_server, insecure=True, auth=auth) as client:
        with pytest.raises(AuthenticationError):
            await client.check_api_version()

    assert len(fake_registry.v2_requests()) == 1
    assert len(fake_registry.token_requests) == 1


@pytest.mark.asyncio
async def test_basic_challenge_without_credentials(registry_server, fake_registry):
    """Test a challenge without local credentials fails without a retry."""
    fake_registry.auth = "basic"

    async with RegistryClient(registry_server, insecure=True) as client:
        with pytest.raises(AuthenticationError, match="no suitable credentials"):
            await client.check_api_version()

    assert len(fake_registry.v2_requests()) == 1


@pytest.mark.asyncio
async def test_basic_challenge_wrong_password(registry_server, fake_registry):
    """Test rejected Basic credentials fail after a single retry."""
    fake_registry.auth = "basic"
    auth = AuthHandler(username="user", password="wrong")

    async with RegistryClient(registry_server, insecure=True, auth=auth) as client:
        with pytest.raises(AuthenticationError, match="after retrying"):
            await client.check_api_version()

    assert len(fake_registry.v2_requests()) == 2


@pytest.mark.asyncio
async def test_connection_refused():
    """Test transport failures are reported as connection errors."""
    async with RegistryClient(
        f"127.0.0.1:{unused_port()}", insecure=True, timeout=5
    ) as client:
        with pytest.raises(RegistryConnectionError):
            await client.check_api_version()
