"""HTTP execution layer: send a request, answer one challenge, check the status."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Collection
from functools import partial

import aiohttp
from multidict import CIMultiDictProxy

from ..exceptions import (
    AuthenticationError,
    RegistryConnectionError,
    UnexpectedStatusError,
)
from ..models import RegistryErrorDetail
from .auth import AuthHandler
from .types import DEFAULT_TIMEOUT, HttpRequest, HttpResponse

logger = logging.getLogger(__name__)


async def create_session(
    timeout: float = DEFAULT_TIMEOUT,
    connector: aiohttp.TCPConnector | None = None,
    user_agent: str | None = None,
) -> aiohttp.ClientSession:
    """Create an aiohttp session for registry requests.

    Args:
        timeout: Total timeout for each request in seconds
        connector: aiohttp connector for connection pooling
        user_agent: User-Agent header sent with every request
    """
    headers = {"User-Agent": user_agent} if user_agent else None
    return aiohttp.ClientSession(
        connector=connector,
        timeout=aiohttp.ClientTimeout(total=timeout),
        headers=headers,
    )


async def send_request(
    session: aiohttp.ClientSession, request: HttpRequest
) -> HttpResponse:
    """Send a single request and read the whole response.

    Raises:
        RegistryConnectionError: If the request fails in transport
    """
    logger.debug("%s %s", request.method, request.url)
    try:
        async with session.request(
            request.method,
            request.url,
            headers=request.headers,
            data=request.data,
        ) as resp:
            body = await resp.read()
            logger.debug("%s %s -> %d", request.method, request.url, resp.status)
            return HttpResponse(resp.status, CIMultiDictProxy(resp.headers.copy()), body)
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        raise RegistryConnectionError(
            f"{request.method} {request.url} failed: {str(e) or type(e).__name__}"
        ) from e


def check_status(
    request: HttpRequest,
    response: HttpResponse,
    expected_status: int | Collection[int] = 200,
    decoding_errors: Collection[int] = (),
) -> HttpResponse:
    """Return response if its status is expected, otherwise raise.

    Raises:
        AuthenticationError: If the registry still rejects the request with 401
        UnexpectedStatusError: For any other unexpected status; carries the
            decoded registry errors when the status is in decoding_errors
    """
    expected = (
        (expected_status,) if isinstance(expected_status, int) else expected_status
    )
    if response.status in expected:
        return response

    url = str(request.url)
    if response.status in decoding_errors:
        raise UnexpectedStatusError(
            response.status,
            url,
            response.body,
            RegistryErrorDetail.parse_errors(response.body),
        )
    if response.status == 401:
        raise AuthenticationError(
            f"{request.method} {url} was not authorized"
            + (" after retrying with credentials" if request.authorized else "")
        )
    raise UnexpectedStatusError(response.status, url, response.body)


async def execute_request(
    session: aiohttp.ClientSession,
    request: HttpRequest,
    *,
    auth: AuthHandler | None = None,
    expected_status: int | Collection[int] = 200,
    decoding_errors: Collection[int] = (),
) -> HttpResponse:
    """Execute a registry request, answering at most one challenge.

    1. Send the request, with pre-emptive authorization if the handler offers any.
    2. If the registry answers 401 with a WWW-Authenticate challenge, ask the
       handler to authorize the request and send it exactly once more.
    3. Check the final status.

    Args:
        session: aiohttp session
        request: Request to send
        auth: Authentication handler, or None for anonymous access
        expected_status: Status (or statuses) treated as success
        decoding_errors: Statuses whose body is decoded as a registry error

    Returns:
        The response

    Raises:
        AuthenticationError: If no credentials are available or the retry is rejected
        UnexpectedStatusError: If the registry answers with another status
        RegistryConnectionError: If the request fails in transport
    """
    attempt = (auth.authorize(request) if auth else None) or request
    response = await send_request(session, attempt)

    challenge = response.headers.get("WWW-Authenticate")
    if response.status == 401 and challenge and auth is not None:
        logger.debug("Challenge from %s: %s", request.url, challenge.split(" ", 1)[0])
        # The token endpoint is reached through the same layer, but its own
        # challenges are not answered; credentials are offered to it up front.
        token_executor = partial(execute_request, session, expected_status=200)
        retry = await auth.authorize_challenge(request, challenge, token_executor)
        if retry is None:
            raise AuthenticationError(
                f"{request.method} {request.url} requires authentication "
                "but no suitable credentials are available"
            )
        response = await send_request(session, retry)
        attempt = retry

    return check_status(attempt, response, expected_status, decoding_errors)
