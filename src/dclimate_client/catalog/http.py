"""
dClimate Client Catalog HTTP Helpers

Cancellable JSON requests shared by the catalog loaders.
"""

import asyncio
import logging
from typing import Any, Optional

import httpx

from ..core.config import DEFAULT_HTTP_TIMEOUT
from ..core.exceptions import ResolutionCancelledError

logger = logging.getLogger('dclimate_client.catalog.http')


def create_http_client(
    transport: Optional[httpx.AsyncBaseTransport] = None,
    timeout: float = DEFAULT_HTTP_TIMEOUT,
) -> httpx.AsyncClient:
    """Build the async client used for every catalog request."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout),
        transport=transport,
        follow_redirects=True,
    )


async def _race_cancel(
    request: "asyncio.Future[httpx.Response]",
    cancel_event: asyncio.Event,
    url: str,
) -> httpx.Response:
    waiter = asyncio.ensure_future(cancel_event.wait())
    try:
        done, _ = await asyncio.wait(
            {request, waiter}, return_when=asyncio.FIRST_COMPLETED
        )
    finally:
        for task in (request, waiter):
            if not task.done():
                task.cancel()

    if request not in done:
        logger.debug("Request to %s cancelled", url)
        raise ResolutionCancelledError(url)
    return request.result()


async def fetch_json(
    client: httpx.AsyncClient,
    url: str,
    method: str = "GET",
    *,
    json: Any = None,
    cancel_event: Optional[asyncio.Event] = None,
) -> Any:
    """
    Perform a request and decode its JSON body.

    Args:
        client: Shared async HTTP client
        url: Absolute URL
        method: HTTP method
        json: Request body for POST requests
        cancel_event: When set before the response arrives, the request is
            abandoned and ResolutionCancelledError is raised

    Returns:
        Decoded JSON document

    Raises:
        httpx.HTTPError: Transport failure or non-2xx status
        ValueError: Body is not valid JSON
        ResolutionCancelledError: ``cancel_event`` was set
    """
    if cancel_event is not None and cancel_event.is_set():
        raise ResolutionCancelledError(url)

    logger.debug("%s %s", method, url)
    request = client.request(method, url, json=json)
    if cancel_event is None:
        response = await request
    else:
        response = await _race_cancel(asyncio.ensure_future(request), cancel_event, url)

    response.raise_for_status()
    return response.json()


async def fetch_cid(
    client: httpx.AsyncClient,
    url: str,
    *,
    cancel_event: Optional[asyncio.Event] = None,
) -> str:
    """GET ``url`` and return the ``cid`` field of its ``{"cid": ...}`` body."""
    payload = await fetch_json(client, url, cancel_event=cancel_event)
    cid = payload.get("cid") if isinstance(payload, dict) else None
    if not isinstance(cid, str) or not cid:
        raise ValueError(f"Invalid response from {url}: missing or invalid 'cid' field")
    return cid
