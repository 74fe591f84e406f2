"""Thin async wrappers over the Gmail, Graph, Google Calendar, Google People and Superhuman REST APIs.

Every wrapper returns parsed JSON on 2xx (``{}`` for an empty body), ``None`` on
HTTP 401 so callers can tell a dead credential apart from a failed operation,
and raises for every other non-2xx status.
"""

from __future__ import annotations

from typing import Any, Mapping

import httpx
from loguru import logger

from mailbridge.domain.errors import NetworkError, NotFoundError
from mailbridge.infrastructure.settings import Settings, get_settings

Params = Mapping[str, Any] | list[tuple[str, Any]]


async def _send(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    headers: dict[str, str],
    params: Params | None,
    json: Any,
    content: str | bytes | None,
) -> httpx.Response:
    try:
        return await client.request(method, url, headers=headers, params=params, json=json, content=content)
    except httpx.HTTPError as e:
        raise NetworkError(f"{method} {url} failed: {e}") from e


async def api_request(
    service: str,
    base_url: str,
    token: str,
    path: str,
    *,
    method: str = "GET",
    params: Params | None = None,
    json: Any = None,
    content: str | bytes | None = None,
    headers: Mapping[str, str] | None = None,
    client: httpx.AsyncClient | None = None,
    settings: Settings | None = None,
) -> Any | None:
    """Issue one bearer-authenticated request against ``base_url + path``."""
    url = f"{base_url}{path}"
    req_headers = {"Authorization": f"Bearer {token}", "Accept": "application/json"}
    if headers:
        req_headers.update(headers)

    logger.debug(f"{service} {method} {path}")
    if client is not None:
        response = await _send(client, method, url, req_headers, params, json, content)
    else:
        timeout = (settings or get_settings()).http_timeout
        async with httpx.AsyncClient(timeout=timeout) as own_client:
            response = await _send(own_client, method, url, req_headers, params, json, content)

    if response.status_code == 401:
        logger.debug(f"{service} rejected access token for {path}")
        return None

    if response.status_code == 404:
        raise NotFoundError(f"{service} API error: 404 {response.reason_phrase}", status_code=404)

    if not response.is_success:
        raise NetworkError(
            f"{service} API error: {response.status_code} {response.reason_phrase}",
            status_code=response.status_code,
        )

    if not response.content:
        return {}
    try:
        return response.json()
    except ValueError:
        return {}


async def gmail_request(
    access_token: str,
    path: str,
    *,
    client: httpx.AsyncClient | None = None,
    settings: Settings | None = None,
    **kwargs: Any,
) -> Any | None:
    """Call the Gmail REST API (``/gmail/v1/users/me``)."""
    settings = settings or get_settings()
    return await api_request(
        "Gmail", settings.gmail_api_base, access_token, path, client=client, settings=settings, **kwargs
    )


async def graph_request(
    access_token: str,
    path: str,
    *,
    client: httpx.AsyncClient | None = None,
    settings: Settings | None = None,
    **kwargs: Any,
) -> Any | None:
    """Call the Microsoft Graph REST API (``/v1.0``)."""
    settings = settings or get_settings()
    return await api_request(
        "MS Graph", settings.graph_api_base, access_token, path, client=client, settings=settings, **kwargs
    )


async def calendar_request(
    access_token: str,
    path: str,
    *,
    client: httpx.AsyncClient | None = None,
    settings: Settings | None = None,
    **kwargs: Any,
) -> Any | None:
    """Call the Google Calendar v3 REST API."""
    settings = settings or get_settings()
    return await api_request(
        "Google Calendar",
        settings.google_calendar_api_base,
        access_token,
        path,
        client=client,
        settings=settings,
        **kwargs,
    )


async def backend_request(
    identity_token: str,
    path: str,
    *,
    client: httpx.AsyncClient | None = None,
    settings: Settings | None = None,
    **kwargs: Any,
) -> Any | None:
    """Call the Superhuman backend with the backend identity token."""
    settings = settings or get_settings()
    return await api_request(
        "Superhuman", settings.backend_api_base, identity_token, path, client=client, settings=settings, **kwargs
    )


async def people_request(
    access_token: str,
    path: str,
    *,
    client: httpx.AsyncClient | None = None,
    settings: Settings | None = None,
    **kwargs: Any,
) -> Any | None:
    """Call the Google People API (contacts)."""
    settings = settings or get_settings()
    return await api_request(
        "Google People", settings.people_api_base, access_token, path, client=client, settings=settings, **kwargs
    )
