"""
Yote — API Client
==================

What:  Thin async wrapper around httpx used by the fetch coordinator.
How:   call_api(route, method, body) always returns the JSON envelope
       {success, message?, <key>: ...}. Error statuses still carry an
       envelope, so the body is returned whatever the status code.
       Transport failures and non-JSON bodies are folded into a failure
       envelope; nothing is retried.

Example:
    async with ApiClient("http://localhost:8000", user_id=uid) as api:
        json = await api.call_api("/api/tasks/by-_flow/abc")
"""

import logging
from typing import Any, Dict, Optional

import httpx

from yote.config import settings

logger = logging.getLogger(__name__)


class ApiClient:
    """
    Args:
        base_url:  Server root; defaults to settings.api_base_url
        user_id:   Sent in settings.user_id_header for routes that need login
        timeout:   Transport timeout in seconds
        transport: Optional httpx transport (ASGITransport, MockTransport)
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        user_id: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        headers = {"Accept": "application/json"}
        if user_id:
            headers[settings.user_id_header] = user_id
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.api_base_url,
            headers=headers,
            timeout=timeout if timeout is not None else settings.api_timeout_seconds,
            transport=transport,
        )

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def call_api(
        self,
        route: str,
        method: str = "GET",
        body: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        try:
            response = await self._client.request(method, route, json=body)
        except httpx.HTTPError as e:
            logger.error("%s %s failed: %s", method, route, e)
            return {"success": False, "message": f"Request failed: {e}"}

        try:
            json = response.json()
        except ValueError:
            logger.error("%s %s returned non-JSON body (status %d)", method, route, response.status_code)
            return {
                "success": False,
                "message": f"Unexpected response from server (status {response.status_code})",
            }

        if not isinstance(json, dict):
            return {"success": False, "message": "Unexpected response from server"}
        if response.is_error:
            logger.info("%s %s → %d: %s", method, route, response.status_code, json.get("message"))
        return json
