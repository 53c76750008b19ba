"""
HTTP client for the TableServe API.

Wraps ``httpx.AsyncClient`` with Bearer authentication and turns every
failed request into an ``ApiError``. Transport failures (connection
refused, timeouts) surface with ``status_code == 0``.
"""

import logging
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:8000"
DEFAULT_TIMEOUT = 30.0


class ApiError(Exception):
    """A request that did not produce a successful response."""

    def __init__(self, status_code: int, message: str, data: Any = None):
        self.status_code = status_code
        self.message = message
        self.data = data
        super().__init__(message)

    @property
    def is_network_error(self) -> bool:
        return self.status_code == 0

    def __repr__(self) -> str:
        return f"ApiError(status_code={self.status_code}, message={self.message!r})"


def _error_message(payload: Any, fallback: str) -> str:
    """Pull a readable message out of an error body."""
    if not isinstance(payload, dict):
        return fallback

    detail = payload.get("detail")
    if isinstance(detail, list):
        # FastAPI validation errors
        messages = [str(d.get("msg", d)) if isinstance(d, dict) else str(d) for d in detail]
        return ", ".join(messages) or fallback
    if detail:
        return str(detail)
    return str(payload.get("error") or payload.get("message") or fallback)


class ApiClient:
    """
    Thin async wrapper over the REST API.

    Responses are returned as decoded JSON; ``204 No Content`` returns None
    and ``raw=True`` returns the body bytes.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        token: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token = token
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def set_token(self, token: Optional[str]) -> None:
        self.token = token

    def _headers(self, auth: bool) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if auth and self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Optional[dict[str, Any]] = None,
        files: Any = None,
        auth: bool = True,
        raw: bool = False,
    ) -> Any:
        if params:
            params = {k: _param(v) for k, v in params.items() if v is not None}

        logger.debug(f"{method} {path}")
        try:
            response = await self._client.request(
                method,
                path,
                json=json,
                params=params,
                files=files,
                headers=self._headers(auth),
            )
        except httpx.TransportError as e:
            logger.warning(f"{method} {path} failed: {e}")
            raise ApiError(0, str(e) or "Network error occurred") from e

        if response.is_error:
            try:
                payload = response.json()
            except ValueError:
                payload = None
            message = _error_message(payload, response.reason_phrase or "An unexpected error occurred")
            logger.debug(f"{method} {path} -> {response.status_code}: {message}")
            raise ApiError(response.status_code, message, payload)

        if raw:
            return response.content
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    async def get(self, path: str, **kwargs) -> Any:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, json: Any = None, **kwargs) -> Any:
        return await self.request("POST", path, json=json, **kwargs)

    async def put(self, path: str, json: Any = None, **kwargs) -> Any:
        return await self.request("PUT", path, json=json, **kwargs)

    async def patch(self, path: str, json: Any = None, **kwargs) -> Any:
        return await self.request("PATCH", path, json=json, **kwargs)

    async def delete(self, path: str, **kwargs) -> Any:
        return await self.request("DELETE", path, **kwargs)


def _param(value: Any) -> Any:
    # Enums and datetimes travel as their wire form
    if hasattr(value, "value"):
        return value.value
    if hasattr(value, "isoformat"):
        return value.isoformat()
    if isinstance(value, bool):
        return str(value).lower()
    return value
