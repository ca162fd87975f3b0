"""Async PostgREST plumbing shared by the remote catalog, order and customer adapters.

The hosted backend exposes its tables through PostgREST (``/rest/v1/<table>``)
and a handful of edge functions (``/functions/v1/<name>``). Every remote
adapter goes through :class:`PostgrestClient` so that authentication headers,
timeouts and error translation live in one place.
"""

from typing import Any

import httpx
import structlog

logger = structlog.get_logger(__name__)

UNIQUE_VIOLATION = "23505"
INVALID_TEXT_REPRESENTATION = "22P02"
NO_ROWS = "PGRST116"


class PostgrestError(Exception):
    """A failed PostgREST or edge-function call.

    ``status_code`` is ``None`` when the request never produced a response
    (connection refused, timeout, ...).
    """

    def __init__(self, status_code: int | None, message: str, code: str | None = None, details: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.code = code
        self.details = details

    @property
    def is_transient(self) -> bool:
        if self.status_code is None:
            return True
        return self.status_code >= 500 or self.status_code in (408, 429)

    @property
    def is_unique_violation(self) -> bool:
        return self.code == UNIQUE_VIOLATION

    @property
    def is_no_rows(self) -> bool:
        return self.code == NO_ROWS or self.status_code == 404

    @property
    def is_invalid_input(self) -> bool:
        """The backend could not parse a filter value, e.g. a malformed uuid."""
        return self.code == INVALID_TEXT_REPRESENTATION

    @property
    def is_denied(self) -> bool:
        return self.status_code in (401, 403)


def eq(value: Any) -> str:
    """Build a PostgREST equality filter value."""
    return f"eq.{value}"


def _error_body(response: httpx.Response) -> dict:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


class PostgrestClient:
    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        access_token: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {access_token or api_key}",
        }
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    async def __aenter__(self) -> "PostgrestClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def select(
        self,
        table: str,
        *,
        columns: str = "*",
        filters: dict[str, str] | None = None,
        order: str | None = None,
        limit: int | None = None,
    ) -> list[dict]:
        params = {"select": columns, **(filters or {})}
        if order:
            params["order"] = order
        if limit is not None:
            params["limit"] = str(limit)
        response = await self._request("GET", f"/rest/v1/{table}", params=params)
        return response.json()

    async def insert(self, table: str, rows: dict | list[dict]) -> list[dict]:
        response = await self._request(
            "POST",
            f"/rest/v1/{table}",
            json=rows,
            headers={"Prefer": "return=representation"},
        )
        return response.json()

    async def update(self, table: str, values: dict, *, filters: dict[str, str]) -> list[dict]:
        response = await self._request(
            "PATCH",
            f"/rest/v1/{table}",
            params=filters,
            json=values,
            headers={"Prefer": "return=representation"},
        )
        return response.json()

    async def invoke(self, function_name: str, payload: dict) -> dict:
        """Call a backend edge function with a JSON payload."""
        response = await self._request("POST", f"/functions/v1/{function_name}", json=payload)
        return response.json()

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.TransportError as exc:
            logger.warning("PostgREST request could not be sent", method=method, url=url, error=str(exc))
            raise PostgrestError(None, f"{method} {url} failed: {exc}") from exc

        if response.is_error:
            body = _error_body(response)
            logger.warning(
                "PostgREST request failed",
                method=method,
                url=url,
                status_code=response.status_code,
                code=body.get("code"),
            )
            raise PostgrestError(
                response.status_code,
                body.get("message") or body.get("error") or response.reason_phrase,
                code=body.get("code"),
                details=body.get("details"),
            )
        return response
