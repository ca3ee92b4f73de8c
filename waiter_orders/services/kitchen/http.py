"""
HTTP Kitchen Service Implementation

Production implementation talking to the restaurant REST API.
Used when ENV_MODE=production or ENV_MODE=staging.

Requirements:
    - API_BASE_URL must be set in environment

Endpoints:
    POST /orders                    submit new items
    GET  /tables/{table_id}/orders  items already placed for a table
    GET  /tables-status             table list with status and waiter
    POST /tables/{table_id}/clear   free a table
    GET  /health                    liveness

Retries are left to the caller: every failure is reported once.
"""

import logging
import time
from typing import Any, Optional

import httpx

from waiter_orders.core.config import get_settings
from waiter_orders.schemas import PlacedItem, SubmissionPayload, TableInfo, normalize_table_id
from waiter_orders.services.kitchen.base import (
    BaseKitchenService,
    ClearTableResult,
    PlacedItemsResult,
    SubmissionResult,
    TablesResult,
)

logger = logging.getLogger(__name__)


def _error_detail(response: httpx.Response) -> str:
    """Best-effort message from an error response body."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:200] or response.reason_phrase
    if isinstance(body, dict):
        return str(body.get("message") or body.get("detail") or body)
    return str(body)


def _unwrap_list(body: Any, key: str) -> list:
    """Accept both a bare JSON array and {"<key>": [...]}."""
    if isinstance(body, list):
        return body
    if isinstance(body, dict) and isinstance(body.get(key), list):
        return body[key]
    raise ValueError(f"Expected a list of {key}, got {type(body).__name__}")


class HttpKitchenService(BaseKitchenService):
    """
    REST client for the kitchen backend.

    Example:
        >>> service = HttpKitchenService(base_url="http://192.168.1.76/restaurant/public/api")
        >>> service.set_auth_token(token)
        >>> result = await service.submit_new_items(payload)
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the HTTP client.

        Args:
            base_url: API root; defaults to API_BASE_URL
            timeout: Request timeout in seconds; defaults to API_TIMEOUT_SECONDS
            client: Pre-built client (tests pass one bound to an ASGI transport)

        Raises:
            ValueError: If no base URL is configured and no client is given
        """
        settings = get_settings()
        base_url = base_url or settings.api_base_url

        if client is None:
            if not base_url:
                raise ValueError(
                    "API_BASE_URL is required for the HTTP kitchen service. "
                    "Set it in your .env file or environment variables."
                )
            client = httpx.AsyncClient(
                base_url=base_url,
                timeout=timeout or settings.api_timeout_seconds,
                headers={
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                },
            )

        self._client = client
        self._token: Optional[str] = None

        logger.info(f"HttpKitchenService initialized ({self._client.base_url})")

    @property
    def provider_name(self) -> str:
        return "http"

    def set_auth_token(self, token: Optional[str]) -> None:
        self._token = token

    def _headers(self) -> dict[str, str]:
        if self._token:
            return {"Authorization": f"Bearer {self._token}"}
        return {}

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        response = await self._client.request(method, url, headers=self._headers(), **kwargs)
        response.raise_for_status()
        return response

    # ==========================================================================
    # SERVICE INTERFACE
    # ==========================================================================

    async def submit_new_items(self, payload: SubmissionPayload) -> SubmissionResult:
        start_time = time.perf_counter()
        table_id = normalize_table_id(payload.table_id)

        try:
            response = await self._request("POST", "/orders", json=payload.to_wire())
        except httpx.HTTPStatusError as e:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            detail = _error_detail(e.response)
            logger.error(
                f"Kitchen rejected order for table {table_id}: "
                f"{e.response.status_code} {detail}"
            )
            return SubmissionResult(
                success=False,
                table_id=table_id,
                error_message=detail,
                error_code=f"http_{e.response.status_code}",
                response_time_ms=elapsed_ms,
            )
        except httpx.HTTPError as e:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            logger.error(f"Submit order API error for table {table_id}: {e!r}")
            return SubmissionResult(
                success=False,
                table_id=table_id,
                error_message=str(e) or e.__class__.__name__,
                error_code="network_error",
                response_time_ms=elapsed_ms,
            )

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        try:
            data = response.json()
        except ValueError:
            data = None
        if not isinstance(data, dict):
            data = {"response": data}

        order_id = data.get("order_id", data.get("id"))
        logger.info(f"Order for table {table_id} sent to kitchen ({elapsed_ms:.0f}ms)")
        return SubmissionResult(
            success=True,
            table_id=table_id,
            order_id=order_id,
            response_time_ms=elapsed_ms,
            data=data,
        )

    async def fetch_placed_items(self, table_id: str) -> PlacedItemsResult:
        start_time = time.perf_counter()

        try:
            response = await self._request("GET", f"/tables/{table_id}/orders")
            rows = _unwrap_list(response.json(), "items")
            items = [PlacedItem.model_validate(row) for row in rows]
        except httpx.HTTPError as e:
            logger.warning(f"Fetch placed items API error for table {table_id}: {e!r}")
            return PlacedItemsResult(
                success=False,
                table_id=table_id,
                error_message=str(e) or e.__class__.__name__,
                response_time_ms=(time.perf_counter() - start_time) * 1000,
            )
        except ValueError as e:
            # Includes pydantic's ValidationError and JSON decode errors
            logger.warning(f"Unexpected placed items payload for table {table_id}: {e}")
            return PlacedItemsResult(
                success=False,
                table_id=table_id,
                error_message=f"Malformed response: {e}",
                response_time_ms=(time.perf_counter() - start_time) * 1000,
            )

        return PlacedItemsResult(
            success=True,
            table_id=table_id,
            items=items,
            response_time_ms=(time.perf_counter() - start_time) * 1000,
        )

    async def fetch_tables(self) -> TablesResult:
        try:
            response = await self._request("GET", "/tables-status")
            rows = _unwrap_list(response.json(), "tables")
            tables = [TableInfo.model_validate(row) for row in rows]
        except httpx.HTTPError as e:
            logger.error(f"Fetch tables API error: {e!r}")
            return TablesResult(success=False, error_message=str(e) or e.__class__.__name__)
        except ValueError as e:
            logger.error(f"API did not return a table list: {e}")
            return TablesResult(success=False, error_message=f"Malformed response: {e}")

        return TablesResult(success=True, tables=tables)

    async def clear_table(self, table_id: str) -> ClearTableResult:
        try:
            await self._request("POST", f"/tables/{table_id}/clear")
        except httpx.HTTPError as e:
            logger.error(f"Clear table API error for table {table_id}: {e!r}")
            return ClearTableResult(
                success=False, table_id=table_id, error_message=str(e) or e.__class__.__name__
            )
        return ClearTableResult(success=True, table_id=table_id)

    async def health_check(self) -> bool:
        try:
            await self._request("GET", "/health")
            return True
        except httpx.HTTPError as e:
            logger.warning(f"Kitchen backend health check failed: {e!r}")
            return False

    async def close(self) -> None:
        await self._client.aclose()
