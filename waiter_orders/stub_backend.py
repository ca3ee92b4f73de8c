"""
Stub Kitchen Backend

A small FastAPI application serving the same REST contract as the restaurant
backend, backed by an in-memory ``MockKitchenService``. Use it to run the
waiter client locally without the real server, and to exercise
``HttpKitchenService`` end to end in tests (through ``httpx.ASGITransport``).

Run:
    uvicorn waiter_orders.stub_backend:app --port 8001

Endpoints:
    - POST /orders: Accept a batch of new items for a table
    - GET /tables/{table_id}/orders: Items placed for a table
    - GET /tables-status: Table list
    - POST /tables/{table_id}/clear: Free a table
    - GET /health: Liveness
"""

import logging
from datetime import datetime
from typing import Any, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse

from waiter_orders.core.config import get_settings
from waiter_orders.schemas import PlacedItem, SubmissionPayload, TableInfo
from waiter_orders.services.kitchen.mock import MockKitchenService

logger = logging.getLogger(__name__)


def create_app(
    kitchen: Optional[MockKitchenService] = None,
    required_token: Optional[str] = None,
) -> FastAPI:
    """
    Build the stub backend.

    Args:
        kitchen: Kitchen state to serve; a failure-free, zero-latency mock by default
        required_token: When set, every call except /health needs
            ``Authorization: Bearer <required_token>``
    """
    settings = get_settings()
    kitchen = kitchen or MockKitchenService(failure_rate=0.0, min_latency=0.0, max_latency=0.0)

    app = FastAPI(
        title=f"{settings.app_name} - Stub Kitchen",
        version=settings.app_version,
        docs_url="/docs",
    )
    app.state.kitchen = kitchen

    async def check_token(authorization: Optional[str] = Header(None)) -> None:
        if required_token is None:
            return
        if authorization != f"Bearer {required_token}":
            raise HTTPException(status_code=401, detail="Unauthenticated.")

    # =========================================================================
    # HEALTH
    # =========================================================================

    @app.get("/health", tags=["Health"])
    async def health() -> dict[str, Any]:
        return {
            "status": "ok",
            "kitchen": kitchen.provider_name,
            "timestamp": datetime.now().isoformat(),
        }

    # =========================================================================
    # ORDERS
    # =========================================================================

    @app.post("/orders", tags=["Orders"], dependencies=[Depends(check_token)])
    async def submit_order(payload: SubmissionPayload) -> dict[str, Any]:
        logger.info(f"Stub kitchen: {len(payload.items)} line(s) for table {payload.table_id}")
        result = await kitchen.submit_new_items(payload)
        if not result.success:
            raise HTTPException(status_code=503, detail=result.error_message)
        return {
            "success": True,
            "message": "Order sent to kitchen",
            "order_id": result.order_id,
        }

    @app.get(
        "/tables/{table_id}/orders",
        tags=["Orders"],
        response_model=list[PlacedItem],
        dependencies=[Depends(check_token)],
    )
    async def placed_items(table_id: str) -> list[PlacedItem]:
        result = await kitchen.fetch_placed_items(table_id)
        if not result.success:
            raise HTTPException(status_code=503, detail=result.error_message)
        return result.items

    # =========================================================================
    # TABLES
    # =========================================================================

    @app.get(
        "/tables-status",
        tags=["Tables"],
        response_model=list[TableInfo],
        dependencies=[Depends(check_token)],
    )
    async def tables_status() -> list[TableInfo]:
        result = await kitchen.fetch_tables()
        if not result.success:
            raise HTTPException(status_code=503, detail=result.error_message)
        return result.tables

    @app.post("/tables/{table_id}/clear", tags=["Tables"], dependencies=[Depends(check_token)])
    async def clear_table(table_id: str) -> dict[str, Any]:
        result = await kitchen.clear_table(table_id)
        if not result.success:
            raise HTTPException(status_code=503, detail=result.error_message)
        return {"success": True, "message": f"Table {table_id} is now available"}

    # =========================================================================
    # ERROR HANDLERS
    # =========================================================================

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "message": exc.detail},
        )

    return app


app = create_app()
