"""
CallDash Call Data API Router
Protected read endpoint for call-summary rows
"""

from typing import Any, Callable, Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.encoders import jsonable_encoder

from calldash.auth.dependencies import CurrentUserDependency
from calldash.auth.models import TokenData
from calldash.utils.logger import get_logger

from .repository import CallSummaryStore

logger = get_logger(__name__)


def create_calls_router(
    get_call_store: Callable[..., Any],
    get_current_user: CurrentUserDependency,
) -> APIRouter:
    """
    Factory function to create the call data router

    Args:
        get_call_store: FastAPI dependency yielding a CallSummaryStore
        get_current_user: Dependency resolving the session cookie to claims
    """

    calls_router = APIRouter(prefix="/api", tags=["calls"])

    @calls_router.get(
        "/data",
        status_code=status.HTTP_200_OK,
        summary="Call summaries",
        description="All rows of the call summary table for the dashboard",
    )
    async def get_call_data(
        limit: Optional[int] = Query(None, ge=1, le=10000),
        current_user: TokenData = Depends(get_current_user),
        store: CallSummaryStore = Depends(get_call_store),
    ) -> Any:
        rows = await store.list_rows(limit=limit)
        logger.info(
            f"Served {len(rows)} call summary rows",
            extra={"user_id": str(current_user.user_id)},
        )
        return jsonable_encoder(rows)

    return calls_router
