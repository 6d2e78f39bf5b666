"""
CallDash Call Summary Repository
Read-only access to the "call summary" table
"""

from typing import Any, Dict, List, Optional, Protocol, Sequence

from sqlalchemy import text
from sqlalchemy.exc import InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from calldash.utils.errors import CallDashException, StoreUnavailableError
from calldash.utils.logger import get_logger

logger = get_logger(__name__)

CALL_SUMMARY_TABLE = '"call summary"'


class CallSummaryStore(Protocol):
    async def list_rows(self, limit: Optional[int] = None) -> List[Dict[str, Any]]: ...


class CallSummaryRepository:
    """Rows are returned as plain column-to-value dicts; the schema is not owned here"""

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    async def list_rows(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Fetch call-summary rows

        Args:
            limit: Optional maximum number of rows

        Returns:
            List of row dicts

        Raises:
            StoreUnavailableError: If the database cannot be reached
            CallDashException: Any other database failure
        """
        query = f"SELECT * FROM {CALL_SUMMARY_TABLE}"
        params: Dict[str, Any] = {}
        if limit is not None:
            query += " LIMIT :limit"
            params["limit"] = limit

        try:
            result = await self.db.execute(text(query), params)
        except (OperationalError, InterfaceError, OSError) as e:
            logger.error(f"Call data store unavailable: {type(e).__name__}")
            raise StoreUnavailableError()
        except SQLAlchemyError as e:
            logger.error(f"Call data query failed: {type(e).__name__}", exc_info=True)
            raise CallDashException("Failed to fetch call data", status_code=500)

        return [dict(row) for row in result.mappings().all()]


class InMemoryCallSummaryRepository:
    """Fixed rows for tests and local development"""

    def __init__(self, rows: Optional[Sequence[Dict[str, Any]]] = None):
        self._rows = [dict(row) for row in rows or []]

    async def list_rows(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        rows = self._rows if limit is None else self._rows[:limit]
        return [dict(row) for row in rows]
