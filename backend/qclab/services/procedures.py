"""Gateway to the database functions the QC service relies on.

The functions themselves are provisioned in the database; this class only
documents and invokes their contracts:

- ``generate_tracking_number(p_client_id, p_laboratory_id, p_origin)``
  returns the next formatted tracking number. It increments a per
  (client, laboratory, year) counter atomically, so concurrent callers never
  receive the same sequence value.
- ``generate_storage_positions_for_shelf(p_shelf_id)`` deletes every
  position of the shelf and recreates the ``rows x columns`` grid with
  ``samples_per_position`` capacity inside one transaction, returning the
  number of positions created. It refuses to run while any position holds
  samples.
- ``get_shelf_utilization(p_shelf_id)`` returns one row of
  total_positions, occupied_positions, total_capacity, current_count and
  utilization_percentage.
- ``search_clients(search_term, limit_count)`` returns fuzzy-ranked client
  rows across the client directories.
"""

import logging
import uuid
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from qclab.core.exceptions import UpstreamError

logger = logging.getLogger(__name__)


def _store_message(exc: SQLAlchemyError) -> str:
    """The backing store's own error text, without SQL or parameters."""
    orig = getattr(exc, "orig", None)
    return str(orig) if orig is not None else str(exc).split("\n", 1)[0]


class StoredProcedures:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _call(self, name: str, failure: str, sql: str, params: dict) -> Any:
        try:
            return await self.db.execute(text(sql), params)
        except SQLAlchemyError as exc:
            message = _store_message(exc)
            logger.error("Database function %s failed: %s", name, message)
            raise UpstreamError(failure, details={"message": message}) from exc

    async def generate_tracking_number(
        self,
        client_id: uuid.UUID,
        laboratory_id: uuid.UUID,
        origin: str | None = None,
    ) -> str:
        result = await self._call(
            "generate_tracking_number",
            "Failed to generate tracking number",
            "SELECT generate_tracking_number("
            "p_client_id => :client_id, "
            "p_laboratory_id => :laboratory_id, "
            "p_origin => :origin)",
            {"client_id": client_id, "laboratory_id": laboratory_id, "origin": origin},
        )
        tracking_number = result.scalar_one_or_none()
        if not tracking_number:
            raise UpstreamError(
                "Failed to generate tracking number",
                details={"message": "generate_tracking_number returned no value"},
            )
        return tracking_number

    async def generate_storage_positions(self, shelf_id: uuid.UUID) -> int:
        result = await self._call(
            "generate_storage_positions_for_shelf",
            "Failed to generate positions",
            "SELECT generate_storage_positions_for_shelf(p_shelf_id => :shelf_id)",
            {"shelf_id": shelf_id},
        )
        return int(result.scalar_one() or 0)

    async def get_shelf_utilization(self, shelf_id: uuid.UUID) -> dict | None:
        result = await self._call(
            "get_shelf_utilization",
            "Failed to compute shelf utilization",
            "SELECT * FROM get_shelf_utilization(p_shelf_id => :shelf_id)",
            {"shelf_id": shelf_id},
        )
        row = result.mappings().first()
        return dict(row) if row is not None else None

    async def search_clients(self, search_term: str, limit: int) -> list[dict]:
        result = await self._call(
            "search_clients",
            "Failed to search clients",
            "SELECT * FROM search_clients(search_term => :search_term, limit_count => :limit_count)",
            {"search_term": search_term, "limit_count": limit},
        )
        return [dict(row) for row in result.mappings().all()]
