"""Tracking number allocation and lookup.

Sequence allocation is delegated to the ``generate_tracking_number`` database
function, which increments a per (client, laboratory, year) counter
atomically. Nothing here locks or counts in-process.
"""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from qclab.config import settings
from qclab.core.exceptions import UpstreamError, ValidationFailed
from qclab.core.tracking_format import matches_format
from qclab.models.client import Client
from qclab.models.sample import Sample
from qclab.services.procedures import StoredProcedures

logger = logging.getLogger(__name__)


class TrackingNumberService:
    def __init__(self, db: AsyncSession, procedures: StoredProcedures):
        self.db = db
        self.procedures = procedures

    async def allocate(
        self,
        client_id: uuid.UUID | None,
        laboratory_id: uuid.UUID | None,
        origin: str | None = None,
    ) -> dict:
        """Allocate the next tracking number for a client at a laboratory.

        Returns the number with the client's display name and the template
        that produced it.
        """
        if not client_id or not laboratory_id:
            raise ValidationFailed("Missing required fields: client_id, laboratory_id")

        tracking_number = await self.procedures.generate_tracking_number(
            client_id, laboratory_id, origin or None
        )

        result = await self.db.execute(
            select(Client.name, Client.company, Client.tracking_number_format)
            .where(Client.id == client_id)
        )
        client = result.one_or_none()

        logger.info(
            "Allocated tracking number %s for client=%s lab=%s",
            tracking_number, client_id, laboratory_id,
        )
        return {
            "tracking_number": tracking_number,
            "client": (client.company or client.name) if client else "Unknown",
            "format_used": (
                (client.tracking_number_format if client else None)
                or settings.DEFAULT_TRACKING_NUMBER_FORMAT
            ),
        }

    async def lookup(
        self,
        tracking_number: str | None,
        client_id: uuid.UUID | None = None,
    ) -> dict:
        """Check whether a tracking number has been issued.

        An unknown number is a normal negative answer, not an error. Store
        failures raise ``UpstreamError`` instead of reporting ``exists=False``.
        """
        tracking_number = (tracking_number or "").strip()
        if not tracking_number:
            raise ValidationFailed("Missing tracking_number parameter")

        try:
            result = await self.db.execute(
                select(Sample.id, Sample.tracking_number, Sample.created_at)
                .where(Sample.tracking_number == tracking_number)
            )
            sample = result.one_or_none()
            template = None
            if client_id is not None:
                template = (await self.db.execute(
                    select(Client.tracking_number_format).where(Client.id == client_id)
                )).scalar_one_or_none()
        except SQLAlchemyError as exc:
            logger.error("Tracking number lookup failed for %s: %s", tracking_number, exc)
            raise UpstreamError(
                "Failed to look up tracking number",
                details={"message": str(getattr(exc, "orig", None) or exc)},
            ) from exc

        if sample is None:
            data: dict = {
                "valid": False,
                "exists": False,
                "tracking_number": tracking_number,
            }
        else:
            data = {
                "valid": True,
                "exists": True,
                "tracking_number": sample.tracking_number,
                "sample_id": sample.id,
                "created_at": sample.created_at,
            }

        if client_id is not None:
            data["format_valid"] = self._format_valid(tracking_number, template)
        return data

    @staticmethod
    def _format_valid(tracking_number: str, template: str | None) -> bool:
        template = template or settings.DEFAULT_TRACKING_NUMBER_FORMAT
        try:
            return matches_format(tracking_number, template)
        except ValueError:
            # Formats provisioned directly in the database may use
            # placeholders this service cannot recognise
            logger.warning("Unrecognised tracking number format %r", template)
            return False
