"""Sample intake, retrieval, storage assignment and position suggestions."""

import logging
import math
import uuid
from collections import OrderedDict

from sqlalchemy import func, select
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from qclab.config import settings
from qclab.core.exceptions import NotFoundError, UpstreamError, ValidationFailed
from qclab.core.sanitize import sanitize_text
from qclab.models.client import Client, ClientOriginPricing, ClientQuality
from qclab.models.enums import AuditAction, SampleStatus, SampleType
from qclab.models.laboratory import LabShelf, StoragePosition
from qclab.models.sample import Sample
from qclab.schemas.sample import SampleCreate, SampleUpdate
from qclab.services.audit import AuditService, apply_changes
from qclab.services.fees import FeeCalculation, Pricing, calculate_sample_fee
from qclab.services.procedures import StoredProcedures
from qclab.services.tracking import TrackingNumberService

logger = logging.getLogger(__name__)

CLIENT_SHELF_SCORE = 100
EMPTY_POSITION_SCORE = 5

# Prefix of the message raised by the sample workflow trigger
WORKFLOW_TRANSITION_ERROR = "Invalid workflow stage transition"


class SampleService:
    def __init__(self, db: AsyncSession, procedures: StoredProcedures | None = None):
        self.db = db
        self.procedures = procedures
        self.audit = AuditService(db)

    async def list_samples(
        self,
        limit: int = 50,
        offset: int = 0,
        status: SampleStatus | None = None,
        client_id: uuid.UUID | None = None,
        laboratory_id: uuid.UUID | None = None,
        origin: str | None = None,
        quality_spec_id: uuid.UUID | None = None,
        sample_type: SampleType | None = None,
        workflow_stage: str | None = None,
    ) -> tuple[list[Sample], int]:
        query = select(Sample)
        if status:
            query = query.where(Sample.status == status)
        if client_id:
            query = query.where(Sample.client_id == client_id)
        if laboratory_id:
            query = query.where(Sample.laboratory_id == laboratory_id)
        if origin:
            query = query.where(Sample.origin == origin)
        if quality_spec_id:
            query = query.where(Sample.quality_spec_id == quality_spec_id)
        if sample_type:
            query = query.where(Sample.sample_type == sample_type)
        if workflow_stage:
            query = query.where(Sample.workflow_stage == workflow_stage)

        count_q = select(func.count()).select_from(query.subquery())
        total = (await self.db.execute(count_q)).scalar_one()

        query = query.order_by(Sample.created_at.desc()).offset(offset).limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def create_sample(self, data: SampleCreate, created_by: uuid.UUID) -> Sample:
        """Register a sample at intake and issue its tracking number."""
        if not (data.client_id and data.laboratory_id and data.origin and data.supplier):
            raise ValidationFailed(
                "Missing required fields: client_id, laboratory_id, origin, supplier"
            )
        if data.bags_quantity_mt is not None and data.bags_quantity_mt <= 0:
            raise ValidationFailed("bags_quantity_mt must be positive")
        if data.bag_count is not None and data.bag_count <= 0:
            raise ValidationFailed("bag_count must be positive")

        quality_spec_id = data.quality_spec_id
        if quality_spec_id is None and data.auto_detect_quality:
            quality_spec_id = (await self.db.execute(
                select(ClientQuality.id)
                .where(
                    ClientQuality.client_id == data.client_id,
                    ClientQuality.origin == data.origin,
                )
                .limit(1)
            )).scalar_one_or_none()

        tracking = TrackingNumberService(self.db, self.procedures)
        allocation = await tracking.allocate(data.client_id, data.laboratory_id, data.origin)

        values = data.model_dump(exclude={"auto_detect_quality", "quality_spec_id", "notes"})
        values["workflow_stage"] = values["workflow_stage"] or "received"
        sample = Sample(
            id=uuid.uuid4(),
            tracking_number=allocation["tracking_number"],
            quality_spec_id=quality_spec_id,
            notes=sanitize_text(data.notes),
            created_by=created_by,
            **values,
        )
        self.db.add(sample)
        await self.db.flush()

        self.audit.log(
            user_id=created_by,
            action=AuditAction.CREATE,
            entity_type="sample",
            entity_id=sample.id,
            new_values={
                "tracking_number": sample.tracking_number,
                "client_id": str(sample.client_id),
                "laboratory_id": str(sample.laboratory_id),
            },
        )
        return sample

    async def get_sample(self, sample_id: uuid.UUID) -> Sample | None:
        return await self.db.get(Sample, sample_id)

    async def update_sample(
        self,
        sample_id: uuid.UUID,
        data: SampleUpdate,
        updated_by: uuid.UUID,
    ) -> Sample:
        """Apply a partial update to a sample.

        Workflow stage transitions are policed by a database trigger; its
        rejection surfaces as a 400 carrying the trigger's message.
        """
        sample = await self.get_sample(sample_id)
        if sample is None:
            raise NotFoundError("Sample not found")

        changes = data.model_dump(exclude_unset=True)
        if changes.get("bags_quantity_mt") is not None and changes["bags_quantity_mt"] <= 0:
            raise ValidationFailed("bags_quantity_mt must be positive")
        if changes.get("bag_count") is not None and changes["bag_count"] <= 0:
            raise ValidationFailed("bag_count must be positive")
        if "notes" in changes:
            changes["notes"] = sanitize_text(changes["notes"])

        old_values, new_values = apply_changes(sample, changes)
        if not new_values:
            return sample

        try:
            await self.db.flush()
        except DBAPIError as exc:
            message = str(exc.orig)
            if WORKFLOW_TRANSITION_ERROR in message:
                raise ValidationFailed(
                    "Invalid workflow stage transition", details={"message": message}
                ) from exc
            logger.error("Failed to update sample %s: %s", sample_id, message)
            raise UpstreamError(
                "Failed to update sample", details={"message": message}
            ) from exc

        self.audit.log(
            user_id=updated_by,
            action=AuditAction.UPDATE,
            entity_type="sample",
            entity_id=sample.id,
            old_values=old_values,
            new_values=new_values,
        )
        return sample

    async def calculate_fee(self, sample: Sample) -> FeeCalculation | None:
        """Fee from the active origin pricing, falling back to the client's defaults."""
        client = await self.db.get(Client, sample.client_id)
        if client is None:
            return None

        pricing = Pricing(
            pricing_model=client.pricing_model,
            price_per_sample=client.price_per_sample,
            price_per_pound_cents=client.price_per_pound_cents,
            currency=client.currency,
        )
        if client.has_origin_pricing:
            override = (await self.db.execute(
                select(ClientOriginPricing).where(
                    ClientOriginPricing.client_id == client.id,
                    ClientOriginPricing.origin == sample.origin,
                    ClientOriginPricing.is_active == True,  # noqa: E712
                )
            )).scalar_one_or_none()
            if override is not None:
                pricing = Pricing(
                    pricing_model=override.pricing_model,
                    price_per_sample=override.price_per_sample,
                    price_per_pound_cents=override.price_per_pound_cents,
                    currency=override.currency,
                )

        return calculate_sample_fee(
            pricing,
            bags_quantity_mt=sample.bags_quantity_mt,
            bag_count=sample.bag_count,
            bag_weight_kg=sample.bag_weight_kg,
        )

    async def assign_storage(
        self,
        sample_id: uuid.UUID,
        position_id: uuid.UUID | None,
        assigned_by: uuid.UUID,
    ) -> tuple[Sample, StoragePosition]:
        """Move a sample into a storage position of its own laboratory."""
        if not position_id:
            raise ValidationFailed("storage_position_id is required")

        sample = await self.get_sample(sample_id)
        if sample is None:
            raise NotFoundError("Sample not found")

        result = await self.db.execute(
            select(StoragePosition)
            .where(StoragePosition.id == position_id)
            .with_for_update()
        )
        position = result.scalar_one_or_none()
        if position is None:
            raise NotFoundError("Storage position not found")
        if position.laboratory_id != sample.laboratory_id:
            raise ValidationFailed(
                "Storage position must be in the same laboratory as the sample"
            )
        if sample.storage_position_id == position.id:
            return sample, position
        if not position.is_available:
            raise ValidationFailed(
                "Storage position is at full capacity",
                details={
                    "current": position.current_count,
                    "capacity": position.capacity_per_position,
                },
            )

        previous_id = sample.storage_position_id
        if previous_id is not None:
            previous = (await self.db.execute(
                select(StoragePosition)
                .where(StoragePosition.id == previous_id)
                .with_for_update()
            )).scalar_one_or_none()
            if previous is not None and previous.current_count > 0:
                previous.current_count -= 1

        position.current_count += 1
        sample.storage_position_id = position.id
        sample.storage_position = position.position_code

        self.audit.log(
            user_id=assigned_by,
            action=AuditAction.UPDATE,
            entity_type="sample",
            entity_id=sample.id,
            old_values={"storage_position_id": str(previous_id) if previous_id else None},
            new_values={
                "storage_position_id": str(position.id),
                "position_code": position.position_code,
                "event": "assign_storage",
            },
        )
        return sample, position

    async def suggested_positions(
        self,
        sample_id: uuid.UUID,
        limit: int | None = None,
    ) -> dict | None:
        """Rank available positions in the sample's laboratory.

        +100 when the shelf is dedicated to the sample's client, 0-10 by free
        capacity, +5 for an empty position.
        """
        sample = await self.get_sample(sample_id)
        if sample is None:
            return None
        limit = limit or settings.SUGGESTED_POSITIONS_LIMIT

        result = await self.db.execute(
            select(StoragePosition, LabShelf, Client)
            .join(LabShelf, StoragePosition.shelf_id == LabShelf.id)
            .outerjoin(Client, LabShelf.client_id == Client.id)
            .where(
                StoragePosition.laboratory_id == sample.laboratory_id,
                StoragePosition.current_count < StoragePosition.capacity_per_position,
            )
            .order_by(StoragePosition.current_count.asc())
        )

        scored = []
        for position, shelf, client in result.all():
            score = 0
            reasons = []
            is_client_shelf = shelf.client_id is not None and shelf.client_id == sample.client_id
            if is_client_shelf:
                score += CLIENT_SHELF_SCORE
                reasons.append(f"Dedicated shelf for {client.name if client else 'your client'}")

            available = position.capacity_per_position - position.current_count
            capacity_pct = available / position.capacity_per_position * 100
            score += math.floor(capacity_pct / 10)
            if capacity_pct > 80:
                reasons.append("Plenty of space available")
            elif capacity_pct > 50:
                reasons.append("Good availability")

            if position.current_count == 0:
                score += EMPTY_POSITION_SCORE
                reasons.append("Empty position")

            scored.append({
                "id": position.id,
                "position_code": position.position_code,
                "shelf_id": shelf.id,
                "shelf_letter": shelf.shelf_letter,
                "row_number": position.row_number,
                "column_number": position.column_number,
                "current_count": position.current_count,
                "capacity_per_position": position.capacity_per_position,
                "available_space": available,
                "score": score,
                "recommendation_reason": reasons,
                "is_recommended": score >= CLIENT_SHELF_SCORE,
                "_client": {"id": client.id, "name": client.name} if client else None,
                "_is_client_shelf": is_client_shelf,
            })

        # sorted() is stable, so ties keep the emptiest-first order
        top = sorted(scored, key=lambda p: p["score"], reverse=True)[:limit]

        grouped: OrderedDict[uuid.UUID, dict] = OrderedDict()
        for pos in top:
            group = grouped.setdefault(pos["shelf_id"], {
                "shelf_id": pos["shelf_id"],
                "shelf_letter": pos["shelf_letter"],
                "client": pos["_client"],
                "is_client_shelf": pos["_is_client_shelf"],
                "positions": [],
            })
            group["positions"].append(pos)
        for pos in top:
            del pos["_client"], pos["_is_client_shelf"]

        recommendation = None
        if top:
            recommendation = {
                "position_id": top[0]["id"],
                "position_code": top[0]["position_code"],
                "reason": ", ".join(top[0]["recommendation_reason"]),
            }
        return {
            "sample_id": sample.id,
            "total_suggestions": len(top),
            "positions": top,
            "grouped_by_shelf": list(grouped.values()),
            "recommendation": recommendation,
        }
