"""Client directory, fuzzy search, origin-specific pricing and quality specifications."""

import logging
import uuid

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from qclab.config import settings
from qclab.core.exceptions import ConflictError, NotFoundError, ValidationFailed
from qclab.core.sanitize import clean_search_term
from qclab.models.client import Client, ClientOriginPricing, ClientQuality
from qclab.models.enums import AuditAction, PricingModel
from qclab.models.quality import QualityTemplate
from qclab.models.sample import Sample
from qclab.schemas.client import (
    ClientCreate,
    ClientUpdate,
    OriginPricingUpdate,
    OriginPricingUpsert,
    QualitySpecificationCreate,
    QualitySpecificationUpdate,
)
from qclab.services.audit import AuditService, apply_changes
from qclab.services.fees import validate_pricing
from qclab.services.procedures import StoredProcedures

logger = logging.getLogger(__name__)

# search_clients tags rows from the QC client table with this source
QC_CLIENT_SOURCE = "clients"


class ClientService:
    def __init__(self, db: AsyncSession, procedures: StoredProcedures | None = None):
        self.db = db
        self.procedures = procedures
        self.audit = AuditService(db)

    # ── Search ────────────────────────────────────────────────────────

    async def search(self, term: str | None, limit: int | None = None) -> dict:
        """Fuzzy search across client directories.

        The term is validated before the backing store is touched.
        """
        term = clean_search_term(term)
        if len(term) < settings.CLIENT_SEARCH_MIN_LENGTH:
            raise ValidationFailed(
                f"Search term must be at least {settings.CLIENT_SEARCH_MIN_LENGTH} characters"
            )
        limit = limit or settings.CLIENT_SEARCH_DEFAULT_LIMIT

        rows = await self.procedures.search_clients(term, limit)
        results = [
            {
                "id": row.get("qc_client_id") or row.get("company_id"),
                "company_id": row.get("company_id"),
                "qc_client_id": row.get("qc_client_id"),
                "name": row.get("name"),
                "fantasy_name": row.get("fantasy_name"),
                "email": row.get("email"),
                "phone": row.get("phone"),
                "city": row.get("city"),
                "state": row.get("state"),
                "country": row.get("country"),
                "source": row.get("source_table"),
                "relevance": row.get("relevance_score"),
                "is_qc_client": row.get("source_table") == QC_CLIENT_SOURCE,
                "can_import": row.get("source_table") != QC_CLIENT_SOURCE,
            }
            for row in rows
        ]
        return {"results": results, "count": len(results), "search_term": term, "limit": limit}

    # ── Clients ───────────────────────────────────────────────────────

    async def list_clients(
        self,
        search: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[Client], int]:
        query = select(Client)
        term = clean_search_term(search)
        if term:
            pattern = f"%{term}%"
            query = query.where(or_(
                Client.name.ilike(pattern),
                Client.company.ilike(pattern),
                Client.fantasy_name.ilike(pattern),
            ))

        count_q = select(func.count()).select_from(query.subquery())
        total = (await self.db.execute(count_q)).scalar_one()

        query = query.order_by(Client.created_at.desc()).offset(offset).limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def get_client(self, client_id: uuid.UUID) -> Client | None:
        return await self.db.get(Client, client_id)

    async def create_client(self, data: ClientCreate, created_by: uuid.UUID) -> Client:
        if data.email:
            existing = (await self.db.execute(
                select(Client).where(Client.email == data.email).limit(1)
            )).scalar_one_or_none()
            if existing is not None:
                raise ConflictError(
                    "A client with this email address already exists",
                    details={
                        "existing_client": {
                            "id": str(existing.id),
                            "name": existing.name,
                            "company": existing.company,
                        },
                    },
                )

        values = data.model_dump()
        values["fantasy_name"] = values["fantasy_name"] or data.company
        client = Client(id=uuid.uuid4(), **values)
        self.db.add(client)
        await self.db.flush()

        self.audit.log(
            user_id=created_by,
            action=AuditAction.CREATE,
            entity_type="client",
            entity_id=client.id,
            new_values={"name": client.name, "company": client.company},
        )
        return client

    async def update_client(
        self, client_id: uuid.UUID, data: ClientUpdate, updated_by: uuid.UUID
    ) -> Client | None:
        client = await self.get_client(client_id)
        if client is None:
            return None

        old_values, new_values = apply_changes(client, data.model_dump(exclude_unset=True))
        if new_values:
            self.audit.log(
                user_id=updated_by,
                action=AuditAction.UPDATE,
                entity_type="client",
                entity_id=client.id,
                old_values=old_values,
                new_values=new_values,
            )
        return client

    # ── Origin pricing ────────────────────────────────────────────────

    async def list_origin_pricing(self, client_id: uuid.UUID) -> dict:
        client = await self._require_client(client_id)
        result = await self.db.execute(
            select(ClientOriginPricing)
            .where(ClientOriginPricing.client_id == client_id)
            .order_by(ClientOriginPricing.origin)
        )
        return {
            "client_id": client.id,
            "has_origin_pricing": client.has_origin_pricing,
            "origin_pricing": list(result.scalars().all()),
        }

    async def upsert_origin_pricing(
        self,
        client_id: uuid.UUID,
        data: OriginPricingUpsert,
        updated_by: uuid.UUID,
    ) -> ClientOriginPricing:
        """Insert or replace the pricing for (client, origin)."""
        errors = validate_pricing(
            data.pricing_model, data.price_per_sample, data.price_per_pound_cents
        )
        if errors:
            raise ValidationFailed(errors[0], details={"errors": errors})

        client = await self._require_client(client_id)
        origin = data.origin.strip()
        values = {
            "pricing_model": data.pricing_model,
            "price_per_sample": (
                data.price_per_sample if data.pricing_model == PricingModel.PER_SAMPLE else None
            ),
            "price_per_pound_cents": (
                data.price_per_pound_cents if data.pricing_model == PricingModel.PER_POUND else None
            ),
            "currency": data.currency,
            "is_active": data.is_active,
        }

        pricing = await self._get_origin_pricing(client_id, origin)
        if pricing is None:
            pricing = ClientOriginPricing(
                id=uuid.uuid4(), client_id=client_id, origin=origin, **values
            )
            self.db.add(pricing)
            action = AuditAction.CREATE
        else:
            for field, value in values.items():
                setattr(pricing, field, value)
            action = AuditAction.UPDATE

        client.has_origin_pricing = True
        await self.db.flush()

        self.audit.log(
            user_id=updated_by,
            action=action,
            entity_type="client_origin_pricing",
            entity_id=pricing.id,
            new_values={
                "client_id": str(client_id),
                "origin": origin,
                "pricing_model": data.pricing_model.value,
            },
        )
        return pricing

    async def update_origin_pricing(
        self,
        client_id: uuid.UUID,
        origin: str,
        data: OriginPricingUpdate,
        updated_by: uuid.UUID,
    ) -> ClientOriginPricing:
        pricing = await self._get_origin_pricing(client_id, origin)
        if pricing is None:
            raise NotFoundError("Origin pricing not found")

        changes = data.model_dump(exclude_unset=True)
        errors = validate_pricing(
            changes.get("pricing_model") or pricing.pricing_model,
            changes.get("price_per_sample", pricing.price_per_sample),
            changes.get("price_per_pound_cents", pricing.price_per_pound_cents),
        )
        if errors:
            raise ValidationFailed(errors[0], details={"errors": errors})

        old_values, new_values = apply_changes(pricing, changes)
        if new_values:
            self.audit.log(
                user_id=updated_by,
                action=AuditAction.UPDATE,
                entity_type="client_origin_pricing",
                entity_id=pricing.id,
                old_values=old_values,
                new_values=new_values,
            )
        return pricing

    async def delete_origin_pricing(
        self, client_id: uuid.UUID, origin: str, deleted_by: uuid.UUID
    ) -> None:
        """Remove one origin override; clears the client flag when none remain."""
        client = await self._require_client(client_id)
        pricing = await self._get_origin_pricing(client_id, origin)
        if pricing is None:
            raise NotFoundError("Origin pricing not found")

        await self.db.delete(pricing)
        await self.db.flush()

        remaining = (await self.db.execute(
            select(func.count(ClientOriginPricing.id))
            .where(ClientOriginPricing.client_id == client_id)
        )).scalar_one()
        if remaining == 0:
            client.has_origin_pricing = False

        self.audit.log(
            user_id=deleted_by,
            action=AuditAction.DELETE,
            entity_type="client_origin_pricing",
            entity_id=pricing.id,
            old_values={"client_id": str(client_id), "origin": origin},
        )

    # ── Quality specifications ────────────────────────────────────────

    async def list_quality_specifications(
        self, client_id: uuid.UUID
    ) -> list[tuple[ClientQuality, QualityTemplate | None]]:
        await self._require_client(client_id)
        result = await self.db.execute(
            select(ClientQuality, QualityTemplate)
            .outerjoin(QualityTemplate, ClientQuality.template_id == QualityTemplate.id)
            .where(ClientQuality.client_id == client_id)
            .order_by(ClientQuality.created_at.desc())
        )
        return [tuple(row) for row in result.all()]

    async def get_quality_specification(
        self, client_id: uuid.UUID, spec_id: uuid.UUID
    ) -> tuple[ClientQuality, QualityTemplate | None]:
        result = await self.db.execute(
            select(ClientQuality, QualityTemplate)
            .outerjoin(QualityTemplate, ClientQuality.template_id == QualityTemplate.id)
            .where(ClientQuality.id == spec_id, ClientQuality.client_id == client_id)
        )
        row = result.one_or_none()
        if row is None:
            raise NotFoundError("Quality specification not found")
        return tuple(row)

    async def create_quality_specification(
        self,
        client_id: uuid.UUID,
        data: QualitySpecificationCreate,
        created_by: uuid.UUID,
    ) -> tuple[ClientQuality, QualityTemplate]:
        """Assign a quality template to a client, optionally for one origin."""
        if data.template_id is None:
            raise ValidationFailed("Missing required field: template_id")
        await self._require_client(client_id)
        template = await self._require_template(data.template_id)

        origin = (data.origin or "").strip() or None
        duplicate = (await self.db.execute(
            select(ClientQuality.id).where(
                ClientQuality.client_id == client_id,
                ClientQuality.template_id == data.template_id,
                (ClientQuality.origin == origin) if origin else ClientQuality.origin.is_(None),
            ).limit(1)
        )).scalar_one_or_none()
        if duplicate is not None:
            message = "This template is already assigned to this client"
            if origin:
                message += f" for origin: {origin}"
            raise ConflictError(message, details={"existing_id": str(duplicate)})

        spec = ClientQuality(
            id=uuid.uuid4(),
            client_id=client_id,
            template_id=template.id,
            origin=origin,
            custom_parameters=data.custom_parameters or {},
        )
        self.db.add(spec)
        await self.db.flush()

        self.audit.log(
            user_id=created_by,
            action=AuditAction.CREATE,
            entity_type="client_quality",
            entity_id=spec.id,
            new_values={
                "client_id": str(client_id),
                "template_id": str(template.id),
                "origin": origin,
            },
        )
        return spec, template

    async def update_quality_specification(
        self,
        client_id: uuid.UUID,
        spec_id: uuid.UUID,
        data: QualitySpecificationUpdate,
        updated_by: uuid.UUID,
    ) -> tuple[ClientQuality, QualityTemplate | None]:
        spec, template = await self.get_quality_specification(client_id, spec_id)
        changes = data.model_dump(exclude_unset=True)

        if changes.get("template_id") and changes["template_id"] != spec.template_id:
            in_use = await self._samples_using_spec(spec.id)
            if in_use:
                raise ConflictError(
                    "Cannot change template: specification is in use by existing samples",
                    details={"sample_count": in_use},
                )
            template = await self._require_template(changes["template_id"])
        if "origin" in changes:
            changes["origin"] = (changes["origin"] or "").strip() or None

        old_values, new_values = apply_changes(spec, changes)
        if new_values:
            self.audit.log(
                user_id=updated_by,
                action=AuditAction.UPDATE,
                entity_type="client_quality",
                entity_id=spec.id,
                old_values=old_values,
                new_values=new_values,
            )
        return spec, template

    async def delete_quality_specification(
        self, client_id: uuid.UUID, spec_id: uuid.UUID, deleted_by: uuid.UUID
    ) -> None:
        spec, _ = await self.get_quality_specification(client_id, spec_id)
        in_use = await self._samples_using_spec(spec.id)
        if in_use:
            raise ConflictError(
                f"Cannot delete: specification is in use by {in_use} sample(s)",
                details={"sample_count": in_use},
            )

        await self.db.delete(spec)
        self.audit.log(
            user_id=deleted_by,
            action=AuditAction.DELETE,
            entity_type="client_quality",
            entity_id=spec_id,
            old_values={"client_id": str(client_id), "template_id": str(spec.template_id)},
        )

    async def _require_client(self, client_id: uuid.UUID) -> Client:
        client = await self.get_client(client_id)
        if client is None:
            raise NotFoundError("Client not found")
        return client

    async def _get_origin_pricing(
        self, client_id: uuid.UUID, origin: str
    ) -> ClientOriginPricing | None:
        result = await self.db.execute(
            select(ClientOriginPricing).where(
                ClientOriginPricing.client_id == client_id,
                ClientOriginPricing.origin == origin,
            )
        )
        return result.scalar_one_or_none()

    async def _require_template(self, template_id: uuid.UUID) -> QualityTemplate:
        template = await self.db.get(QualityTemplate, template_id)
        if template is None:
            raise NotFoundError("Invalid template_id: template not found")
        return template

    async def _samples_using_spec(self, spec_id: uuid.UUID) -> int:
        return (await self.db.execute(
            select(func.count(Sample.id)).where(Sample.quality_spec_id == spec_id)
        )).scalar_one()
