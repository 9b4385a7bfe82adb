"""Quality templates: listing, authoring, versioning and cloning."""

import logging
import numbers
import uuid
from decimal import Decimal

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from qclab.core.exceptions import ConflictError, NotFoundError, ValidationFailed
from qclab.core.sanitize import clean_search_term
from qclab.models.client import ClientQuality
from qclab.models.enums import AuditAction
from qclab.models.quality import QualityTemplate, TemplateVersion
from qclab.models.user import Profile
from qclab.schemas.quality import TemplateClone, TemplateCreate, TemplateUpdate
from qclab.services.audit import AuditService, apply_changes

logger = logging.getLogger(__name__)

DEFAULT_SAMPLE_SIZE_GRAMS = 300
DEFAULT_CUPPING_SCALE = {
    "type": "1-10",
    "min": Decimal("1.00"),
    "max": Decimal("10.00"),
    "increment": Decimal("0.25"),
}
CUPPING_SCALE_TYPES = ("1-5", "1-7", "1-10")

# Fields copied verbatim from the source template
COPIED_FIELDS = (
    "defect_thresholds_primary",
    "defect_thresholds_secondary",
    "moisture_standard",
    "screen_size_requirements",
    "cupping_scale_type",
    "cupping_scale_min",
    "cupping_scale_max",
    "cupping_scale_increment",
    "max_taints_allowed",
    "max_faults_allowed",
    "taint_fault_rule_type",
)


def _is_number(value) -> bool:
    return isinstance(value, numbers.Number) and not isinstance(value, bool)


def validate_template_parameters(parameters) -> str | None:
    """Check the free-form ``parameters`` document; return the first problem found."""
    if not isinstance(parameters, dict):
        return "Parameters must be an object"

    screen_sizes = parameters.get("screen_sizes")
    if screen_sizes:
        if not isinstance(screen_sizes, dict):
            return "screen_sizes must be an object"
        if screen_sizes.get("type") == "range":
            if not screen_sizes.get("min") or not screen_sizes.get("max"):
                return "Range screen sizes must have min and max values"
        elif screen_sizes.get("type") == "specific":
            if not isinstance(screen_sizes.get("sizes"), list):
                return "Specific screen sizes must be an array"

    defects = parameters.get("defects")
    if defects:
        if not isinstance(defects, dict):
            return "defects must be an object"
        for key in ("primary_max", "secondary_max"):
            if key in defects and not _is_number(defects[key]):
                return f"defects.{key} must be a number"

    if "moisture_max" in parameters:
        moisture = parameters["moisture_max"]
        if not _is_number(moisture) or not 0 <= moisture <= 100:
            return "moisture_max must be a number between 0 and 100"

    cupping = parameters.get("cupping")
    if cupping:
        if not isinstance(cupping, dict):
            return "cupping must be an object"
        if cupping.get("scale_type") and cupping["scale_type"] not in CUPPING_SCALE_TYPES:
            return f"cupping.scale_type must be one of: {', '.join(CUPPING_SCALE_TYPES)}"
        if "min_score" in cupping and not _is_number(cupping["min_score"]):
            return "cupping.min_score must be a number"
        if cupping.get("attributes") and not isinstance(cupping["attributes"], list):
            return "cupping.attributes must be an array"
    return None


def _check_cupping_range(minimum: Decimal | None, maximum: Decimal | None) -> None:
    if minimum is not None and maximum is not None and minimum >= maximum:
        raise ValidationFailed("cupping_scale_min must be less than cupping_scale_max")


def _suffixed(name: str | None, suffix: str) -> str | None:
    return f"{name} ({suffix})" if name else None


class QualityTemplateService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditService(db)

    async def list_templates(
        self,
        is_active: bool | None = None,
        search: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[dict], int]:
        query = select(QualityTemplate)
        if is_active is not None:
            query = query.where(QualityTemplate.is_active == is_active)
        term = clean_search_term(search)
        if term:
            pattern = f"%{term}%"
            query = query.where(or_(
                QualityTemplate.name_en.ilike(pattern),
                QualityTemplate.name_pt.ilike(pattern),
                QualityTemplate.name_es.ilike(pattern),
                QualityTemplate.description_en.ilike(pattern),
                QualityTemplate.description_pt.ilike(pattern),
                QualityTemplate.description_es.ilike(pattern),
            ))

        count_q = select(func.count()).select_from(query.subquery())
        total = (await self.db.execute(count_q)).scalar_one()

        query = query.order_by(QualityTemplate.created_at.desc()).offset(offset).limit(limit)
        templates = list((await self.db.execute(query)).scalars().all())
        return [await self._with_usage(t) for t in templates], total

    async def get_template(self, template_id: uuid.UUID) -> dict | None:
        template = await self.db.get(QualityTemplate, template_id)
        if template is None:
            return None
        return await self._with_usage(template)

    async def clone_template(
        self,
        template_id: uuid.UUID,
        data: TemplateClone,
        created_by: uuid.UUID,
    ) -> QualityTemplate:
        """Copy a template as a new version-1 template referencing its parent."""
        source = await self.db.get(QualityTemplate, template_id)
        if source is None:
            raise NotFoundError("Template not found")

        overrides = data.model_dump(exclude_unset=True)
        name_en = data.name_en or f"{source.name_en} (Copy)"
        description_en = data.description_en or source.description_en
        clone = QualityTemplate(
            id=uuid.uuid4(),
            name=name_en,
            description=description_en,
            name_en=name_en,
            name_pt=data.name_pt or _suffixed(source.name_pt, "Cópia"),
            name_es=data.name_es or _suffixed(source.name_es, "Copia"),
            description_en=description_en,
            description_pt=data.description_pt or source.description_pt,
            description_es=data.description_es or source.description_es,
            sample_size_grams=(
                data.sample_size_grams or source.sample_size_grams or DEFAULT_SAMPLE_SIZE_GRAMS
            ),
            template_parent_id=source.id,
            laboratory_id=overrides.get("laboratory_id", source.laboratory_id),
            is_global=bool(overrides.get("is_global", False)),
            version=1,
            parameters=dict(source.parameters or {}),
            is_active=overrides.get("is_active", True) is not False,
            created_by=created_by,
            **{field: getattr(source, field) for field in COPIED_FIELDS},
        )
        self.db.add(clone)
        await self.db.flush()

        self.db.add(TemplateVersion(
            id=uuid.uuid4(),
            template_id=clone.id,
            version_number=1,
            parameters=clone.parameters,
            changes_description=f"Cloned from template: {source.name_en}",
            created_by=created_by,
        ))
        self.audit.log(
            user_id=created_by,
            action=AuditAction.CREATE,
            entity_type="quality_template",
            entity_id=clone.id,
            new_values={"name_en": clone.name_en, "cloned_from": str(source.id)},
        )
        logger.info("Cloned quality template %s -> %s", source.id, clone.id)
        return clone

    async def create_template(self, data: TemplateCreate, created_by: uuid.UUID) -> QualityTemplate:
        """Create a version-1 template and record its initial version."""
        if not data.name_en:
            raise ValidationFailed("Missing required field: name_en")
        if data.parameters:
            error = validate_template_parameters(data.parameters)
            if error:
                raise ValidationFailed(error)

        values = data.model_dump(exclude={"name_pt", "name_es", "description_pt", "description_es"})
        description_en = data.description_en or None
        values.update(
            name=data.name_en,
            description=description_en or "",
            name_pt=data.name_pt or data.name_en,
            name_es=data.name_es or data.name_en,
            description_en=description_en,
            description_pt=data.description_pt or description_en,
            description_es=data.description_es or description_en,
            sample_size_grams=data.sample_size_grams or DEFAULT_SAMPLE_SIZE_GRAMS,
            cupping_scale_type=data.cupping_scale_type or DEFAULT_CUPPING_SCALE["type"],
            cupping_scale_min=data.cupping_scale_min or DEFAULT_CUPPING_SCALE["min"],
            cupping_scale_max=data.cupping_scale_max or DEFAULT_CUPPING_SCALE["max"],
            cupping_scale_increment=(
                data.cupping_scale_increment or DEFAULT_CUPPING_SCALE["increment"]
            ),
            taint_fault_rule_type=data.taint_fault_rule_type or "AND",
            screen_size_requirements=data.screen_size_requirements or {},
            parameters=data.parameters or {},
        )
        if values["cupping_scale_min"] >= values["cupping_scale_max"]:
            raise ValidationFailed("cupping_scale_min must be less than cupping_scale_max")

        template = QualityTemplate(id=uuid.uuid4(), version=1, created_by=created_by, **values)
        self.db.add(template)
        await self.db.flush()

        self.db.add(TemplateVersion(
            id=uuid.uuid4(),
            template_id=template.id,
            version_number=1,
            parameters=template.parameters,
            changes_description="Initial version",
            created_by=created_by,
        ))
        self.audit.log(
            user_id=created_by,
            action=AuditAction.CREATE,
            entity_type="quality_template",
            entity_id=template.id,
            new_values={"name_en": template.name_en},
        )
        logger.info("Created quality template %s (%s)", template.id, template.name_en)
        return template

    async def update_template(
        self,
        template_id: uuid.UUID,
        data: TemplateUpdate,
        updated_by: uuid.UUID,
    ) -> QualityTemplate:
        template = await self.db.get(QualityTemplate, template_id)
        if template is None:
            raise NotFoundError("Template not found")

        changes = data.model_dump(exclude_unset=True)
        changes_description = changes.pop("changes_description", None)
        if "parameters" in changes and changes["parameters"] is not None:
            error = validate_template_parameters(changes["parameters"])
            if error:
                raise ValidationFailed(error)
        _check_cupping_range(
            changes.get("cupping_scale_min", template.cupping_scale_min),
            changes.get("cupping_scale_max", template.cupping_scale_max),
        )

        # The legacy single-language columns follow the English ones
        if changes.get("name_en"):
            changes["name"] = changes["name_en"]
        if "description_en" in changes:
            changes["description"] = changes["description_en"] or ""

        parameters_changed = (
            changes.get("parameters") is not None
            and changes["parameters"] != (template.parameters or {})
        )
        old_values, new_values = apply_changes(template, changes)
        if parameters_changed:
            template.version += 1
            new_values["version"] = str(template.version)
            self.db.add(TemplateVersion(
                id=uuid.uuid4(),
                template_id=template.id,
                version_number=template.version,
                parameters=template.parameters,
                changes_description=changes_description or "Parameters updated",
                created_by=updated_by,
            ))

        if new_values:
            self.audit.log(
                user_id=updated_by,
                action=AuditAction.UPDATE,
                entity_type="quality_template",
                entity_id=template.id,
                old_values=old_values,
                new_values=new_values,
            )
        return template

    async def delete_template(self, template_id: uuid.UUID, deleted_by: uuid.UUID) -> None:
        """Delete a template no client specification uses.

        Its version history goes with it; clones keep existing without a parent.
        """
        template = await self.db.get(QualityTemplate, template_id)
        if template is None:
            raise NotFoundError("Template not found")

        usage = await self._usage_count(template.id)
        if usage > 0:
            raise ConflictError(
                "Cannot delete template that is in use",
                details={"usage_count": usage},
            )

        await self.db.execute(
            update(QualityTemplate)
            .where(QualityTemplate.template_parent_id == template.id)
            .values(template_parent_id=None)
        )
        await self.db.execute(
            delete(TemplateVersion).where(TemplateVersion.template_id == template.id)
        )
        await self.db.delete(template)
        self.audit.log(
            user_id=deleted_by,
            action=AuditAction.DELETE,
            entity_type="quality_template",
            entity_id=template_id,
            old_values={"name_en": template.name_en, "version": str(template.version)},
        )
        logger.info("Deleted quality template %s", template_id)

    async def _usage_count(self, template_id: uuid.UUID) -> int:
        return (await self.db.execute(
            select(func.count(ClientQuality.id)).where(ClientQuality.template_id == template_id)
        )).scalar_one()

    async def _with_usage(self, template: QualityTemplate) -> dict:
        usage = await self._usage_count(template.id)
        creator_name = None
        if template.created_by:
            creator = await self.db.get(Profile, template.created_by)
            if creator is not None:
                creator_name = creator.full_name or creator.email
        return {
            **{c.key: getattr(template, c.key) for c in QualityTemplate.__table__.columns},
            "usage_count": usage,
            "created_by_name": creator_name or "Unknown",
        }
