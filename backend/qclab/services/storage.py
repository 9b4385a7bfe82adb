"""Storage hierarchy service: Laboratory, Shelf, Position layout and assignment."""

import logging
import uuid
from collections import defaultdict

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from qclab.core.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    UpstreamError,
    ValidationFailed,
)
from qclab.core.permissions import (
    AuthContext,
    GLOBAL_ROLES,
    can_manage_laboratory,
    can_manage_positions,
    can_manage_shelves,
    is_admin,
    is_global_admin,
)
from qclab.models.client import Client
from qclab.models.enums import AuditAction, PositionAvailability
from qclab.models.laboratory import (
    DEFAULT_STORAGE_CAPACITY,
    Laboratory,
    LabShelf,
    StoragePosition,
)
from qclab.models.sample import Sample
from qclab.models.user import Profile
from qclab.schemas.laboratory import (
    LaboratoryCreate,
    LaboratoryUpdate,
    PositionUpdate,
    ShelfCreate,
    ShelfUpdate,
)
from qclab.services.audit import AuditService, apply_changes
from qclab.services.procedures import StoredProcedures

logger = logging.getLogger(__name__)

EMPTY_UTILIZATION = {
    "total_positions": 0,
    "occupied_positions": 0,
    "total_capacity": 0,
    "current_count": 0,
    "utilization_percentage": 0,
}

# Changing any of these invalidates the position grid
GRID_FIELDS = ("rows", "columns", "samples_per_position", "shelf_letter")
NULLABLE_SHELF_FIELDS = ("client_id", "naming_convention", "allow_client_view")


def utilization_percentage(current_count: int, total_capacity: int) -> float:
    """Percentage rounded to two places; 0 when there is no capacity."""
    if not total_capacity:
        return 0
    return round(current_count / total_capacity * 100, 2)


def summarize_positions(positions: list[StoragePosition]) -> dict:
    total_capacity = sum(p.capacity_per_position for p in positions)
    current_count = sum(p.current_count for p in positions)
    return {
        "total_positions": len(positions),
        "occupied_positions": sum(1 for p in positions if p.current_count > 0),
        "total_capacity": total_capacity,
        "current_count": current_count,
        "utilization_percentage": utilization_percentage(current_count, total_capacity),
    }


def _normalize_utilization(row: dict | None) -> dict:
    if not row:
        return dict(EMPTY_UTILIZATION)
    return {
        "total_positions": int(row.get("total_positions") or 0),
        "occupied_positions": int(row.get("occupied_positions") or 0),
        "total_capacity": int(row.get("total_capacity") or 0),
        "current_count": int(row.get("current_count") or 0),
        "utilization_percentage": float(row.get("utilization_percentage") or 0),
    }


class StorageService:
    def __init__(self, db: AsyncSession, procedures: StoredProcedures | None = None):
        self.db = db
        self.procedures = procedures
        self.audit = AuditService(db)

    # ── Laboratories ──────────────────────────────────────────────────

    async def list_laboratories(self, ctx: AuthContext) -> list[Laboratory]:
        query = select(Laboratory).order_by(Laboratory.name)
        if not (ctx.is_global_admin or ctx.role in GLOBAL_ROLES):
            if ctx.laboratory_id is None:
                return []
            query = query.where(Laboratory.id == ctx.laboratory_id)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_laboratory(self, laboratory_id: uuid.UUID) -> Laboratory | None:
        return await self.db.get(Laboratory, laboratory_id)

    async def create_laboratory(self, ctx: AuthContext, data: LaboratoryCreate) -> Laboratory:
        if not is_admin(ctx):
            raise PermissionDeniedError("Insufficient permissions")
        if not (data.name and data.name.strip() and data.location and data.location.strip()):
            raise ValidationFailed("Missing required fields: name, location")

        values = data.model_dump()
        values["name"] = data.name.strip()
        values["location"] = data.location.strip()
        values["code"] = data.code.strip().upper() if data.code else None
        values["storage_capacity"] = data.storage_capacity or DEFAULT_STORAGE_CAPACITY
        laboratory = Laboratory(id=uuid.uuid4(), **values)
        self.db.add(laboratory)
        await self.db.flush()

        self.audit.log(
            user_id=ctx.user_id,
            action=AuditAction.CREATE,
            entity_type="laboratory",
            entity_id=laboratory.id,
            new_values={"name": laboratory.name, "location": laboratory.location},
        )
        logger.info("Created laboratory %s (%s)", laboratory.name, laboratory.id)
        return laboratory

    async def update_laboratory(
        self,
        ctx: AuthContext,
        laboratory_id: uuid.UUID,
        data: LaboratoryUpdate,
    ) -> Laboratory:
        laboratory = await self.get_laboratory(laboratory_id)
        if laboratory is None:
            raise NotFoundError("Laboratory not found")
        if not can_manage_laboratory(ctx, laboratory_id):
            raise PermissionDeniedError("Insufficient permissions")

        changes = data.model_dump(exclude_unset=True)
        if changes.get("code"):
            changes["code"] = changes["code"].strip().upper()
        old_values, new_values = apply_changes(laboratory, changes)
        if new_values:
            self.audit.log(
                user_id=ctx.user_id,
                action=AuditAction.UPDATE,
                entity_type="laboratory",
                entity_id=laboratory.id,
                old_values=old_values,
                new_values=new_values,
            )
        return laboratory

    async def delete_laboratory(self, ctx: AuthContext, laboratory_id: uuid.UUID) -> None:
        """Delete a laboratory that holds no samples, personnel or shelves."""
        if not is_global_admin(ctx):
            raise PermissionDeniedError("Only global admins can delete laboratories")
        laboratory = (await self.db.execute(
            select(Laboratory).where(Laboratory.id == laboratory_id).with_for_update()
        )).scalar_one_or_none()
        if laboratory is None:
            raise NotFoundError("Laboratory not found")

        sample_count = await self._count(Sample.id, Sample.laboratory_id == laboratory_id)
        if sample_count:
            raise ConflictError(
                "Cannot delete laboratory with associated samples",
                details={"sample_count": sample_count},
            )
        personnel_count = await self._count(Profile.id, Profile.laboratory_id == laboratory_id)
        if personnel_count:
            raise ConflictError(
                "Cannot delete laboratory with assigned personnel. "
                "Please reassign personnel first.",
                details={"personnel_count": personnel_count},
            )
        shelf_count = await self._count(LabShelf.id, LabShelf.laboratory_id == laboratory_id)
        if shelf_count:
            raise ConflictError(
                "Cannot delete laboratory with storage shelves. Please delete its shelves first.",
                details={"shelf_count": shelf_count},
            )

        await self.db.delete(laboratory)
        self.audit.log(
            user_id=ctx.user_id,
            action=AuditAction.DELETE,
            entity_type="laboratory",
            entity_id=laboratory_id,
            old_values={"name": laboratory.name},
        )

    async def get_layout(self, laboratory_id: uuid.UUID) -> dict | None:
        """Floor plan of a laboratory: every shelf with its utilization.

        Per-shelf utilization comes from ``get_shelf_utilization``; the lab
        totals are summed from those tuples. ``total_capacity`` on each shelf
        is the grid-derived figure, kept alongside for cross-checking.
        """
        laboratory = await self.get_laboratory(laboratory_id)
        if laboratory is None:
            return None

        shelves = await self._shelves_with_clients(laboratory_id)
        shelf_items = []
        for shelf, client in shelves:
            utilization = _normalize_utilization(
                await self.procedures.get_shelf_utilization(shelf.id)
            )
            shelf_items.append({
                **self._shelf_dict(shelf, client),
                "total_capacity": shelf.total_capacity,
                "utilization": utilization,
            })

        total_capacity = sum(s["utilization"]["total_capacity"] for s in shelf_items)
        current_count = sum(s["utilization"]["current_count"] for s in shelf_items)
        return {
            "laboratory": {
                "id": laboratory.id,
                "name": laboratory.name,
                "location": laboratory.location,
                "entrance_x_position": laboratory.entrance_x_position,
                "entrance_y_position": laboratory.entrance_y_position,
                "statistics": {
                    "total_shelves": len(shelf_items),
                    "total_capacity": total_capacity,
                    "current_count": current_count,
                    "utilization_percentage": utilization_percentage(
                        current_count, total_capacity
                    ),
                    "available_capacity": total_capacity - current_count,
                },
            },
            "shelves": shelf_items,
        }

    # ── Shelves ───────────────────────────────────────────────────────

    async def list_shelves(self, laboratory_id: uuid.UUID) -> list[dict]:
        shelves = await self._shelves_with_clients(laboratory_id)
        positions = await self._positions_by_shelf([shelf.id for shelf, _ in shelves])
        return [
            {
                **self._shelf_dict(shelf, client),
                "utilization": summarize_positions(positions.get(shelf.id, [])),
            }
            for shelf, client in shelves
        ]

    async def get_shelf_detail(
        self, laboratory_id: uuid.UUID, shelf_id: uuid.UUID
    ) -> dict | None:
        result = await self.db.execute(
            select(LabShelf, Client)
            .outerjoin(Client, LabShelf.client_id == Client.id)
            .where(LabShelf.id == shelf_id, LabShelf.laboratory_id == laboratory_id)
        )
        row = result.one_or_none()
        if row is None:
            return None
        shelf, client = row
        utilization = _normalize_utilization(
            await self.procedures.get_shelf_utilization(shelf.id)
        )
        return {**self._shelf_dict(shelf, client), "utilization": utilization}

    async def create_shelf(
        self,
        ctx: AuthContext,
        laboratory_id: uuid.UUID,
        data: ShelfCreate,
    ) -> tuple[LabShelf, int]:
        """Create a shelf and generate its positions.

        A failed generation leaves the shelf in place and reports 0 positions.
        """
        if not can_manage_shelves(ctx, laboratory_id):
            raise PermissionDeniedError("Insufficient permissions")
        if await self.get_laboratory(laboratory_id) is None:
            raise NotFoundError("Laboratory not found")

        letter = data.shelf_letter.upper()
        await self._ensure_letter_free(laboratory_id, letter)

        max_number = (await self.db.execute(
            select(func.max(LabShelf.shelf_number))
            .where(LabShelf.laboratory_id == laboratory_id)
        )).scalar_one_or_none()

        shelf = LabShelf(
            id=uuid.uuid4(),
            laboratory_id=laboratory_id,
            shelf_number=(max_number or 0) + 1,
            shelf_letter=letter,
            rows=data.rows,
            columns=data.columns,
            position_layout=data.position_layout or "standard",
            samples_per_position=data.samples_per_position or 1,
            naming_convention=(
                data.naming_convention
                or f"{letter}-{{row_letter}}{{column_number}}"
            ),
            client_id=data.client_id,
            allow_client_view=bool(data.allow_client_view),
            x_position=data.x_position or 0,
            y_position=data.y_position or 0,
        )
        self.db.add(shelf)
        await self.db.flush()

        positions_generated = 0
        try:
            async with self.db.begin_nested():
                positions_generated = await self.procedures.generate_storage_positions(shelf.id)
        except UpstreamError:
            logger.warning(
                "Shelf %s created but positions were not generated", shelf.id
            )

        self.audit.log(
            user_id=ctx.user_id,
            action=AuditAction.CREATE,
            entity_type="lab_shelf",
            entity_id=shelf.id,
            new_values={
                "shelf_letter": shelf.shelf_letter,
                "rows": shelf.rows,
                "columns": shelf.columns,
                "samples_per_position": shelf.samples_per_position,
                "positions_generated": positions_generated,
            },
        )
        return shelf, positions_generated

    async def update_shelf(
        self,
        ctx: AuthContext,
        laboratory_id: uuid.UUID,
        shelf_id: uuid.UUID,
        data: ShelfUpdate,
    ) -> LabShelf:
        """Update a shelf; a changed grid is regenerated under the stored-samples gate."""
        if not can_manage_shelves(ctx, laboratory_id):
            raise PermissionDeniedError("Insufficient permissions")
        shelf = await self._lock_shelf(laboratory_id, shelf_id)

        changes = {
            field: value
            for field, value in data.model_dump(exclude_unset=True).items()
            if value is not None or field in NULLABLE_SHELF_FIELDS
        }
        if changes.get("shelf_letter"):
            changes["shelf_letter"] = changes["shelf_letter"].upper()
            if changes["shelf_letter"] != shelf.shelf_letter:
                await self._ensure_letter_free(laboratory_id, changes["shelf_letter"])
        if changes.get("allow_client_view") is None and "allow_client_view" in changes:
            changes["allow_client_view"] = False

        grid_changed = any(
            field in changes and changes[field] != getattr(shelf, field)
            for field in GRID_FIELDS
        )
        if grid_changed:
            await self._ensure_no_stored_samples(shelf.id, "regenerate positions for")

        old_values, new_values = apply_changes(shelf, changes)
        if grid_changed:
            await self.db.flush()
            new_values["positions_generated"] = str(
                await self.procedures.generate_storage_positions(shelf.id)
            )

        if new_values:
            self.audit.log(
                user_id=ctx.user_id,
                action=AuditAction.UPDATE,
                entity_type="lab_shelf",
                entity_id=shelf.id,
                old_values=old_values,
                new_values=new_values,
            )
        return shelf

    async def delete_shelf(
        self,
        ctx: AuthContext,
        laboratory_id: uuid.UUID,
        shelf_id: uuid.UUID,
    ) -> None:
        if not is_admin(ctx):
            raise PermissionDeniedError("Only global admins can delete shelves")
        shelf = await self._lock_shelf(laboratory_id, shelf_id)
        await self._ensure_no_stored_samples(shelf.id, "delete")

        await self.db.delete(shelf)
        self.audit.log(
            user_id=ctx.user_id,
            action=AuditAction.DELETE,
            entity_type="lab_shelf",
            entity_id=shelf_id,
            old_values={"shelf_letter": shelf.shelf_letter, "laboratory_id": str(laboratory_id)},
        )

    async def regenerate_positions(
        self,
        ctx: AuthContext,
        laboratory_id: uuid.UUID,
        shelf_id: uuid.UUID,
    ) -> dict:
        """Delete and recreate the shelf's position grid.

        The shelf and its positions stay locked from the occupancy check
        through generation, so no intake can land in between.
        """
        if not can_manage_shelves(ctx, laboratory_id):
            raise PermissionDeniedError("Insufficient permissions")
        shelf = await self._lock_shelf(laboratory_id, shelf_id)
        await self._ensure_no_stored_samples(shelf.id, "regenerate positions for")

        positions_generated = await self.procedures.generate_storage_positions(shelf.id)

        self.audit.log(
            user_id=ctx.user_id,
            action=AuditAction.UPDATE,
            entity_type="lab_shelf",
            entity_id=shelf.id,
            new_values={"event": "regenerate_positions", "positions_generated": positions_generated},
        )
        logger.info("Regenerated %d positions for shelf %s", positions_generated, shelf.id)
        return {
            "positions_generated": positions_generated,
            "shelf": {
                "id": shelf.id,
                "shelf_letter": shelf.shelf_letter,
                "rows": shelf.rows,
                "columns": shelf.columns,
                "total_positions": positions_generated,
            },
        }

    # ── Positions ─────────────────────────────────────────────────────

    async def get_positions_grid(
        self,
        laboratory_id: uuid.UUID,
        shelf_id: uuid.UUID,
        availability: PositionAvailability = PositionAvailability.ALL,
        client_id: uuid.UUID | None = None,
    ) -> dict | None:
        """Positions of a shelf with their samples, plus a rows x columns grid.

        ``client_id`` limits the listed samples to one client's.
        """
        result = await self.db.execute(
            select(LabShelf).where(
                LabShelf.id == shelf_id, LabShelf.laboratory_id == laboratory_id
            )
        )
        shelf = result.scalar_one_or_none()
        if shelf is None:
            return None

        query = (
            select(StoragePosition)
            .where(StoragePosition.shelf_id == shelf_id)
            .order_by(StoragePosition.row_number, StoragePosition.column_number)
            .execution_options(populate_existing=True)
        )
        if availability == PositionAvailability.AVAILABLE:
            query = query.where(
                StoragePosition.current_count < StoragePosition.capacity_per_position
            )
        elif availability == PositionAvailability.OCCUPIED:
            query = query.where(StoragePosition.current_count > 0)
        positions = list((await self.db.execute(query)).scalars().all())

        samples_by_position: dict[uuid.UUID, list[dict]] = defaultdict(list)
        if positions:
            sample_q = select(Sample).where(
                Sample.storage_position_id.in_([p.id for p in positions])
            )
            if client_id is not None:
                sample_q = sample_q.where(Sample.client_id == client_id)
            for sample in (await self.db.execute(sample_q)).scalars().all():
                samples_by_position[sample.storage_position_id].append({
                    "id": sample.id,
                    "tracking_number": sample.tracking_number,
                    "origin": sample.origin,
                    "status": sample.status.value,
                    "created_at": sample.created_at,
                })

        items = [
            {**self._position_dict(p), "samples": samples_by_position.get(p.id, [])}
            for p in positions
        ]
        by_coord = {(p["row_number"], p["column_number"]): p for p in items}
        grid = [
            [by_coord.get((row, col)) for col in range(1, shelf.columns + 1)]
            for row in range(1, shelf.rows + 1)
        ]
        return {
            "shelf": {
                "id": shelf.id,
                "shelf_letter": shelf.shelf_letter,
                "rows": shelf.rows,
                "columns": shelf.columns,
            },
            "positions": items,
            "grid": grid,
        }

    async def assign_position(
        self,
        ctx: AuthContext,
        laboratory_id: uuid.UUID,
        position_id: uuid.UUID,
        data: PositionUpdate,
    ) -> StoragePosition:
        """Set a position's client and view flag (optionally count/capacity).

        A position without a client is never visible to clients.
        """
        if not can_manage_positions(ctx, laboratory_id):
            raise PermissionDeniedError("Forbidden")

        result = await self.db.execute(
            select(StoragePosition)
            .where(
                StoragePosition.id == position_id,
                StoragePosition.laboratory_id == laboratory_id,
            )
            .with_for_update()
        )
        position = result.scalar_one_or_none()
        if position is None:
            raise NotFoundError("Position not found")

        changes = {
            field: value
            for field, value in data.model_dump(exclude_unset=True).items()
            if value is not None or field in ("client_id", "allow_client_view")
        }
        if "allow_client_view" in changes:
            changes["allow_client_view"] = bool(changes["allow_client_view"])
        client_id = changes.get("client_id", position.client_id)
        if client_id is None:
            changes["allow_client_view"] = False

        capacity = changes.get("capacity_per_position", position.capacity_per_position)
        count = changes.get("current_count", position.current_count)
        if capacity < 1 or not 0 <= count <= capacity:
            raise ValidationFailed(
                "current_count must be between 0 and capacity_per_position",
                details={"current_count": count, "capacity_per_position": capacity},
            )

        old_values, new_values = apply_changes(position, changes)
        if new_values:
            self.audit.log(
                user_id=ctx.user_id,
                action=AuditAction.UPDATE,
                entity_type="storage_position",
                entity_id=position.id,
                old_values=old_values,
                new_values=new_values,
            )
        return position

    # ── Client view ───────────────────────────────────────────────────

    async def client_storage_view(self, ctx: AuthContext) -> dict:
        """Shelves assigned to the caller's client with visibility enabled."""
        if ctx.client_id is None:
            raise PermissionDeniedError("Client association not found")

        result = await self.db.execute(
            select(LabShelf, Laboratory)
            .join(Laboratory, LabShelf.laboratory_id == Laboratory.id)
            .where(
                LabShelf.client_id == ctx.client_id,
                LabShelf.allow_client_view == True,  # noqa: E712
            )
            .order_by(Laboratory.name, LabShelf.shelf_number)
        )
        rows = list(result.all())
        positions = await self._positions_by_shelf([shelf.id for shelf, _ in rows])

        shelves = []
        for shelf, laboratory in rows:
            shelf_positions = positions.get(shelf.id, [])
            your_samples = 0
            if shelf_positions:
                your_samples = (await self.db.execute(
                    select(func.count(Sample.id)).where(
                        Sample.client_id == ctx.client_id,
                        Sample.storage_position_id.in_([p.id for p in shelf_positions]),
                    )
                )).scalar_one()
            shelves.append({
                "id": shelf.id,
                "shelf_letter": shelf.shelf_letter,
                "shelf_number": shelf.shelf_number,
                "rows": shelf.rows,
                "columns": shelf.columns,
                "samples_per_position": shelf.samples_per_position,
                "laboratory": {
                    "id": laboratory.id,
                    "name": laboratory.name,
                    "location": laboratory.location,
                },
                "utilization": summarize_positions(shelf_positions),
                "your_samples_count": your_samples,
            })

        return {
            "shelves": shelves,
            "statistics": {
                "total_shelves": len(shelves),
                "total_capacity": sum(s["utilization"]["total_capacity"] for s in shelves),
                "your_samples_count": sum(s["your_samples_count"] for s in shelves),
                "laboratories": len({s["laboratory"]["id"] for s in shelves}),
            },
        }

    async def client_shelf_samples(self, ctx: AuthContext, shelf_id: uuid.UUID) -> dict:
        """Positions of one client-visible shelf, listing only that client's samples."""
        if ctx.client_id is None:
            raise PermissionDeniedError("Client association not found")
        result = await self.db.execute(
            select(LabShelf).where(
                LabShelf.id == shelf_id,
                LabShelf.client_id == ctx.client_id,
                LabShelf.allow_client_view == True,  # noqa: E712
            )
        )
        shelf = result.scalar_one_or_none()
        if shelf is None:
            raise NotFoundError(
                "Shelf not found or access denied",
                details={
                    "message": "This shelf is not assigned to your client or visibility is not enabled",
                },
            )
        return await self.get_positions_grid(
            shelf.laboratory_id, shelf.id, client_id=ctx.client_id
        )

    # ── Helpers ───────────────────────────────────────────────────────

    async def _shelves_with_clients(
        self, laboratory_id: uuid.UUID
    ) -> list[tuple[LabShelf, Client | None]]:
        result = await self.db.execute(
            select(LabShelf, Client)
            .outerjoin(Client, LabShelf.client_id == Client.id)
            .where(LabShelf.laboratory_id == laboratory_id)
            .order_by(LabShelf.shelf_number)
        )
        return [(shelf, client) for shelf, client in result.all()]

    async def _positions_by_shelf(
        self, shelf_ids: list[uuid.UUID]
    ) -> dict[uuid.UUID, list[StoragePosition]]:
        grouped: dict[uuid.UUID, list[StoragePosition]] = defaultdict(list)
        if not shelf_ids:
            return grouped
        result = await self.db.execute(
            select(StoragePosition)
            .where(StoragePosition.shelf_id.in_(shelf_ids))
            .execution_options(populate_existing=True)
        )
        for position in result.scalars().all():
            grouped[position.shelf_id].append(position)
        return grouped

    async def _count(self, column, *criteria) -> int:
        return (await self.db.execute(
            select(func.count(column)).where(*criteria)
        )).scalar_one()

    async def _lock_shelf(self, laboratory_id: uuid.UUID, shelf_id: uuid.UUID) -> LabShelf:
        result = await self.db.execute(
            select(LabShelf)
            .where(LabShelf.id == shelf_id, LabShelf.laboratory_id == laboratory_id)
            .with_for_update()
        )
        shelf = result.scalar_one_or_none()
        if shelf is None:
            raise NotFoundError("Shelf not found")
        return shelf

    async def _ensure_no_stored_samples(self, shelf_id: uuid.UUID, verb: str) -> None:
        counts = (await self.db.execute(
            select(StoragePosition.current_count)
            .where(StoragePosition.shelf_id == shelf_id)
            .with_for_update()
        )).scalars().all()
        stored = sum(counts)
        if stored > 0:
            raise ConflictError(
                f"Cannot {verb} shelf with stored samples. Please remove all samples first.",
                details={"sample_count": stored},
            )

    async def _ensure_letter_free(self, laboratory_id: uuid.UUID, letter: str) -> None:
        existing = (await self.db.execute(
            select(LabShelf.id).where(
                LabShelf.laboratory_id == laboratory_id,
                LabShelf.shelf_letter == letter,
            )
        )).scalar_one_or_none()
        if existing is not None:
            raise ValidationFailed(
                f"Shelf letter '{letter}' already exists in this laboratory"
            )

    @staticmethod
    def _shelf_dict(shelf: LabShelf, client: Client | None = None) -> dict:
        return {
            "id": shelf.id,
            "laboratory_id": shelf.laboratory_id,
            "shelf_number": shelf.shelf_number,
            "shelf_letter": shelf.shelf_letter,
            "rows": shelf.rows,
            "columns": shelf.columns,
            "samples_per_position": shelf.samples_per_position,
            "position_layout": shelf.position_layout,
            "naming_convention": shelf.naming_convention,
            "client_id": shelf.client_id,
            "allow_client_view": shelf.allow_client_view,
            "x_position": shelf.x_position,
            "y_position": shelf.y_position,
            "client": {"id": client.id, "name": client.name} if client else None,
            "created_at": shelf.created_at,
            "updated_at": shelf.updated_at,
        }

    @staticmethod
    def _position_dict(position: StoragePosition) -> dict:
        return {
            "id": position.id,
            "shelf_id": position.shelf_id,
            "position_code": position.position_code,
            "row_number": position.row_number,
            "column_number": position.column_number,
            "capacity_per_position": position.capacity_per_position,
            "current_count": position.current_count,
            "is_available": position.is_available,
            "client_id": position.client_id,
            "allow_client_view": position.allow_client_view,
        }
