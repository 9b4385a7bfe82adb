"""
QC Lab Test Configuration

Shared fixtures: an in-memory SQLite database, an in-process stand-in for the
database functions, and dependency overrides for auth and sessions.
"""

import os
import re
import uuid
from datetime import datetime, timezone
from decimal import Decimal

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("SECRET_KEY", "test-secret-key-with-enough-length-for-hs256")

import httpx
import pytest
from sqlalchemy import delete, event, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from qclab.config import settings
from qclab.core.deps import get_auth_context, get_procedures
from qclab.core.exceptions import UpstreamError
from qclab.core.permissions import AuthContext
from qclab.core.tracking_format import PLACEHOLDER_RE, sequence_width
from qclab.database import Base, get_db
from qclab.main import app
from qclab.models import (
    Client,
    Laboratory,
    LabShelf,
    Profile,
    StoragePosition,
    views_metadata,
)
from qclab.models.enums import PricingModel, QCRole


# =============================================================================
# Tracking numbers
# =============================================================================

def render_tracking_number(
    template: str,
    *,
    lab: str,
    year: int,
    seq: int,
    origin: str | None = None,
) -> str:
    """Render a template the way the database function does for one allocation."""
    values = {
        "lab": lab or "",
        "year": f"{year:04d}",
        "yy": f"{year % 100:02d}",
        "origin": (origin or "").upper(),
    }

    def _substitute(match: re.Match) -> str:
        name, spec = match.group(1), match.group(2)
        if name == "seq":
            return str(seq).zfill(sequence_width(spec))
        if name not in values:
            raise ValueError(f"Unknown placeholder '{{{name}}}' in tracking number format.")
        return values[name]

    return PLACEHOLDER_RE.sub(_substitute, template)


# =============================================================================
# Database function stand-in
# =============================================================================

class FakeProcedures:
    """Honours the documented database-function contracts against the ORM tables.

    - tracking numbers come from a counter per (client, laboratory, year)
    - position generation deletes the grid and recreates rows x columns
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.counters: dict[tuple, int] = {}
        self.calls: list[tuple] = []
        self.fail: set[str] = set()

    def _maybe_fail(self, name: str) -> None:
        self.calls.append((name,))
        if name in self.fail:
            raise UpstreamError(f"Failed to call {name}", details={"message": f"{name} exploded"})

    async def generate_tracking_number(self, client_id, laboratory_id, origin=None) -> str:
        self._maybe_fail("generate_tracking_number")
        client = await self.db.get(Client, client_id)
        lab = await self.db.get(Laboratory, laboratory_id)
        year = datetime.now(timezone.utc).year
        key = (client_id, laboratory_id, year)
        self.counters[key] = self.counters.get(key, 0) + 1
        template = (client.tracking_number_format if client else None) \
            or settings.DEFAULT_TRACKING_NUMBER_FORMAT
        return render_tracking_number(
            template,
            lab=lab.code if lab else "",
            year=year,
            seq=self.counters[key],
            origin=origin,
        )

    async def generate_storage_positions(self, shelf_id) -> int:
        self._maybe_fail("generate_storage_positions_for_shelf")
        shelf = await self.db.get(LabShelf, shelf_id)
        stored = (await self.db.execute(
            select(func.coalesce(func.sum(StoragePosition.current_count), 0))
            .where(StoragePosition.shelf_id == shelf_id)
        )).scalar_one()
        if stored > 0:
            raise UpstreamError(
                "Failed to generate positions",
                details={"message": "shelf has stored samples"},
            )
        await self.db.execute(
            delete(StoragePosition).where(StoragePosition.shelf_id == shelf_id)
        )
        for row in range(1, shelf.rows + 1):
            for col in range(1, shelf.columns + 1):
                self.db.add(StoragePosition(
                    id=uuid.uuid4(),
                    shelf_id=shelf.id,
                    laboratory_id=shelf.laboratory_id,
                    position_code=f"{shelf.shelf_letter}-{chr(64 + row)}{col}",
                    row_number=row,
                    column_number=col,
                    capacity_per_position=shelf.samples_per_position,
                    current_count=0,
                ))
        await self.db.flush()
        return shelf.rows * shelf.columns

    async def get_shelf_utilization(self, shelf_id) -> dict | None:
        self._maybe_fail("get_shelf_utilization")
        row = (await self.db.execute(
            select(
                func.count(StoragePosition.id),
                func.coalesce(func.sum(StoragePosition.capacity_per_position), 0),
                func.coalesce(func.sum(StoragePosition.current_count), 0),
            ).where(StoragePosition.shelf_id == shelf_id)
        )).one()
        total_positions, total_capacity, current_count = row
        if total_positions == 0:
            return None
        occupied = (await self.db.execute(
            select(func.count(StoragePosition.id)).where(
                StoragePosition.shelf_id == shelf_id,
                StoragePosition.current_count > 0,
            )
        )).scalar_one()
        return {
            "total_positions": total_positions,
            "occupied_positions": occupied,
            "total_capacity": total_capacity,
            "current_count": current_count,
            "utilization_percentage": round(current_count / total_capacity * 100, 2)
            if total_capacity else 0,
        }

    async def search_clients(self, search_term: str, limit: int) -> list[dict]:
        self._maybe_fail("search_clients")
        result = await self.db.execute(
            select(Client).where(Client.name.ilike(f"%{search_term}%")).limit(limit)
        )
        return [
            {
                "qc_client_id": c.id,
                "company_id": c.company_id,
                "name": c.name,
                "fantasy_name": c.fantasy_name,
                "email": c.email,
                "city": c.city,
                "country": c.country,
                "source_table": "clients",
                "relevance_score": 1.0,
            }
            for c in result.scalars().all()
        ]


# =============================================================================
# Database fixtures
# =============================================================================

@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # pysqlite defers BEGIN, which breaks SAVEPOINT; emit it ourselves
    @event.listens_for(engine.sync_engine, "connect")
    def _no_implicit_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _explicit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        # The finance views are plain tables here
        await conn.run_sync(views_metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db(engine):
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session


@pytest.fixture
def procedures(db):
    return FakeProcedures(db)


# =============================================================================
# Seed data (fixtures return ids; a failed request expires loaded objects)
# =============================================================================

@pytest.fixture
async def lab_id(db):
    laboratory = Laboratory(id=uuid.uuid4(), name="Santos HQ", code="SNT", location="Santos")
    db.add(laboratory)
    await db.commit()
    return laboratory.id


@pytest.fixture
async def other_lab_id(db):
    laboratory = Laboratory(id=uuid.uuid4(), name="Guatemala Lab", code="GUA")
    db.add(laboratory)
    await db.commit()
    return laboratory.id


@pytest.fixture
async def client_id(db):
    client = Client(
        id=uuid.uuid4(),
        name="Dunkin",
        company="Dunkin Brands",
        tracking_number_format="B-{seq:05d}-25",
        pricing_model=PricingModel.PER_SAMPLE,
        price_per_sample=Decimal("45.00"),
    )
    db.add(client)
    await db.commit()
    return client.id


@pytest.fixture
def make_shelf(db, procedures):
    """Factory: create a shelf with a generated grid and return its id."""
    async def _make(laboratory_id, letter="A", rows=2, columns=2,
                    samples_per_position=2, shelf_number=1, **kwargs):
        shelf = LabShelf(
            id=uuid.uuid4(),
            laboratory_id=laboratory_id,
            shelf_number=shelf_number,
            shelf_letter=letter,
            rows=rows,
            columns=columns,
            samples_per_position=samples_per_position,
            **kwargs,
        )
        db.add(shelf)
        await db.flush()
        await procedures.generate_storage_positions(shelf.id)
        await db.commit()
        return shelf.id
    return _make


async def position_ids(db, shelf_id) -> list[uuid.UUID]:
    result = await db.execute(
        select(StoragePosition.id)
        .where(StoragePosition.shelf_id == shelf_id)
        .order_by(StoragePosition.row_number, StoragePosition.column_number)
    )
    return list(result.scalars().all())


async def set_count(db, position_id, count: int) -> None:
    await db.execute(
        update(StoragePosition)
        .where(StoragePosition.id == position_id)
        .values(current_count=count)
    )
    await db.commit()


# =============================================================================
# Auth & HTTP client
# =============================================================================

def make_ctx(role: QCRole = QCRole.GLOBAL_ADMIN, **kwargs) -> AuthContext:
    return AuthContext(user_id=kwargs.pop("user_id", uuid.uuid4()), role=role, **kwargs)


@pytest.fixture
def auth():
    """Mutable holder for the AuthContext every request resolves to."""
    return {"ctx": make_ctx(is_global_admin=True)}


@pytest.fixture
async def api(db, procedures, auth):
    async def _get_db():
        try:
            yield db
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_procedures] = lambda: procedures
    app.dependency_overrides[get_auth_context] = lambda: auth["ctx"]

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
async def profile_id(db, lab_id):
    user = Profile(
        id=uuid.uuid4(),
        email="tech@example.com",
        full_name="Lab Tech",
        qc_role=QCRole.LAB_ASSISTANT,
        laboratory_id=lab_id,
    )
    db.add(user)
    await db.commit()
    return user.id
