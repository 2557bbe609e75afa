"""Shared fixtures: a throwaway SQLite catalog and seeding helpers.

Each test gets its own database file. ``NullPool`` keeps connections from
outliving the event loop that opened them, so the same catalog can be
seeded with ``asyncio.run`` and then served through ``TestClient``.
"""

import asyncio
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

import app.search.engine as engine_module
from app.catalog.models import Category, Product, ProductTag
from app.catalog.repository import CatalogRepository
from app.catalog.taxonomy import CategoryTreeCache
from app.infrastructure.database import Base
from app.search.engine import SearchEngine

BASE_TIME = datetime(2025, 1, 1, tzinfo=timezone.utc)


# ============================================================================
# Builders
# ============================================================================


def make_category(
    category_id: str,
    name: str,
    parent: Category | None = None,
    **fields: Any,
) -> Category:
    """Build a category row; slug and level follow from name and parent."""
    return Category(
        id=category_id,
        name=name,
        slug=fields.pop("slug", category_id),
        parent_id=parent.id if parent else None,
        level=parent.level + 1 if parent else 0,
        is_active=fields.pop("is_active", True),
        **fields,
    )


def make_product(
    product_id: str,
    name: str,
    price: int = 100,
    tags: list[str] | None = None,
    day: int = 0,
    **fields: Any,
) -> Product:
    """Build a product row.

    ``day`` offsets ``created_at`` from a fixed base so newest-first
    ordering is deterministic.
    """
    created_at = BASE_TIME + timedelta(days=day)
    product = Product(
        id=product_id,
        name=name,
        slug=fields.pop("slug", product_id),
        price=price,
        brand=fields.pop("brand", None),
        category_id=fields.pop("category_id", None),
        discount_percentage=fields.pop("discount_percentage", None),
        rating=fields.pop("rating", 0.0),
        num_reviews=fields.pop("num_reviews", 0),
        stock_quantity=fields.pop("stock_quantity", 10),
        is_active=fields.pop("is_active", True),
        is_featured=fields.pop("is_featured", False),
        created_at=created_at,
        updated_at=created_at,
        **fields,
    )
    product.tag_rows = [ProductTag(tag=tag) for tag in tags or []]
    return product


async def create_schema(db_engine: AsyncEngine) -> None:
    """Create catalog tables."""
    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def seed(
    factory: async_sessionmaker[AsyncSession],
    *rows: Category | Product,
) -> None:
    """Insert rows in one transaction (categories before products)."""
    categories = [row for row in rows if isinstance(row, Category)]
    products = [row for row in rows if isinstance(row, Product)]
    async with factory() as session:
        session.add_all(categories)
        await session.flush()
        session.add_all(products)
        await session.commit()


def catalog_rows() -> list[Category | Product]:
    """A small catalog exercising every filter dimension.

    Tree:
        electronics > phones > smartphones
        electronics > laptops
        home
    """
    electronics = make_category("electronics", "Electronics")
    phones = make_category("phones", "Phones", electronics)
    smartphones = make_category("smartphones", "Smartphones", phones)
    laptops = make_category("laptops", "Laptops", electronics)
    home = make_category("home", "Home")

    return [
        electronics,
        phones,
        smartphones,
        laptops,
        home,
        make_product(
            "galaxy", "Galaxy Phone", price=800, brand="Samsung",
            category_id="smartphones", discount_percentage=10, rating=4.5,
            num_reviews=120, stock_quantity=5, is_featured=True,
            tags=["android", "5g"], day=1,
            image_url="https://cdn.example.com/galaxy.jpg",
        ),
        make_product(
            "pixel", "Pixel Phone", price=700, brand="Google",
            category_id="smartphones", rating=4.2, num_reviews=80,
            stock_quantity=0, tags=["android"], day=2,
        ),
        make_product(
            "iphone", "iPhone", price=1200, brand="Apple",
            category_id="phones", discount_percentage=5, rating=4.8,
            num_reviews=300, stock_quantity=10, is_featured=True,
            tags=["ios", "5g"], day=3,
        ),
        make_product(
            "macbook", "MacBook Air", price=1500, brand="Apple",
            category_id="laptops", rating=4.7, num_reviews=90,
            stock_quantity=3, tags=["macos"], day=4,
        ),
        make_product(
            "thinkpad", "ThinkPad", price=1100, brand="Lenovo",
            category_id="laptops", discount_percentage=20, rating=3.9,
            num_reviews=40, stock_quantity=7, tags=["windows"], day=5,
        ),
        make_product(
            "lamp", "Desk Lamp", price=40, brand="Lumo", category_id="home",
            discount_percentage=0, rating=2.5, num_reviews=10,
            stock_quantity=100, tags=["lighting"], day=6,
        ),
        make_product(
            "hidden", "Hidden Phone", price=500, brand="Samsung",
            category_id="smartphones", rating=5.0, num_reviews=999,
            is_active=False, tags=["android"], day=7,
        ),
    ]


def build_search_engine(
    factory: async_sessionmaker[AsyncSession],
    settings: Any = None,
) -> SearchEngine:
    """Search engine over the given session factory."""
    repository = CatalogRepository(factory, read_timeout=5.0)
    return SearchEngine(repository, CategoryTreeCache(repository, ttl_seconds=60), settings)


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset module-level repository and cache before each test."""
    engine_module._repository = None
    engine_module._category_cache = None
    yield
    engine_module._repository = None
    engine_module._category_cache = None


@pytest.fixture
def database_path(tmp_path: Path) -> Path:
    """Location of this test's SQLite catalog."""
    return tmp_path / "catalog.db"


@pytest_asyncio.fixture
async def session_factory(
    database_path: Path,
) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Empty catalog database for async tests."""
    db_engine = create_async_engine(f"sqlite+aiosqlite:///{database_path}", poolclass=NullPool)
    await create_schema(db_engine)
    yield async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    await db_engine.dispose()


@pytest_asyncio.fixture
async def catalog(
    session_factory: async_sessionmaker[AsyncSession],
) -> async_sessionmaker[AsyncSession]:
    """Catalog database seeded with ``catalog_rows``."""
    await seed(session_factory, *catalog_rows())
    return session_factory


@pytest_asyncio.fixture
async def engine(catalog: async_sessionmaker[AsyncSession]) -> SearchEngine:
    """Search engine over the seeded catalog."""
    return build_search_engine(catalog)


@pytest.fixture
def seeded_factory(database_path: Path) -> async_sessionmaker[AsyncSession]:
    """Seeded catalog for synchronous tests (API tests via TestClient)."""
    db_engine = create_async_engine(f"sqlite+aiosqlite:///{database_path}", poolclass=NullPool)
    factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)

    async def prepare() -> None:
        await create_schema(db_engine)
        await seed(factory, *catalog_rows())

    asyncio.run(prepare())
    return factory


@pytest.fixture
def category_factory():
    """Factory for category rows."""
    return make_category


@pytest.fixture
def product_factory():
    """Factory for product rows."""
    return make_product


@pytest.fixture
def add_rows(session_factory: async_sessionmaker[AsyncSession]):
    """Seed arbitrary rows into the empty catalog."""

    async def _add(*rows: Category | Product) -> None:
        await seed(session_factory, *rows)

    return _add


@pytest.fixture
def engine_factory():
    """Factory for search engines with custom settings."""
    return build_search_engine
