"""Catalog repository for read operations.

Executes statements built by the search layer against the catalog store.
Every read opens its own session so independent reads (count, page fetch,
each facet) can run concurrently, and every store failure surfaces as
``CatalogUnavailableError``.
"""

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, TypeVar

import structlog
from sqlalchemy import Executable, Row, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.catalog.models import Category
from app.domain.exceptions import CatalogUnavailableError

logger = structlog.get_logger()

T = TypeVar("T")


class CatalogRepository:
    """Read-only access to products and categories.

    Example usage:
        repo = CatalogRepository(async_session_factory, read_timeout=5.0)
        total = await repo.scalar(count_statement(predicates), operation="count")
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        read_timeout: float | None = None,
    ) -> None:
        """Initialize repository with a session factory.

        Args:
            session_factory: Factory producing async SQLAlchemy sessions.
            read_timeout: Seconds allowed per read (None = unbounded).
        """
        self.session_factory = session_factory
        self.read_timeout = read_timeout

    async def _run(
        self,
        operation: str,
        work: Callable[[AsyncSession], Awaitable[T]],
    ) -> T:
        """Run one read in a fresh session, mapping store failures.

        Args:
            operation: Name of the read, used in errors and logs.
            work: Coroutine function receiving the session.

        Returns:
            Result of ``work``.

        Raises:
            CatalogUnavailableError: On driver, connection or timeout errors.
        """

        async def _in_session() -> T:
            async with self.session_factory() as session:
                return await work(session)

        try:
            return await asyncio.wait_for(_in_session(), timeout=self.read_timeout)
        except asyncio.TimeoutError as e:
            logger.warning("Catalog read timed out", operation=operation, timeout=self.read_timeout)
            raise CatalogUnavailableError(operation, f"timed out after {self.read_timeout}s") from e
        except (SQLAlchemyError, OSError) as e:
            logger.warning("Catalog read failed", operation=operation, error=str(e))
            raise CatalogUnavailableError(operation, str(e)) from e

    async def scalar(self, statement: Executable, operation: str) -> Any:
        """Execute a statement returning a single value.

        Args:
            statement: Statement to execute.
            operation: Name of the read.

        Returns:
            First column of the first row (None if no rows).
        """

        async def work(session: AsyncSession) -> Any:
            result = await session.execute(statement)
            return result.scalar()

        return await self._run(operation, work)

    async def scalars(self, statement: Executable, operation: str) -> list[Any]:
        """Execute a statement returning ORM entities or single values.

        Returns:
            List of first-column values (unique when eager-loading joins).
        """

        async def work(session: AsyncSession) -> list[Any]:
            result = await session.execute(statement)
            return list(result.unique().scalars().all())

        return await self._run(operation, work)

    async def rows(self, statement: Executable, operation: str) -> Sequence[Row[Any]]:
        """Execute a statement returning rows.

        Returns:
            All result rows.
        """

        async def work(session: AsyncSession) -> Sequence[Row[Any]]:
            result = await session.execute(statement)
            return result.all()

        return await self._run(operation, work)

    async def one(self, statement: Executable, operation: str) -> Row[Any]:
        """Execute an aggregate statement returning exactly one row."""

        async def work(session: AsyncSession) -> Row[Any]:
            result = await session.execute(statement)
            return result.one()

        return await self._run(operation, work)

    async def load_categories(self) -> Sequence[Row[Any]]:
        """Load every category as (id, parent_id, name, slug, is_active) rows.

        Returns:
            Category rows ordered by level then name.
        """
        statement = select(
            Category.id,
            Category.parent_id,
            Category.name,
            Category.slug,
            Category.is_active,
        ).order_by(Category.level, Category.name)
        return await self.rows(statement, operation="load_categories")

    async def ping(self) -> None:
        """Check the store answers a trivial query.

        Raises:
            CatalogUnavailableError: If the store is unreachable.
        """
        await self.scalar(text("SELECT 1"), operation="ping")
