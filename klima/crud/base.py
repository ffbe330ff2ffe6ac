"""
Base read operations.

Every query issued by the service goes through ``execute`` so driver and
connection failures surface uniformly as DataSourceError.
"""

from typing import Any, Callable, Generic, Type, TypeVar

from sqlalchemy import inspect
from sqlalchemy.engine import Result
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Executable

from klima.core.errors import DataSourceError
from klima.database import Base
from klima.utils.logging_config import get_logger

logger = get_logger(__name__)

ModelType = TypeVar("ModelType", bound=Base)


async def execute(db: AsyncSession, stmt: Executable) -> Result:
    """
    Execute a statement, translating backend failures.

    Args:
        db: Database session
        stmt: Statement to execute

    Returns:
        Buffered result

    Raises:
        DataSourceError: if the store is unreachable or the query fails
    """
    try:
        return await db.execute(stmt)
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"Query failed: {type(e).__name__}: {e}")
        raise DataSourceError(f"Query execution failed: {type(e).__name__}") from e


async def run_inspection(db: AsyncSession, fn: Callable[[Any], Any]) -> Any:
    """
    Run a schema inspection callable against the session's connection.

    Args:
        db: Database session
        fn: Callable receiving a SQLAlchemy Inspector

    Raises:
        DataSourceError: if the store is unreachable or inspection fails
    """
    try:
        return await db.run_sync(lambda session: fn(inspect(session.connection())))
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"Schema inspection failed: {type(e).__name__}: {e}")
        raise DataSourceError(f"Schema inspection failed: {type(e).__name__}") from e


def dialect_name(db: AsyncSession) -> str:
    """Name of the SQL dialect behind the session (``postgresql``, ``sqlite``)."""
    return db.get_bind().dialect.name


class CRUDBase(Generic[ModelType]):
    """
    Base read operations class.

    Holds the model a specific query class works on.
    """

    def __init__(self, model: Type[ModelType]):
        """
        Initialize read operations for a specific model.

        Args:
            model: The SQLAlchemy model class
        """
        self.model = model

    @property
    def table_name(self) -> str:
        return self.model.__tablename__
