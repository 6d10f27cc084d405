"""
Storage Gateway: row storage over async SQLAlchemy plus binary object storage.
One instance is created at application startup and injected wherever rows or
objects are read or written. Every call opens its own short-lived session so
concurrent callers never share one.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Type, Union
import logging
import uuid

from sqlalchemy import select, func
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from app.config import Settings
from app.database import Base, create_session_factory
from app.models import Property, PropertyImage, Category, BlogPost, Review
from app.utils.async_utils import retry_with_backoff
from app.utils.auth import Session, decode_session
from app.utils.exceptions import StorageError
from app.utils.file_utils import ObjectStore

logger = logging.getLogger(__name__)

TABLES: Dict[str, Type[Base]] = {
    "properties": Property,
    "property_images": PropertyImage,
    "property_categories": Category,
    "blog_posts": BlogPost,
    "reviews": Review,
}


@dataclass
class QuerySpec:
    """
    Composable row query: predicates, ordering and pagination.

    Predicates are SQLAlchemy expressions (equality, range, pattern, in-set)
    and are AND-combined.
    """

    where: List[Any] = field(default_factory=list)
    order_by: List[Any] = field(default_factory=list)
    limit: Optional[int] = None
    offset: int = 0
    load_relationships: bool = False


class StorageGateway:
    """
    Thin wrapper issuing row and object operations.

    Row operations address tables by name; failures surface as StorageError.
    Reads are retried on transient connection errors.
    """

    def __init__(
        self,
        engine: AsyncEngine,
        object_store: ObjectStore,
        settings: Settings,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None
    ):
        self.engine = engine
        self.object_store = object_store
        self.settings = settings
        self._session_factory = session_factory or create_session_factory(engine)

    def model_for(self, table: str) -> Type[Base]:
        """Resolve a table name to its model class."""
        try:
            return TABLES[table]
        except KeyError:
            raise StorageError("lookup", f"unknown table '{table}'")

    def _build_query(self, model: Type[Base], spec: QuerySpec):
        query = select(model)
        if spec.where:
            query = query.where(*spec.where)
        if spec.load_relationships:
            for relationship in model.__mapper__.relationships:
                query = query.options(selectinload(getattr(model, relationship.key)))
        if spec.order_by:
            query = query.order_by(*spec.order_by)
        if spec.offset:
            query = query.offset(spec.offset)
        if spec.limit is not None:
            query = query.limit(spec.limit)
        return query

    async def _read(self, label: str, operation):
        try:
            return await retry_with_backoff(
                operation,
                max_attempts=self.settings.gateway_retry_attempts,
                base_delay=self.settings.gateway_retry_base_delay,
                retry_on=(OperationalError,),
                label=label,
            )
        except SQLAlchemyError as e:
            logger.error(f"{label} failed: {e}")
            raise StorageError(label, str(e))
        except OverflowError as e:
            # Raised by the driver while binding an out-of-range parameter
            logger.error(f"{label} failed binding parameters: {e}")
            raise StorageError(label, str(e))

    async def select(self, table: str, spec: Optional[QuerySpec] = None) -> List[Any]:
        """
        Run a row query.

        Args:
            table: Table name
            spec: Predicates, ordering and pagination

        Returns:
            List of model instances (detached, attributes loaded)
        """
        model = self.model_for(table)
        query = self._build_query(model, spec or QuerySpec())

        async def run():
            async with self._session_factory() as session:
                result = await session.execute(query)
                return list(result.scalars().all())

        return await self._read(f"select {table}", run)

    async def get(self, table: str, id: Union[uuid.UUID, str]) -> Optional[Any]:
        """Fetch one row by primary key, or None."""
        model = self.model_for(table)
        rows = await self.select(table, QuerySpec(where=[model.id == _as_uuid(id)], limit=1))
        return rows[0] if rows else None

    async def count(self, table: str, spec: Optional[QuerySpec] = None) -> int:
        """Count rows matching the spec predicates."""
        model = self.model_for(table)
        query = select(func.count()).select_from(model)
        if spec and spec.where:
            query = query.where(*spec.where)

        async def run():
            async with self._session_factory() as session:
                result = await session.execute(query)
                return result.scalar() or 0

        return await self._read(f"count {table}", run)

    async def _reload(self, session: AsyncSession, model: Type[Base], id: uuid.UUID) -> Any:
        query = select(model).where(model.id == id).execution_options(populate_existing=True)
        for relationship in model.__mapper__.relationships:
            if relationship.lazy == "selectin":
                query = query.options(selectinload(getattr(model, relationship.key)))
        result = await session.execute(query)
        return result.scalar_one()

    async def insert(self, table: str, row: Dict[str, Any]) -> Any:
        """
        Insert a row.

        Args:
            table: Table name
            row: Column values

        Returns:
            The created model instance

        Raises:
            StorageError: If the insert fails
        """
        model = self.model_for(table)
        async with self._session_factory() as session:
            try:
                obj = model(**row)
                session.add(obj)
                await session.commit()
                obj = await self._reload(session, model, obj.id)
                logger.debug(f"Inserted {table} row {obj.id}")
                return obj
            except (SQLAlchemyError, TypeError) as e:
                await session.rollback()
                logger.error(f"Insert into {table} failed: {e}")
                raise StorageError(f"insert {table}", str(e))

    async def update(self, table: str, id: Union[uuid.UUID, str], patch: Dict[str, Any]) -> Any:
        """
        Apply a partial update to one row.

        Raises:
            StorageError: If the row does not exist or the update fails
        """
        model = self.model_for(table)
        row_id = _as_uuid(id)
        async with self._session_factory() as session:
            try:
                obj = await session.get(model, row_id)
                if obj is None:
                    raise StorageError(f"update {table}", f"row {row_id} not found")
                for key, value in patch.items():
                    if not hasattr(model, key):
                        raise StorageError(f"update {table}", f"unknown column '{key}'")
                    setattr(obj, key, value)
                await session.commit()
                obj = await self._reload(session, model, row_id)
                logger.debug(f"Updated {table} row {row_id}: {sorted(patch)}")
                return obj
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"Update of {table} row {row_id} failed: {e}")
                raise StorageError(f"update {table}", str(e))

    async def delete(self, table: str, id: Union[uuid.UUID, str]) -> bool:
        """
        Delete one row.

        Returns:
            True if a row was deleted, False if none matched
        """
        model = self.model_for(table)
        row_id = _as_uuid(id)
        async with self._session_factory() as session:
            try:
                obj = await session.get(model, row_id)
                if obj is None:
                    return False
                await session.delete(obj)
                await session.commit()
                logger.debug(f"Deleted {table} row {row_id}")
                return True
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"Delete of {table} row {row_id} failed: {e}")
                raise StorageError(f"delete {table}", str(e))

    async def upload_object(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: Optional[str] = None
    ) -> Dict[str, str]:
        """
        Upload binary data to the object store.

        Returns:
            Dictionary with the stored path
        """
        result = await self.object_store.put(bucket, path, data, content_type)
        logger.debug(f"Uploaded object {bucket}/{path} ({len(data)} bytes)")
        return result

    def resolve_public_url(self, bucket: str, path: Optional[str]) -> str:
        """Deterministic public URL for a stored object; empty path gives ""."""
        if not path:
            return ""
        base = self.settings.public_storage_url.rstrip("/")
        return f"{base}/storage/v1/object/public/{bucket}/{path}"

    def get_session(self, token: Optional[str]) -> Optional[Session]:
        """Current authenticated identity for a bearer token, or None."""
        return decode_session(token, self.settings)

    async def close(self) -> None:
        await self.engine.dispose()


def _as_uuid(value: Union[uuid.UUID, str]) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise StorageError("lookup", f"invalid id '{value}'")
