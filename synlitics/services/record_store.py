"""
Structured record store over SQLAlchemy tables.
"""
import logging
from typing import Callable, Dict, List, Optional, Type
from uuid import UUID

from sqlalchemy import and_, inspect, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from synlitics.db.base import Base
from synlitics.models.daily_upload import DailyUpload
from synlitics.models.profile import Profile
from synlitics.services.collaborators import CollaboratorError, RecordStore, Row

logger = logging.getLogger(__name__)


TABLES: Dict[str, Type[Base]] = {
    "profiles": Profile,
    "daily_uploads": DailyUpload,
}

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def row_to_dict(obj: Base) -> Row:
    """Plain column -> value mapping of an ORM instance."""
    return {attr.key: getattr(obj, attr.key) for attr in inspect(obj).mapper.column_attrs}


class SqlRecordStore(RecordStore):
    """
    Record store for the ``profiles`` and ``daily_uploads`` tables.

    Every call opens its own session, so the store is safe to use from
    timer threads.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def _model(self, table: str) -> Type[Base]:
        model = TABLES.get(table)
        if model is None:
            raise CollaboratorError(f"Unknown table: {table}")
        return model

    def find_one(self, table: str, filters: Row) -> Optional[Row]:
        model = self._model(table)
        try:
            with self.session_factory() as db:
                query = db.query(model).filter_by(**filters)
                rows = query.limit(2).all()
        except SQLAlchemyError as e:
            logger.warning(f"Read from {table} failed: {e}")
            raise CollaboratorError(f"Failed to read {table}") from e

        if len(rows) > 1:
            raise CollaboratorError(f"Expected at most one row in {table}, found several")
        return row_to_dict(rows[0]) if rows else None

    def upsert(
        self,
        table: str,
        row: Row,
        conflict_keys: List[str],
        insert_only: Optional[List[str]] = None,
        expected: Optional[Row] = None,
    ) -> Row:
        """
        Insert or update on conflict, returning the stored row.

        Only the columns present in ``row`` are written on conflict, so
        concurrent upserts touching different columns do not clobber each
        other. ``expected`` becomes the ``WHERE`` of the conflict update,
        so the check and the write happen in one statement.
        """
        model = self._model(table)
        missing = [key for key in conflict_keys if key not in row]
        if missing:
            raise CollaboratorError(f"Upsert row is missing conflict keys: {', '.join(missing)}")

        skipped = set(conflict_keys) | set(insert_only or [])
        try:
            with self.session_factory() as db:
                insert = _INSERT_BY_DIALECT.get(db.get_bind().dialect.name)
                if insert is None:
                    raise CollaboratorError(f"Upsert is not supported on {db.get_bind().dialect.name}")

                stmt = insert(model).values(**row)
                update_columns = {
                    key: stmt.excluded[key] for key in row if key not in skipped
                }
                if update_columns:
                    conditions = [getattr(model, key) == value for key, value in (expected or {}).items()]
                    stmt = stmt.on_conflict_do_update(
                        index_elements=conflict_keys,
                        set_=update_columns,
                        where=and_(*conditions) if conditions else None,
                    )
                else:
                    stmt = stmt.on_conflict_do_nothing(index_elements=conflict_keys)
                db.execute(stmt)
                db.commit()

                key_filter = [getattr(model, key) == row[key] for key in conflict_keys]
                stored = db.execute(select(model).where(*key_filter)).scalar_one()
                return row_to_dict(stored)
        except SQLAlchemyError as e:
            logger.warning(f"Upsert into {table} failed: {e}")
            raise CollaboratorError(f"Failed to save {table}") from e

    def update(self, table: str, row_id: UUID, patch: Row, expected: Optional[Row] = None) -> bool:
        model = self._model(table)
        try:
            with self.session_factory() as db:
                query = db.query(model).filter(model.id == row_id)
                if expected:
                    query = query.filter_by(**expected)
                updated = query.update(patch, synchronize_session=False)
                db.commit()
        except SQLAlchemyError as e:
            logger.warning(f"Update of {table} {row_id} failed: {e}")
            raise CollaboratorError(f"Failed to update {table}") from e

        if updated:
            return True
        if expected:
            logger.info(f"Skipped update of {table} {row_id}: row no longer matches {expected}")
            return False
        raise CollaboratorError(f"No {table} row with id {row_id}")
