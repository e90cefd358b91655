"""
Table storage interface over SQLAlchemy.

Service code talks to this module only, never to sessions directly:

    store.get(Airport, airport_id)
    store.search(Airport, conditions=[...], sort='iata', limit=10)
    store.create(Subscriber, {'id': 'abc'})
    store.patch(ForecastSubscription, sub_id, {'temperature': 71.0})

Calls made on the store run in their own short transaction. To group
several writes atomically, open a transaction scope:

    with store.transaction() as txn:
        txn.upsert(Subscriber, {'id': session_id})
        txn.create(ForecastSubscription, {...})

The scope commits on exit and rolls back on any exception. Database
errors are re-raised as TransactionError; service errors (NotFound,
ValidationError, ...) propagate unchanged after the rollback.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Generator, Iterable, List, Optional, Type

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from flightweather.errors import NotFound, TransactionError
from flightweather.models.base import Base, SessionLocal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Condition:
    """
    Single search condition on a column.

    comparator is 'equals' or 'not_equal'. A not_equal test against ''
    also excludes NULL, so "has a value" reads the same for blank and
    missing text.
    """
    attribute: str
    value: Any
    comparator: str = 'equals'

    def to_clause(self, model: Type[Base]):
        column = getattr(model, self.attribute)
        if self.comparator == 'equals':
            return column == self.value
        if self.comparator == 'not_equal':
            if self.value == '' or self.value is None:
                return (column.is_not(None)) & (column != '')
            return or_(column != self.value, column.is_(None))
        raise ValueError(f'Unsupported comparator: {self.comparator}')


class Transaction:
    """Storage operations bound to a single session."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, model: Type[Base], record_id: Any) -> Optional[Base]:
        return self.session.get(model, record_id)

    def search(
        self,
        model: Type[Base],
        conditions: Iterable[Condition] = (),
        sort: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Base]:
        """AND together all conditions, optionally sort ascending and limit."""
        stmt = select(model)
        for condition in conditions:
            stmt = stmt.where(condition.to_clause(model))
        if sort:
            stmt = stmt.order_by(getattr(model, sort).asc())
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.session.scalars(stmt).unique())

    def count(self, model: Type[Base]) -> int:
        return self.session.scalar(select(func.count()).select_from(model))

    def create(self, model: Type[Base], record: Dict[str, Any]) -> Base:
        instance = model(**record)
        self.session.add(instance)
        # Flush so generated ids are visible to the rest of the scope
        self.session.flush()
        return instance

    def create_many(self, model: Type[Base], records: Iterable[Dict[str, Any]]) -> int:
        rows = [dict(r) for r in records]
        if rows:
            self.session.execute(model.__table__.insert(), rows)
        return len(rows)

    def upsert(self, model: Type[Base], record: Dict[str, Any]) -> Base:
        """Create if absent; an existing record with the same key is left as is."""
        existing = self.session.get(model, record['id'])
        if existing is not None:
            return existing
        return self.create(model, record)

    def patch(self, model: Type[Base], record_id: Any, changes: Dict[str, Any]) -> Base:
        instance = self.session.get(model, record_id)
        if instance is None:
            raise NotFound(f'{model.__name__} {record_id} not found')
        for key, value in changes.items():
            setattr(instance, key, value)
        self.session.flush()
        return instance


class TableStore:
    """
    Entry point for all persistence.

    Wraps a session factory; defaults to the application's SessionLocal.
    """

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self.session_factory = session_factory or SessionLocal

    @contextmanager
    def transaction(self) -> Generator[Transaction, None, None]:
        session = self.session_factory()
        try:
            yield Transaction(session)
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f'Transaction failed: {e}')
            raise TransactionError(str(e.__class__.__name__)) from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def get(self, model: Type[Base], record_id: Any) -> Optional[Base]:
        with self.transaction() as txn:
            return txn.get(model, record_id)

    def search(
        self,
        model: Type[Base],
        conditions: Iterable[Condition] = (),
        sort: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Base]:
        with self.transaction() as txn:
            return txn.search(model, conditions, sort=sort, limit=limit)

    def count(self, model: Type[Base]) -> int:
        with self.transaction() as txn:
            return txn.count(model)

    def create(self, model: Type[Base], record: Dict[str, Any]) -> Base:
        with self.transaction() as txn:
            return txn.create(model, record)

    def upsert(self, model: Type[Base], record: Dict[str, Any]) -> Base:
        with self.transaction() as txn:
            return txn.upsert(model, record)

    def patch(self, model: Type[Base], record_id: Any, changes: Dict[str, Any]) -> Base:
        with self.transaction() as txn:
            return txn.patch(model, record_id, changes)
