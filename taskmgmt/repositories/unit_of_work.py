"""
UnitOfWork — one session, four repositories, one commit per business operation.

Usage:
    with UnitOfWork(session_factory()) as uow:
        with uow.atomic():
            uow.projects.add(project)
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import event
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from taskmgmt.engine.errors import ConflictError, PersistenceError
from taskmgmt.repositories.sql import (
    SqlCommentRepository,
    SqlHistoryRepository,
    SqlProjectRepository,
    SqlTaskRepository,
)

logger = logging.getLogger("taskmgmt.repositories.unit_of_work")


class UnitOfWork:
    """
    Transaction scope shared by every write of one business operation.

    Writes staged through the repositories become visible to other sessions only
    when ``commit()`` succeeds; any failure rolls all of them back together.
    """

    def __init__(self, session: Session):
        self.session = session
        self.projects = SqlProjectRepository(session)
        self.tasks = SqlTaskRepository(session)
        self.comments = SqlCommentRepository(session)
        self.history = SqlHistoryRepository(session)
        self._flushed = 0
        event.listen(session, "after_flush", self._count_flushed)

    @classmethod
    def from_factory(cls, factory: sessionmaker) -> "UnitOfWork":
        return cls(factory())

    @contextmanager
    def _storage_errors(self) -> Generator[None, None, None]:
        """Roll back and re-raise storage exceptions as domain errors."""
        try:
            yield
        except IntegrityError as exc:
            self.rollback()
            logger.warning("Write rejected by constraint: %s", exc.orig)
            raise ConflictError(
                "The change conflicts with existing data.",
                rule="unique_constraint",
                details=[str(exc.orig)],
            ) from exc
        except SQLAlchemyError as exc:
            self.rollback()
            logger.error("Storage failure: %s", exc)
            raise PersistenceError("Storage failure while processing the request.") from exc

    def commit(self) -> int:
        """
        Flush and commit all pending writes.

        Returns:
            Number of objects inserted, updated or deleted.

        Raises:
            ConflictError:    a unique constraint rejected the write.
            PersistenceError: any other storage failure.
        """
        with self._storage_errors():
            self.session.flush()
            affected = self._flushed
            self.session.commit()
        self._flushed = 0
        return affected

    @contextmanager
    def atomic(self) -> Generator["UnitOfWork", None, None]:
        """
        Run a business operation and commit once at the end.

        Any exception inside the block (domain or storage) rolls back every
        write staged so far.
        """
        try:
            with self._storage_errors():
                yield self
        except Exception:
            self.rollback()
            raise
        self.commit()

    def _count_flushed(self, session: Session, flush_context) -> None:
        # Autoflush may write part of the operation before commit()
        self._flushed += len(session.new) + len(session.dirty) + len(session.deleted)

    def rollback(self) -> None:
        """Best effort: a session with no active transaction is left as is."""
        self._flushed = 0
        try:
            self.session.rollback()
        except SQLAlchemyError as exc:
            logger.error("Rollback failed: %s", exc)

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "UnitOfWork":
        return self

    def __exit__(self, exc_type, exc, tb) -> Optional[bool]:
        if exc_type is not None:
            self.rollback()
        self.close()
        return None
