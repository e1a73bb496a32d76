"""
TaskMgmt Database Session Management.

Single entry point for database initialisation. Request handling opens its
sessions through ``UnitOfWork``.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy.orm import sessionmaker

from taskmgmt.db.base import Base, engine_registry

logger = logging.getLogger("taskmgmt.db.session")

ENGINE_NAME = "taskmgmt"

_session_factory: Optional[sessionmaker] = None


def init_db(
    db_url: str,
    create_tables: bool = False,
    echo: bool = False,
    **engine_kwargs: Any,
) -> sessionmaker:
    """
    Register the application engine and build its session factory.

    Args:
        db_url:        SQLAlchemy URL. Comes from configuration, never from code.
        create_tables: Run ``Base.metadata.create_all()``. For ``taskmgmt init``
                       and tests; deployments manage the schema themselves.
        echo:          Log every SQL statement.
        engine_kwargs: Passed through to ``EngineRegistry.register`` (pool
                       settings, ``poolclass``, ``connect_args``).

    Returns:
        The ``sessionmaker`` bound to the new engine.
    """
    global _session_factory

    # Registers the model tables on Base.metadata
    import taskmgmt.db.models  # noqa: F401

    engine = engine_registry.register(ENGINE_NAME, db_url, echo=echo, **engine_kwargs)

    if create_tables:
        Base.metadata.create_all(engine)
        logger.info("Schema created on %s", engine.url.render_as_string(hide_password=True))

    _session_factory = engine_registry.get_session_factory(ENGINE_NAME)
    return _session_factory


def get_session_factory() -> sessionmaker:
    if _session_factory is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return _session_factory


def close_db() -> None:
    """Dispose the engine and forget the session factory. Used during shutdown."""
    global _session_factory
    _session_factory = None
    engine_registry.dispose(ENGINE_NAME)
