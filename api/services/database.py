# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Relational database service: engine, session factory and transactional scope.
"""

import os
import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Dict, Any, Iterator, Optional
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from models.tables import Base

logger = logging.getLogger(__name__)


class Database:
    """SQLAlchemy engine wrapper with a per-context transactional session."""

    def __init__(self, database_url: str = None, echo: bool = False):
        """Initialize the engine and session factory."""
        self.database_url = database_url or os.getenv('DATABASE_URL', 'sqlite:///volunteer_portal.db')
        self.echo = echo
        self.engine = self._create_engine()
        self.session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)
        self._current_session: ContextVar[Optional[Session]] = ContextVar(
            f"db_session_{id(self)}", default=None
        )

        logger.info(f"Database service initialized for backend: {self.engine.dialect.name}")

    @property
    def is_sqlite(self) -> bool:
        return make_url(self.database_url).get_backend_name() == 'sqlite'

    def _create_engine(self) -> Engine:
        if not self.is_sqlite:
            return create_engine(self.database_url, echo=self.echo, pool_pre_ping=True)

        url = make_url(self.database_url)
        kwargs: Dict[str, Any] = {
            'echo': self.echo,
            'connect_args': {'check_same_thread': False, 'timeout': 30},
        }
        if url.database in (None, '', ':memory:'):
            kwargs['poolclass'] = StaticPool

        engine = create_engine(self.database_url, **kwargs)

        # pysqlite's own transaction handling is disabled so every
        # transaction takes the write lock up front and writers queue
        # on the busy timeout instead of failing on lock upgrade.
        @event.listens_for(engine, "connect")
        def _on_connect(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(engine, "begin")
        def _on_begin(conn):
            conn.exec_driver_sql("BEGIN IMMEDIATE")

        return engine

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """
        Yield a session bound to a single database transaction.

        Nested calls join the outer transaction, so a service can compose
        several storage operations into one atomic unit. The transaction
        commits when the outermost block exits and rolls back on any
        exception.
        """
        session = self._current_session.get()
        if session is not None:
            yield session
            return

        session = self.session_factory()
        token = self._current_session.set(session)
        try:
            with session.begin():
                yield session
        finally:
            self._current_session.reset(token)
            session.close()

    def create_all(self) -> None:
        """Create all tables that do not exist yet."""
        Base.metadata.create_all(self.engine)
        logger.info(f"Database tables ensured: {sorted(Base.metadata.tables.keys())}")

    def drop_all(self) -> None:
        Base.metadata.drop_all(self.engine)

    def dispose(self) -> None:
        """Close all pooled connections."""
        self.engine.dispose()
        logger.info("Database connections closed")

    def health_check(self) -> Dict[str, Any]:
        """Check database connectivity."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return {
                'status': 'healthy',
                'backend': self.engine.dialect.name,
            }
        except SQLAlchemyError as e:
            logger.error(f"Database health check failed: {e}")
            return {
                'status': 'unhealthy',
                'error': str(e),
                'backend': self.engine.dialect.name,
            }
