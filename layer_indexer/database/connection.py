# layer_indexer/database/connection.py

from typing import Generator, List
from contextlib import contextmanager

from sqlalchemy import create_engine, inspect, Engine, text
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from ..core.logging import IndexerLogger, log_with_context, INFO, DEBUG, ERROR
from ..types import DatabaseConfig
from .base import ModelBase


class DatabaseManager:
    """Owns the engine and hands out sessions for the entity store"""

    def __init__(self, config: DatabaseConfig):
        if not config:
            raise ValueError("DatabaseConfig is required")

        self.config = config
        self.logger = IndexerLogger.get_logger('database.manager')
        self._engine = None
        self._session_factory = None

        log_with_context(self.logger, INFO, "DatabaseManager created",
                        database=self.display_url)

    @property
    def display_url(self) -> str:
        """Connection target without credentials"""
        return make_url(self.config.url).render_as_string(hide_password=True)

    def _create_engine(self) -> Engine:
        url = make_url(self.config.url)
        if url.get_backend_name() == 'sqlite':
            if url.database in (None, '', ':memory:'):
                # In-memory databases live on a single connection
                return create_engine(
                    url,
                    poolclass=StaticPool,
                    connect_args={'check_same_thread': False},
                )
            return create_engine(url)

        return create_engine(
            url,
            pool_size=self.config.pool_size,
            max_overflow=self.config.max_overflow,
            pool_pre_ping=True,
            pool_recycle=3600,
        )

    def initialize(self) -> None:
        if self._engine is not None:
            self.logger.warning("Database already initialized")
            return

        engine = self._create_engine()
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except Exception as e:
            log_with_context(self.logger, ERROR, "Failed to connect to database",
                            database=self.display_url,
                            error=str(e),
                            exception_type=type(e).__name__)
            engine.dispose()
            raise

        self._engine = engine
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)
        log_with_context(self.logger, INFO, "Database initialized",
                        dialect=engine.dialect.name)

    def create_tables(self) -> None:
        ModelBase.metadata.create_all(self.engine)
        log_with_context(self.logger, INFO, "Database tables ensured",
                        tables=self.table_names())

    def table_names(self) -> List[str]:
        return sorted(inspect(self.engine).get_table_names())

    def shutdown(self) -> None:
        if self._engine is None:
            return
        self._engine.dispose()
        self._engine = None
        self._session_factory = None
        self.logger.info("Database connections closed")

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError("Database not initialized. Call initialize() first.")
        return self._engine

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        if self._session_factory is None:
            raise RuntimeError("Database not initialized. Call initialize() first.")

        session = self._session_factory()
        try:
            yield session
        finally:
            session.close()

    @contextmanager
    def get_transaction(self) -> Generator[Session, None, None]:
        """Session that commits on success and rolls back on any exception"""
        with self.get_session() as session:
            try:
                yield session
                session.commit()
            except Exception as e:
                session.rollback()
                log_with_context(self.logger, DEBUG, "Database transaction rolled back",
                                error=str(e),
                                exception_type=type(e).__name__)
                raise

    def health_check(self) -> bool:
        try:
            with self.get_session() as session:
                session.execute(text("SELECT 1"))
        except Exception as e:
            log_with_context(self.logger, ERROR, "Database health check failed",
                            error=str(e),
                            exception_type=type(e).__name__)
            return False
        return True
