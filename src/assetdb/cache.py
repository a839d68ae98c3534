"""
Process-wide cache of engines and prepared statements.

Two caches live in one registry object:
- SQLAlchemy engines keyed by the rendered DSN, so every Connection to the
  same database shares one engine (and its pool)
- compiled SQL keyed by the SQL text, so preparing identical text twice
  parses placeholders once and lets SQLAlchemy reuse its compiled form

All mutation goes through one re-entrant lock. `shutdown()` tears both down
and is meant for process exit only: Connections or Statements still in use
afterwards are in an undefined state.
"""
import atexit
import logging
import threading
from typing import TYPE_CHECKING

import cachetools
import sqlalchemy as sa
from assetdb.statement import CompiledSql
from assetdb.strategy import get_strategy
from sqlalchemy.engine import Engine

if TYPE_CHECKING:
    from assetdb.options import DatabaseOptions

__all__ = [
    'Registry',
    'STATEMENT_CACHE_SIZE',
    'shutdown',
]

logger = logging.getLogger(__name__)

STATEMENT_CACHE_SIZE = 256


class Registry:
    """Thread-safe registry of engines (by DSN) and statements (by SQL text).

    One shared instance is used by default; separate instances can be built
    for isolation.
    """

    _instance = None
    _instance_lock = threading.Lock()

    def __init__(self, statement_cache_size: int = STATEMENT_CACHE_SIZE) -> None:
        self._engines: dict[str, Engine] = {}
        self._statements: cachetools.LRUCache = cachetools.LRUCache(maxsize=statement_cache_size)
        self._lock = threading.RLock()
        self.hits = 0
        self.misses = 0

    @classmethod
    def get_instance(cls) -> 'Registry':
        """Get the process-wide instance."""
        if cls._instance is None:
            with cls._instance_lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    def get_engine(self, options: 'DatabaseOptions', engine_factory=sa.create_engine) -> Engine:
        """Get or create the engine for the options' DSN.

        Args:
            options: DatabaseOptions locating the database
            engine_factory: Function to create engines (defaults to sqlalchemy.create_engine)

        Returns
            sqlalchemy.engine.Engine
        """
        key = options.dsn
        with self._lock:
            if key in self._engines:
                logger.debug(f'Using existing engine for {options.drivername}')
                return self._engines[key]

            strategy = get_strategy(options.drivername)
            engine = engine_factory(options.to_url(), **strategy.get_engine_kwargs(options))

            @sa.event.listens_for(engine, 'connect')
            def _on_connect(dbapi_connection, connection_record):
                strategy.configure_connection(dbapi_connection)

            self._engines[key] = engine
            logger.debug(f'Created new engine for {options.drivername}')
            return engine

    def get_statement(self, sql: str) -> CompiledSql:
        """Get the compiled form of `sql`, compiling it on first use."""
        with self._lock:
            compiled = self._statements.get(sql)
            if compiled is not None:
                self.hits += 1
                return compiled
            self.misses += 1
            compiled = CompiledSql.compile(sql)
            self._statements[sql] = compiled
            logger.debug(f'Cached statement ({len(self._statements)} in cache)')
            return compiled

    @property
    def engine_count(self) -> int:
        return len(self._engines)

    @property
    def statement_count(self) -> int:
        return len(self._statements)

    def clear_statements(self) -> None:
        """Drop every cached statement."""
        with self._lock:
            self._statements.clear()
            self.hits = self.misses = 0

    def dispose(self) -> None:
        """Dispose all engines and drop all cached statements."""
        with self._lock:
            for engine in self._engines.values():
                engine.dispose()
            self._engines.clear()
            self.clear_statements()
        logger.debug('All database engines disposed')


def shutdown() -> None:
    """Drop every cached engine and statement of the shared registry.

    Only call at process exit, once no Connection or Statement is in use.
    """
    Registry.get_instance().dispose()


# Register cleanup function to run at program exit
atexit.register(shutdown)
