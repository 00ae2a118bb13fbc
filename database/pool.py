# database/pool.py
import logging
from contextlib import contextmanager

import psycopg2
from psycopg2 import pool as pg_pool
from psycopg2.extras import RealDictCursor

from utils.errors import StorageError

logger = logging.getLogger(__name__)

# Connectivity loss, statement/lock timeouts (QueryCanceled and
# LockNotAvailable are OperationalError subclasses) and pool exhaustion.
RETRYABLE_ERRORS = (psycopg2.OperationalError, psycopg2.InterfaceError, pg_pool.PoolError)


def translate_error(exc, action="Database operation"):
    """Map a driver exception to StorageError; ServiceErrors pass through."""
    if isinstance(exc, StorageError):
        return exc
    retryable = isinstance(exc, RETRYABLE_ERRORS)
    return StorageError(f"{action} failed: {exc}", retryable=retryable)


class Database:
    """Process-wide PostgreSQL connection pool with an explicit lifecycle.

    open() must be called before use and close() on shutdown. Components never
    reach the pool through a global; the handle is passed to them.
    """

    def __init__(self, dsn, minconn=1, maxconn=10, sslmode='prefer',
                 connect_timeout=5, statement_timeout_ms=5000, lock_timeout_ms=3000):
        self.dsn = dsn
        self.minconn = minconn
        self.maxconn = maxconn
        self.sslmode = sslmode
        self.connect_timeout = connect_timeout
        self.statement_timeout_ms = statement_timeout_ms
        self.lock_timeout_ms = lock_timeout_ms
        self._pool = None

    @classmethod
    def from_config(cls, config):
        return cls(
            config.DATABASE_URL,
            minconn=config.DB_POOL_MIN,
            maxconn=config.DB_POOL_MAX,
            sslmode=config.DATABASE_SSLMODE,
            connect_timeout=config.DB_CONNECT_TIMEOUT,
            statement_timeout_ms=config.DB_STATEMENT_TIMEOUT_MS,
            lock_timeout_ms=config.DB_LOCK_TIMEOUT_MS,
        )

    @property
    def is_open(self):
        return self._pool is not None

    def open(self):
        """Create the pool and verify connectivity. Returns the server time."""
        if self._pool is not None:
            return self.ping()
        if not self.dsn:
            raise RuntimeError("DATABASE_URL is not configured in environment")

        options = f"-c statement_timeout={self.statement_timeout_ms} -c lock_timeout={self.lock_timeout_ms}"
        try:
            self._pool = pg_pool.ThreadedConnectionPool(
                self.minconn,
                self.maxconn,
                dsn=self.dsn,
                sslmode=self.sslmode,
                connect_timeout=self.connect_timeout,
                options=options,
            )
        except psycopg2.Error as e:
            logger.error("Could not create connection pool: %s", e)
            raise translate_error(e, "Connection pool creation") from e

        logger.info("Connection pool created (min=%s, max=%s, sslmode=%s)",
                    self.minconn, self.maxconn, self.sslmode)
        now = self.ping()
        logger.info("Database connection test successful (server time %s)", now)
        return now

    def close(self):
        if self._pool is None:
            return
        self._pool.closeall()
        self._pool = None
        logger.info("Connection pool closed")

    def ping(self):
        """Return the database server's current timestamp."""
        with self.transaction() as cur:
            cur.execute("SELECT NOW() AS now")
            return cur.fetchone()['now']

    def _acquire(self):
        if self._pool is None:
            raise StorageError("Connection pool is not open", retryable=True)
        try:
            return self._pool.getconn()
        except pg_pool.PoolError as e:
            logger.warning("Connection pool exhausted: %s", e)
            raise StorageError("Connection pool exhausted", retryable=True) from e
        except psycopg2.Error as e:
            raise translate_error(e, "Connection checkout") from e

    def _release(self, conn):
        if self._pool is None:
            conn.close()
            return
        self._pool.putconn(conn, close=bool(conn.closed))

    @contextmanager
    def connection(self):
        """Borrow a connection; it always goes back to the pool."""
        conn = self._acquire()
        try:
            yield conn
        finally:
            self._release(conn)

    @contextmanager
    def transaction(self):
        """Yield a dict cursor inside one transaction.

        Commits when the block exits normally, rolls back on any exception.
        Driver errors leave as StorageError; other exceptions propagate as-is.
        """
        with self.connection() as conn:
            cur = conn.cursor(cursor_factory=RealDictCursor)
            try:
                yield cur
                conn.commit()
            except Exception as e:
                _safe_rollback(conn)
                if isinstance(e, psycopg2.Error):
                    raise translate_error(e) from e
                raise
            finally:
                cur.close()


def _safe_rollback(conn):
    if conn.closed:
        return
    try:
        conn.rollback()
    except psycopg2.Error as e:
        # a broken connection is discarded by _release
        logger.warning("Rollback failed: %s", e)
