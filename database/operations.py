# database/operations.py
# Registration store and key store. Every function takes the cursor of the
# caller's transaction so the caller decides the transaction boundaries.
import logging

import psycopg2
from psycopg2 import errors as pg_errors

from database.models import get_table_definitions, get_migrations, get_index_definitions
from utils.errors import DuplicateKeyError

logger = logging.getLogger(__name__)

SERIAL_UNIQUE_CONSTRAINT = 'generatedkeys_serial_key'


def init_database(db):
    """Create tables, apply additive migrations and indexes. Safe to re-run."""
    logger.info("Starting database initialization")
    with db.transaction() as cur:
        for name, ddl in get_table_definitions().items():
            cur.execute(ddl)
            logger.debug("Ensured table %s", name)
        for name, ddl in get_migrations().items():
            cur.execute(ddl)
            logger.debug("Applied migration %s", name)
        for name, ddl in get_index_definitions().items():
            cur.execute(ddl)
            logger.debug("Ensured index %s", name)
    logger.info("Database tables verified successfully")


# Registration operations
def create_registration(cur, roblox_username, discord_username, reason):
    cur.execute(
        """
        INSERT INTO registrations (roblox_username, discord_username, reason)
        VALUES (%s, %s, %s)
        RETURNING id, roblox_username, discord_username, reason, created_at
        """,
        (roblox_username, discord_username, reason)
    )
    return cur.fetchone()


def find_registration_by_roblox_username(cur, roblox_username, for_update=False):
    """
    Return the most recent registration for the handle, or None.
    With for_update the row stays locked until the transaction ends.
    """
    query = """
        SELECT id, roblox_username, discord_username, reason, created_at
        FROM registrations
        WHERE roblox_username = %s
        ORDER BY created_at DESC, id DESC
        LIMIT 1
    """
    if for_update:
        query += " FOR UPDATE"
    cur.execute(query, (roblox_username,))
    return cur.fetchone()


# Key operations
def exists_serial(cur, serial):
    cur.execute("SELECT EXISTS(SELECT 1 FROM generatedkeys WHERE serial = %s) AS exists", (serial,))
    return bool(cur.fetchone()['exists'])


def find_key_by_serial(cur, serial):
    cur.execute(
        "SELECT id, registration_id, serial, created_at FROM generatedkeys WHERE serial = %s",
        (serial,)
    )
    return cur.fetchone()


def find_key_by_registration(cur, registration_id):
    cur.execute(
        """
        SELECT id, registration_id, serial, created_at
        FROM generatedkeys
        WHERE registration_id = %s
        ORDER BY id
        LIMIT 1
        """,
        (registration_id,)
    )
    return cur.fetchone()


def count_keys_for_registration(cur, registration_id):
    cur.execute("SELECT COUNT(*) AS total FROM generatedkeys WHERE registration_id = %s", (registration_id,))
    return cur.fetchone()['total']


def _insert_key(cur, registration_id, serial):
    # The savepoint keeps the surrounding transaction (and its row lock)
    # usable after a unique violation.
    cur.execute("SAVEPOINT insert_serial")
    try:
        cur.execute(
            """
            INSERT INTO generatedkeys (registration_id, serial)
            VALUES (%s, %s)
            RETURNING id, registration_id, serial, created_at
            """,
            (registration_id, serial)
        )
        row = cur.fetchone()
    except pg_errors.UniqueViolation as e:
        cur.execute("ROLLBACK TO SAVEPOINT insert_serial")
        constraint = getattr(getattr(e, 'diag', None), 'constraint_name', None)
        if constraint not in (None, SERIAL_UNIQUE_CONSTRAINT):
            raise
        raise DuplicateKeyError(serial) from e
    except psycopg2.Error:
        cur.execute("ROLLBACK TO SAVEPOINT insert_serial")
        raise
    cur.execute("RELEASE SAVEPOINT insert_serial")
    return row


def save_unlinked_serial(cur, serial):
    """Insert a key row with no registration. Raises DuplicateKeyError on collision."""
    return _insert_key(cur, None, serial)


def insert_key_for_registration(cur, registration_id, serial):
    """Insert a key row linked to a registration. Raises DuplicateKeyError on collision."""
    return _insert_key(cur, registration_id, serial)
