# services/serial_service.py
import logging

from database.operations import exists_serial, find_key_by_serial, save_unlinked_serial
from utils.errors import Conflict, DuplicateKeyError

logger = logging.getLogger(__name__)


def serial_exists(db, serial):
    with db.transaction() as cur:
        return exists_serial(cur, serial)


def save_serial(db, serial):
    """
    Persist a serial that is not linked to any registration.
    A duplicate raises Conflict carrying the existing key's id.
    """
    try:
        with db.transaction() as cur:
            key = save_unlinked_serial(cur, serial)
    except DuplicateKeyError:
        with db.transaction() as cur:
            existing = find_key_by_serial(cur, serial)
        logger.warning("Serial key already exists (key id %s)", existing['id'] if existing else None)
        raise Conflict('Serial key already exists', details={
            'existingKeyId': existing['id'] if existing else None
        })

    logger.info("Serial key saved successfully (key id %s)", key['id'])
    return key
