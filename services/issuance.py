# services/issuance.py
import logging

from database.operations import (
    find_registration_by_roblox_username,
    find_key_by_registration,
    insert_key_for_registration
)
from services.key_service import generate_serial, serial_generator
from utils.errors import DuplicateKeyError, RegistrationNotFound, StorageError

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 5


class IssuanceCoordinator:
    """
    Issues at most one serial key per registration.

    The registration row is locked FOR UPDATE for the whole check-then-insert
    sequence, so concurrent requests for the same registration run one after
    another while requests for different registrations stay parallel. The
    unique constraint on generatedkeys.serial catches generator collisions,
    which are retried with a fresh serial up to max_attempts times.
    """

    def __init__(self, db, generate=None, max_attempts=DEFAULT_MAX_ATTEMPTS):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.db = db
        self.generate = generate or generate_serial
        self.max_attempts = max_attempts

    @classmethod
    def from_config(cls, db, config):
        return cls(
            db,
            generate=serial_generator(config.SERIAL_PREFIX, config.SERIAL_SEGMENT_LENGTH),
            max_attempts=config.SERIAL_MAX_ATTEMPTS,
        )

    def issue_serial_for(self, roblox_username):
        """
        Return (key, created) for the registration's serial key.
        created is False when the registration already had a key.
        Raises RegistrationNotFound or StorageError; nothing is persisted
        when an exception leaves this method.
        """
        with self.db.transaction() as cur:
            registration = find_registration_by_roblox_username(cur, roblox_username, for_update=True)
            if not registration:
                logger.warning("Registration not found for %r", roblox_username)
                raise RegistrationNotFound()

            registration_id = registration['id']
            existing = find_key_by_registration(cur, registration_id)
            if existing:
                # nothing was written; end the transaction and release the lock
                cur.connection.rollback()
                logger.info("Serial key already exists for registration %s", registration_id)
                return existing, False

            key = self._insert_new_key(cur, registration_id)

        logger.info("Serial key generated and saved for registration %s (key id %s)",
                    registration_id, key['id'])
        return key, True

    def _insert_new_key(self, cur, registration_id):
        for attempt in range(1, self.max_attempts + 1):
            serial = self.generate()
            try:
                return insert_key_for_registration(cur, registration_id, serial)
            except DuplicateKeyError:
                logger.warning("Serial collision for registration %s (attempt %s/%s)",
                               registration_id, attempt, self.max_attempts)
        raise StorageError(
            f"Could not generate a unique serial for registration {registration_id} "
            f"after {self.max_attempts} attempts"
        )
