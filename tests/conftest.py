from __future__ import annotations

import itertools
import sys
import threading
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Make the flat top-level modules importable when running from a checkout
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from config import Config  # noqa: E402
from utils.errors import DuplicateKeyError, StorageError  # noqa: E402
import services.issuance as issuance  # noqa: E402
import services.registration_service as registration_service  # noqa: E402
import services.serial_service as serial_service  # noqa: E402


class AppTestConfig(Config):
    TESTING = True
    DATABASE_URL = None
    LOG_LEVEL = 'WARNING'
    LOG_FILE = None
    SERIAL_MAX_ATTEMPTS = 3


class FakeConnection:
    def __init__(self):
        self.rollbacks = 0

    def rollback(self):
        self.rollbacks += 1


class FakeCursor:
    def __init__(self):
        self.connection = FakeConnection()
        # row locks taken with for_update, released when the transaction ends
        self.held_locks = []


class FakeDatabase:
    """Stands in for database.Database: records commits and rollbacks."""

    def __init__(self):
        self.commits = 0
        self.rollbacks = 0
        self.cursors = []
        self.fail_with = None
        self.now = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    @contextmanager
    def transaction(self):
        if self.fail_with is not None:
            raise self.fail_with
        cur = FakeCursor()
        self.cursors.append(cur)
        try:
            yield cur
            self.commits += 1
        except Exception:
            self.rollbacks += 1
            raise
        finally:
            while cur.held_locks:
                cur.held_locks.pop().release()

    def ping(self):
        if self.fail_with is not None:
            raise self.fail_with
        return self.now


class MemoryStore:
    """In-memory registrations/generatedkeys with the database.operations signatures."""

    def __init__(self):
        self.registrations = []
        self.keys = []
        self._ids = itertools.count(1)
        self._key_ids = itertools.count(1)
        self._lock = threading.Lock()
        self._row_locks = {}
        # seconds to sleep between the key check and the insert
        self.race_window = 0

    def _row_lock(self, registration_id):
        with self._lock:
            return self._row_locks.setdefault(registration_id, threading.Lock())

    def create_registration(self, cur, roblox_username, discord_username, reason):
        row = {
            'id': next(self._ids),
            'roblox_username': roblox_username,
            'discord_username': discord_username,
            'reason': reason,
            'created_at': datetime.now(timezone.utc),
        }
        self.registrations.append(row)
        return dict(row)

    def find_registration_by_roblox_username(self, cur, roblox_username, for_update=False):
        matches = [r for r in self.registrations if r['roblox_username'] == roblox_username]
        if not matches:
            return None
        row = max(matches, key=lambda r: (r['created_at'], r['id']))
        if for_update:
            lock = self._row_lock(row['id'])
            lock.acquire()
            cur.held_locks.append(lock)
        return dict(row)

    def exists_serial(self, cur, serial):
        return any(k['serial'] == serial for k in self.keys)

    def find_key_by_serial(self, cur, serial):
        for k in self.keys:
            if k['serial'] == serial:
                return dict(k)
        return None

    def find_key_by_registration(self, cur, registration_id):
        for k in self.keys:
            if k['registration_id'] == registration_id:
                return dict(k)
        return None

    def _insert(self, registration_id, serial):
        with self._lock:
            if self.exists_serial(None, serial):
                raise DuplicateKeyError(serial)
            row = {
                'id': next(self._key_ids),
                'registration_id': registration_id,
                'serial': serial,
                'created_at': datetime.now(timezone.utc),
            }
            self.keys.append(row)
            return dict(row)

    def insert_key_for_registration(self, cur, registration_id, serial):
        if self.race_window:
            time.sleep(self.race_window)
        return self._insert(registration_id, serial)

    def save_unlinked_serial(self, cur, serial):
        return self._insert(None, serial)

    def keys_for(self, registration_id):
        return [k for k in self.keys if k['registration_id'] == registration_id]


@pytest.fixture()
def memory_store(monkeypatch):
    store = MemoryStore()
    patches = {
        issuance: ('find_registration_by_roblox_username', 'find_key_by_registration',
                   'insert_key_for_registration'),
        registration_service: ('create_registration',),
        serial_service: ('exists_serial', 'find_key_by_serial', 'save_unlinked_serial'),
    }
    for module, names in patches.items():
        for name in names:
            monkeypatch.setattr(module, name, getattr(store, name))
    return store


@pytest.fixture()
def fake_db():
    return FakeDatabase()


@pytest.fixture()
def app(fake_db, memory_store):
    from app import create_app

    return create_app(AppTestConfig, database=fake_db)


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def storage_down(fake_db):
    fake_db.fail_with = StorageError("connection refused", retryable=True)
    return fake_db
