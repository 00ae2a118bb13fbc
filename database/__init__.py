# database package exports: the connection pool and the store operations
from .pool import Database
from .operations import (
    init_database,
    create_registration,
    find_registration_by_roblox_username,
    exists_serial,
    find_key_by_serial,
    find_key_by_registration,
    count_keys_for_registration,
    save_unlinked_serial,
    insert_key_for_registration
)
