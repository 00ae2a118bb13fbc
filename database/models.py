# database/models.py
# Provides DDL statements for canonical schema.
# Schema changes must stay additive: new columns are nullable and are added
# through get_migrations() so existing rows keep working.

def get_table_definitions():
    return {
        'registrations': '''
            CREATE TABLE IF NOT EXISTS registrations (
              id SERIAL PRIMARY KEY,
              roblox_username VARCHAR(255) NOT NULL,
              discord_username VARCHAR(255) NOT NULL,
              created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        ''',
        'generatedkeys': '''
            CREATE TABLE IF NOT EXISTS generatedkeys (
              id SERIAL PRIMARY KEY,
              registration_id INTEGER REFERENCES registrations(id),
              serial VARCHAR(255) NOT NULL UNIQUE,
              created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        ''',
    }


def get_migrations():
    return {
        'registrations.reason': '''
            ALTER TABLE registrations ADD COLUMN IF NOT EXISTS reason TEXT
        ''',
    }


def get_index_definitions():
    return {
        'idx_registrations_roblox_username': '''
            CREATE INDEX IF NOT EXISTS idx_registrations_roblox_username
            ON registrations (roblox_username)
        ''',
        'idx_generatedkeys_registration_id': '''
            CREATE INDEX IF NOT EXISTS idx_generatedkeys_registration_id
            ON generatedkeys (registration_id)
        ''',
    }
