# config.py
import os

from dotenv import load_dotenv

load_dotenv()


def _int_env(name, default):
    try:
        return int(os.environ.get(name, default))
    except (TypeError, ValueError):
        return default


class Config:
    # Basic Configuration
    PORT = _int_env('PORT', 3000)
    DATABASE_URL = os.environ.get('DATABASE_URL')
    MAX_CONTENT_LENGTH = 64 * 1024  # 64KB, payloads are a few short strings

    # Database Configuration
    # 'require' encrypts without verifying the server certificate
    DATABASE_SSLMODE = os.environ.get('DATABASE_SSLMODE', 'prefer')
    DB_POOL_MIN = _int_env('DB_POOL_MIN', 1)
    DB_POOL_MAX = _int_env('DB_POOL_MAX', 10)
    DB_CONNECT_TIMEOUT = _int_env('DB_CONNECT_TIMEOUT', 5)  # seconds
    DB_STATEMENT_TIMEOUT_MS = _int_env('DB_STATEMENT_TIMEOUT_MS', 5000)
    DB_LOCK_TIMEOUT_MS = _int_env('DB_LOCK_TIMEOUT_MS', 3000)

    # Serial Key Configuration
    SERIAL_PREFIX = os.environ.get('SERIAL_PREFIX', 'scriptxserial_')
    SERIAL_SEGMENT_LENGTH = _int_env('SERIAL_SEGMENT_LENGTH', 13)
    SERIAL_MAX_ATTEMPTS = _int_env('SERIAL_MAX_ATTEMPTS', 5)

    # HTTP Configuration
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*')

    # Logging Configuration
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()
    LOG_FILE = os.environ.get('LOG_FILE')
