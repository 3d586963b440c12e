# timbel/config/settings.py
# Runtime configuration, read from the environment (.env supported)

import os
from typing import List
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == 'true'


class Settings:
    """Application settings, overridable through environment variables"""

    # Database
    DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///./timbel_weekly.db')
    DB_POOL_TIMEOUT = int(os.getenv('DB_POOL_TIMEOUT', 10))
    DB_CONNECT_TIMEOUT = int(os.getenv('DB_CONNECT_TIMEOUT', 10))
    DB_STATEMENT_TIMEOUT_MS = int(os.getenv('DB_STATEMENT_TIMEOUT_MS', 15000))

    # Tokens are issued by the hosted identity provider; we only verify them
    JWT_SECRET = os.getenv('JWT_SECRET', '')
    JWT_ALGORITHM = os.getenv('JWT_ALGORITHM', 'HS256')
    JWT_AUDIENCE = os.getenv('JWT_AUDIENCE', 'authenticated')

    # Reads of another user's data give up after this many seconds
    READ_TIMEOUT_SECONDS = float(os.getenv('READ_TIMEOUT_SECONDS', 10))

    # User record provisioning on first sign-in
    PROVISION_MAX_RETRIES = int(os.getenv('PROVISION_MAX_RETRIES', 3))
    PROVISION_BACKOFF_SECONDS = float(os.getenv('PROVISION_BACKOFF_SECONDS', 1))
    DEFAULT_FULL_NAME = os.getenv('DEFAULT_FULL_NAME', 'User')

    # Two users with no department (or no team) count as the same group
    MATCH_UNASSIGNED_ORG = _env_bool('MATCH_UNASSIGNED_ORG', 'true')

    # Enforce the note status transition graph instead of free-form labels
    STRICT_NOTE_STATUS = _env_bool('STRICT_NOTE_STATUS', 'false')

    CORS_ORIGINS: List[str] = [
        origin.strip()
        for origin in os.getenv('CORS_ORIGINS', 'http://localhost:3000,http://127.0.0.1:3000').split(',')
        if origin.strip()
    ]

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()

    @classmethod
    def is_sqlite(cls) -> bool:
        return cls.DATABASE_URL.startswith('sqlite')

    @classmethod
    def is_postgres(cls) -> bool:
        return cls.DATABASE_URL.startswith('postgresql') or cls.DATABASE_URL.startswith('postgres')
