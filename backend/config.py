import os
from typing import Optional
from urllib.parse import urlparse, parse_qs, urlencode, urlunparse
from dotenv import load_dotenv

load_dotenv()


def get_database_url() -> Optional[str]:
    """
    Get and normalize DATABASE_URL.

    Returns None when unset; the app then runs on the in-memory stores.

    For cloud PostgreSQL, automatically adds sslmode=require if missing.
    """
    database_url = os.getenv('DATABASE_URL')
    if not database_url:
        return None

    # SQLAlchemy requires postgresql://
    if database_url.startswith('postgres://'):
        database_url = database_url.replace('postgres://', 'postgresql://', 1)

    if not database_url.startswith(('postgresql://', 'postgresql+psycopg2://')):
        return database_url

    parsed = urlparse(database_url)
    is_localhost = parsed.hostname in ('localhost', '127.0.0.1', None)

    if not is_localhost:
        query_params = parse_qs(parsed.query)
        if 'sslmode' not in query_params:
            query_params['sslmode'] = ['require']
            new_query = urlencode(query_params, doseq=True)
            database_url = urlunparse((
                parsed.scheme, parsed.netloc, parsed.path,
                parsed.params, new_query, parsed.fragment
            ))

    return database_url


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ('1', 'true', 'yes')


class Config:
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key')
    JWT_SECRET = os.getenv('JWT_SECRET', os.getenv('SECRET_KEY', 'dev-secret-key'))
    JWT_ALGORITHM = os.getenv('JWT_ALGORITHM', 'HS256')
    JWT_EXPIRATION_HOURS = int(os.getenv('JWT_EXPIRATION_HOURS', '24'))

    # Cookie carrying the same JWT as the Authorization header
    SESSION_COOKIE_NAME = os.getenv('SESSION_COOKIE_NAME', 'session')
    SESSION_COOKIE_SECURE = _env_flag('SESSION_COOKIE_SECURE', 'false')

    DEBUG = _env_flag('FLASK_DEBUG', 'false')

    API_PREFIX = os.getenv('API_PREFIX', '/api')

    # 'warn' logs output contract violations, 'strict' turns them into 500s
    CONTRACT_MODE = os.getenv('CONTRACT_MODE', 'warn').lower()

    # Optional relational storage; in-memory stores are used when unset
    DATABASE_URL = get_database_url()

    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,      # Verify connection is alive before using
        'pool_recycle': 300,        # Recycle connections every 5 minutes
        'pool_timeout': 60,
        'pool_size': 5,
        'max_overflow': 10,
    }
