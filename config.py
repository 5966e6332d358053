import os
from dotenv import load_dotenv

load_dotenv()

class Config:
    """Base configuration shared across all environments."""
    SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-secret-key-change-in-production')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_recycle": 300,
        "pool_pre_ping": True,
    }

    # Billing defaults
    DEFAULT_STORE_NAME = os.environ.get('DEFAULT_STORE_NAME', 'THE SILVER LINING')
    BILL_ID_PREFIX     = os.environ.get('BILL_ID_PREFIX', 'TSL')
    SHARE_QUERY_KEY    = 'b'
    CURRENCY_SYMBOL    = os.environ.get('CURRENCY_SYMBOL', '₹')
    WALK_IN_LABEL      = 'Walk-in Customer'

    # Optional AI extraction (disabled when no key is set)
    GROQ_API_KEY = os.environ.get('GROQ_API_KEY')
    GROQ_MODEL   = os.environ.get('GROQ_MODEL', 'llama-3.3-70b-versatile')

class DevelopmentConfig(Config):
    """Development environment configuration."""
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        'DATABASE_URL',
        f'sqlite:///{os.path.join(os.getcwd(), "billstation.db")}'
    )

class ProductionConfig(Config):
    """Production environment configuration."""
    DEBUG = False

    _db_url = os.environ.get('DATABASE_URL')
    if _db_url and _db_url.startswith('postgres://'):
        _db_url = _db_url.replace('postgres://', 'postgresql://', 1)

    SQLALCHEMY_DATABASE_URI = _db_url or f'sqlite:///{os.path.join(os.getcwd(), "billstation.db")}'

    SECRET_KEY = os.environ.get('SECRET_KEY')

    # Session Cookie Security
    SESSION_COOKIE_SECURE = True
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'


class TestingConfig(Config):
    """Testing environment configuration."""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SESSION_COOKIE_SECURE = False
    SQLALCHEMY_ENGINE_OPTIONS = {}  # SQLite doesn't use the prod pool settings
    GROQ_API_KEY = None

config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
