# config.py

import os
from sqlalchemy.pool import QueuePool


def _env_int(name, default):
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


def _env_bool(name, default):
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "super-secret-dev-key")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SESSION_COOKIE_SECURE = True
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'

    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_recycle": 280,
        "pool_size": 5,
        "max_overflow": 10,
        "poolclass": QueuePool
    }

    # LLM provider
    OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
    OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
    OPENAI_GRADER_MODEL = os.getenv("OPENAI_GRADER_MODEL", "gpt-4o")
    OPENAI_TIMEOUT = _env_int("OPENAI_TIMEOUT", 30)

    # Daily challenge
    TIME_ZONE = os.getenv("TIME_ZONE", "America/New_York")
    DAILY_SECRET = os.getenv("DAILY_SECRET", "")

    # Answer key / ephemeral state lifetimes
    SURVIVAL_TTL_SECONDS = _env_int("SURVIVAL_TTL_SECONDS", 60 * 60)
    JEOPARDY_TTL_SECONDS = _env_int("JEOPARDY_TTL_SECONDS", 2 * 60 * 60)
    QUIZ_TTL_SECONDS = _env_int("QUIZ_TTL_SECONDS", 24 * 60 * 60)
    TOWER_TTL_SECONDS = _env_int("TOWER_TTL_SECONDS", 24 * 60 * 60)
    FACEOFF_TTL_DAYS = _env_int("FACEOFF_TTL_DAYS", 30)
    SINGLE_QUESTION_TTL_SECONDS = _env_int("SINGLE_QUESTION_TTL_SECONDS", 15 * 60)

    FUZZY_ACCEPT_THRESHOLD = float(os.getenv("FUZZY_ACCEPT_THRESHOLD", "0.85"))

    # Housekeeping
    PURGE_INTERVAL_SECONDS = _env_int("PURGE_INTERVAL_SECONDS", 600)
    START_BACKGROUND_TASKS = _env_bool("START_BACKGROUND_TASKS", True)

    BASE_URL = os.getenv("BASE_URL", "")

    @staticmethod
    def init_app(app):
        pass

class DevelopmentConfig(Config):
    DEBUG = True
    SESSION_COOKIE_SECURE = False
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DEV_DATABASE_URL",
        "sqlite:///local.db"  # keep relative and portable
    )
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True}

class ProductionConfig(Config):
    DEBUG = False

    @classmethod
    def get_database_uri(cls):
        uri = os.getenv("DATABASE_URL", "")
        if uri.startswith("postgres://"):
            uri = uri.replace("postgres://", "postgresql://", 1)
        if uri and "sslmode" not in uri:
            uri += "?sslmode=require"
        return uri

    SQLALCHEMY_DATABASE_URI = get_database_uri.__func__(None)

class TestingConfig(Config):
    TESTING = True
    SESSION_COOKIE_SECURE = False
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    START_BACKGROUND_TASKS = False
    OPENAI_API_KEY = "test-key"
    DAILY_SECRET = "test-secret"

config = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
    "default": DevelopmentConfig
}
