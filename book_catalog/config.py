import os


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "super-secret-key")

    APP_NAME = os.getenv("APP_NAME", "Book Management System")
    APP_VERSION = os.getenv("APP_VERSION", "1.0.0")

    SQLALCHEMY_DATABASE_URI = os.getenv(
        "SQLALCHEMY_DATABASE_URI",
        "sqlite:///book_catalog.db"
    )

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True}

    # Tabloları startup'ta oluştur (migration kullanılmıyorsa)
    AUTO_CREATE_TABLES = os.getenv("AUTO_CREATE_TABLES", "1") == "1"

    # Cache: books + book_stats bölgeleri
    CACHE_ENABLED = os.getenv("CACHE_ENABLED", "1") == "1"

    DEFAULT_PAGE_SIZE = int(os.getenv("DEFAULT_PAGE_SIZE", "10"))
    TOP_BOOKS_LIMIT = int(os.getenv("TOP_BOOKS_LIMIT", "10"))

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    AUTO_CREATE_TABLES = True
    CACHE_ENABLED = True
    LOG_LEVEL = "DEBUG"
