from sqlalchemy import event, inspect

from book_catalog.extensions import db


def _unicode_lower(value):
    if isinstance(value, str):
        return value.lower()
    return value


def register_sqlite_functions(app):
    """Replace SQLite's ASCII-only ``lower()`` with Python's ``str.lower``.

    The case-insensitive (title, author) index, the duplicate pre-check and
    every ``icontains`` filter go through ``lower()``; they must fold
    non-ASCII letters the same way Python does.
    """
    with app.app_context():
        engine = db.engine
    if engine.dialect.name != "sqlite":
        return

    @event.listens_for(engine, "connect")
    def _register_lower(dbapi_connection, _connection_record):
        # index ifadesinde kullanılabilmesi için deterministic şart
        dbapi_connection.create_function("lower", 1, _unicode_lower, deterministic=True)

    app.logger.debug("[db_schema] Unicode lower() registered for SQLite connections")


def ensure_db_schema(app):
    """Create missing tables/indexes when AUTO_CREATE_TABLES is on.

    Production deployments are expected to run ``flask db upgrade`` instead.
    """
    if not app.config.get("AUTO_CREATE_TABLES", False):
        return

    # model modülü import edilmeden metadata boş kalır
    from book_catalog.models import book  # noqa: F401

    with app.app_context():
        try:
            db.create_all()
            tables = inspect(db.engine).get_table_names()
            app.logger.info(f"[db_schema] Schema ensured, tables: {', '.join(sorted(tables))}")
        except Exception as e:
            app.logger.error(f"[db_schema] HATA: {e}")
            raise
