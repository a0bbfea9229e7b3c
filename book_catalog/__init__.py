import time

from flask import Flask

from book_catalog.config import Config
from book_catalog.db_schema import ensure_db_schema, register_sqlite_functions
from book_catalog.errors import register_error_handlers
from book_catalog.extensions import cache, db, migrate


def create_app(config_object=None):
    app = Flask(__name__)
    app.config.from_object(config_object or Config)
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # 1) Önce db init (db.engine / db.session için şart)
    db.init_app(app)
    migrate.init_app(app, db)

    # 2) Tablolar + indeksler (db init sonrası, ilk bağlantıdan önce lower() kaydı)
    register_sqlite_functions(app)
    ensure_db_schema(app)

    # 3) Cache + hata eşlemeleri
    cache.init_app(app)
    register_error_handlers(app)

    # 4) API blueprintleri
    from book_catalog.controllers.book_controller import book_bp
    from book_catalog.controllers.health_controller import health_bp
    app.register_blueprint(book_bp, url_prefix="/api/v1/books")
    app.register_blueprint(health_bp, url_prefix="/health")

    app.extensions["book_catalog.started_at"] = time.time()
    app.logger.info(f"[app] {app.config['APP_NAME']} {app.config['APP_VERSION']} ready.")

    return app
