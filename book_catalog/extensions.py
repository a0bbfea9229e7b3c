from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy

from book_catalog.cache import BookCache

db = SQLAlchemy()
migrate = Migrate()
cache = BookCache()
