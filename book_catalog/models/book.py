from datetime import datetime, timezone

from sqlalchemy import func

from book_catalog.extensions import db


def _utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Book(db.Model):
    __tablename__ = "books"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False, index=True)
    author = db.Column(db.String(255), nullable=False, index=True)
    isbn = db.Column(db.String(32), unique=True, nullable=True, index=True)

    description = db.Column(db.Text, nullable=True)
    genre = db.Column(db.String(100), nullable=True, index=True)
    price = db.Column(db.Numeric(10, 2), nullable=True)
    publication_year = db.Column(db.Integer, nullable=True)
    stock_quantity = db.Column(db.Integer, nullable=True)
    available = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime, nullable=False, default=_utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        db.CheckConstraint("price >= 0", name="ck_books_price_non_negative"),
        db.CheckConstraint("stock_quantity >= 0", name="ck_books_stock_non_negative"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "isbn": self.isbn,
            "description": self.description,
            "genre": self.genre,
            "price": float(self.price) if self.price is not None else None,
            "publicationYear": self.publication_year,
            "stockQuantity": self.stock_quantity,
            "available": bool(self.available),
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Book {self.id} {self.title!r} by {self.author!r}>"


# aynı başlık + yazar (büyük/küçük harf duyarsız) tekrar eklenemez
db.Index(
    "uq_books_title_author_ci",
    func.lower(Book.title),
    func.lower(Book.author),
    unique=True,
)
