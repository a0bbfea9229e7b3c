from sqlalchemy import func, or_

from book_catalog.extensions import db
from book_catalog.models.book import Book
from book_catalog.utils.pagination import PageRequest, paginate

# API alan adı -> kolon
SORT_COLUMNS = {
    "id": Book.id,
    "title": Book.title,
    "author": Book.author,
    "isbn": Book.isbn,
    "description": Book.description,
    "genre": Book.genre,
    "price": Book.price,
    "publicationYear": Book.publication_year,
    "stockQuantity": Book.stock_quantity,
    "available": Book.available,
    "createdAt": Book.created_at,
    "updatedAt": Book.updated_at,
}


class BookRepo:
    @staticmethod
    def list_all():
        return Book.query.order_by(Book.id.asc()).all()

    @staticmethod
    def page_all(page_request: PageRequest):
        return paginate(Book.query, page_request, SORT_COLUMNS, tiebreak=Book.id)

    @staticmethod
    def get(book_id: int):
        return db.session.get(Book, book_id)

    @staticmethod
    def get_for_update(book_id: int):
        return db.session.get(Book, book_id, with_for_update=True)

    @staticmethod
    def exists(book_id: int) -> bool:
        return db.session.query(Book.query.filter(Book.id == book_id).exists()).scalar()

    @staticmethod
    def count() -> int:
        return Book.query.count()

    @staticmethod
    def find_by_author(author: str):
        return Book.query.filter(Book.author == author).order_by(Book.id.asc()).all()

    @staticmethod
    def find_by_genre(genre: str):
        return Book.query.filter(Book.genre == genre).order_by(Book.id.asc()).all()

    @staticmethod
    def find_by_publication_year(year: int):
        return Book.query.filter(Book.publication_year == year).order_by(Book.id.asc()).all()

    @staticmethod
    def find_by_price_between(min_price, max_price):
        return (
            Book.query
            .filter(Book.price >= min_price, Book.price <= max_price)
            .order_by(Book.price.asc(), Book.id.asc())
            .all()
        )

    @staticmethod
    def find_title_author_duplicate(title: str, author: str):
        # SQLite'ta lower() Python str.lower ile aynı (bkz. db_schema)
        return Book.query.filter(
            func.lower(Book.title) == title.lower(),
            func.lower(Book.author) == author.lower(),
        ).first()

    @staticmethod
    def isbn_exists(isbn: str) -> bool:
        return db.session.query(Book.query.filter(Book.isbn == isbn).exists()).scalar()

    @staticmethod
    def top_by_price(limit: int):
        return (
            Book.query
            .filter(Book.price.isnot(None))
            .order_by(Book.price.desc(), Book.id.asc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def most_recent(limit: int):
        return Book.query.order_by(Book.created_at.desc(), Book.id.desc()).limit(limit).all()

    @staticmethod
    def search_with_filters(filters, page_request: PageRequest):
        """AND of every filter that is set; unset filters match everything."""
        conditions = []
        if filters.title is not None:
            conditions.append(Book.title.icontains(filters.title, autoescape=True))
        if filters.author is not None:
            conditions.append(Book.author.icontains(filters.author, autoescape=True))
        if filters.genre is not None:
            conditions.append(Book.genre.icontains(filters.genre, autoescape=True))
        if filters.min_price is not None:
            conditions.append(Book.price >= filters.min_price)
        if filters.max_price is not None:
            conditions.append(Book.price <= filters.max_price)
        if filters.min_year is not None:
            conditions.append(Book.publication_year >= filters.min_year)
        if filters.max_year is not None:
            conditions.append(Book.publication_year <= filters.max_year)
        if filters.available is not None:
            conditions.append(Book.available == filters.available)

        query = Book.query.filter(*conditions)
        return paginate(query, page_request, SORT_COLUMNS, tiebreak=Book.id)

    @staticmethod
    def search_text(term: str, page_request: PageRequest):
        # NULL kolonlar LIKE ile hiçbir zaman eşleşmez
        query = Book.query.filter(or_(
            Book.title.icontains(term, autoescape=True),
            Book.author.icontains(term, autoescape=True),
            Book.description.icontains(term, autoescape=True),
            Book.genre.icontains(term, autoescape=True),
        ))
        return paginate(query, page_request, SORT_COLUMNS, tiebreak=Book.id)

    @staticmethod
    def page_available(page_request: PageRequest):
        query = Book.query.filter_by(available=True)
        return paginate(query, page_request, SORT_COLUMNS, tiebreak=Book.id)

    # --- aggregates ---

    @staticmethod
    def count_available() -> int:
        return Book.query.filter_by(available=True).count()

    @staticmethod
    def count_in_stock() -> int:
        return Book.query.filter(Book.stock_quantity > 0).count()

    @staticmethod
    def count_by_genre():
        return (
            db.session.query(Book.genre, func.count(Book.id))
            .filter(Book.genre.isnot(None))
            .group_by(Book.genre)
            .all()
        )

    @staticmethod
    def count_by_author():
        return db.session.query(Book.author, func.count(Book.id)).group_by(Book.author).all()

    @staticmethod
    def price_summary():
        """(avg, max, min) over books with a price; all None when none have one."""
        return db.session.query(
            func.avg(Book.price), func.max(Book.price), func.min(Book.price)
        ).filter(Book.price.isnot(None)).one()

    # --- writes ---

    @staticmethod
    def add(book: Book):
        db.session.add(book)
        db.session.flush()
        return book

    @staticmethod
    def delete(book: Book):
        db.session.delete(book)

    @staticmethod
    def commit():
        db.session.commit()

    @staticmethod
    def rollback():
        db.session.rollback()
