from datetime import datetime, timezone

from flask import current_app
from sqlalchemy.exc import IntegrityError

from book_catalog.cache import BOOK_STATS, BOOKS
from book_catalog.errors import BookNotFoundError, DuplicateBookError, ValidationError
from book_catalog.extensions import cache
from book_catalog.models.book import Book
from book_catalog.repositories.book_repo import BookRepo
from book_catalog.schemas.book import BookCreate, BookUpdate, SearchFilters, parse
from book_catalog.utils.pagination import Page, PageRequest

ALL_BOOKS_KEY = "all_books"
STATISTICS_KEY = "statistics"
TOTAL_COUNT_KEY = "total_count"

DUPLICATE_TITLE_AUTHOR = "Book with same title and author already exists"

# update'te None değilse üzerine yazılan alanlar (title/author her zaman yazılır)
_OPTIONAL_UPDATE_FIELDS = (
    "isbn",
    "description",
    "publication_year",
    "genre",
    "price",
    "stock_quantity",
    "available",
)


def _author_key(author: str) -> str:
    return f"author:{author}"


def _as_float(value) -> float:
    return float(value) if value is not None else 0.0


def _serialize(books):
    return [b.to_dict() for b in books]


class BookService:
    @staticmethod
    def _log():
        return current_app.logger

    # -----------------------------
    # Reads
    # -----------------------------
    @staticmethod
    def list_books():
        BookService._log().debug("[BookService] Fetching all books")
        return cache.cached(BOOKS, ALL_BOOKS_KEY, lambda: _serialize(BookRepo.list_all()))

    @staticmethod
    def list_books_page(page_request: PageRequest) -> Page:
        BookService._log().debug(f"[BookService] Fetching books with pagination: {page_request}")
        return BookRepo.page_all(page_request).map(Book.to_dict)

    @staticmethod
    def get_book(book_id: int):
        BookService._log().debug(f"[BookService] Fetching book with id: {book_id}")

        def _load():
            book = BookRepo.get(book_id)
            if not book:
                BookService._log().warning(f"[BookService] Book not found with id: {book_id}")
                raise BookNotFoundError(book_id)
            return book.to_dict()

        return cache.cached(BOOKS, book_id, _load)

    @staticmethod
    def get_books_by_author(author: str):
        BookService._log().debug(f"[BookService] Fetching books by author: {author}")
        return cache.cached(
            BOOKS, _author_key(author), lambda: _serialize(BookRepo.find_by_author(author))
        )

    @staticmethod
    def exists(book_id: int) -> bool:
        return bool(BookRepo.exists(book_id))

    @staticmethod
    def total_count() -> int:
        return cache.cached(BOOK_STATS, TOTAL_COUNT_KEY, BookRepo.count)

    @staticmethod
    def search_books(filters, page_request: PageRequest) -> Page:
        if not isinstance(filters, SearchFilters):
            filters = parse(SearchFilters, filters)
        BookService._log().debug(f"[BookService] Searching books with filters: {filters.echo()}")
        page = BookRepo.search_with_filters(filters, page_request).map(Book.to_dict)
        page.extra["filters"] = filters.echo()
        return page

    @staticmethod
    def full_text_search(term: str, page_request: PageRequest) -> Page:
        if term is None or not str(term).strip():
            raise ValidationError("Search term is required", {"q": "must not be blank"})
        BookService._log().debug(f"[BookService] Performing full-text search for: {term}")
        page = BookRepo.search_text(term, page_request).map(Book.to_dict)
        page.extra["searchTerm"] = term
        return page

    @staticmethod
    def available_books(page_request: PageRequest) -> Page:
        BookService._log().debug("[BookService] Fetching available books")
        return BookRepo.page_available(page_request).map(Book.to_dict)

    @staticmethod
    def books_by_genre(genre: str):
        BookService._log().debug(f"[BookService] Fetching books by genre: {genre}")
        return _serialize(BookRepo.find_by_genre(genre))

    @staticmethod
    def books_by_price_range(min_price, max_price):
        if min_price > max_price:
            raise ValidationError(
                "Invalid price range",
                {"minPrice": "must be less than or equal to maxPrice"},
            )
        BookService._log().debug(f"[BookService] Fetching books by price range: {min_price} - {max_price}")
        return _serialize(BookRepo.find_by_price_between(min_price, max_price))

    @staticmethod
    def books_by_publication_year(year: int):
        BookService._log().debug(f"[BookService] Fetching books by publication year: {year}")
        return _serialize(BookRepo.find_by_publication_year(year))

    @staticmethod
    def top_expensive_books():
        limit = current_app.config.get("TOP_BOOKS_LIMIT", 10)
        return _serialize(BookRepo.top_by_price(limit))

    @staticmethod
    def recently_added_books():
        limit = current_app.config.get("TOP_BOOKS_LIMIT", 10)
        return _serialize(BookRepo.most_recent(limit))

    @staticmethod
    def statistics():
        return cache.cached(BOOK_STATS, STATISTICS_KEY, BookService._compute_statistics)

    @staticmethod
    def _compute_statistics():
        BookService._log().debug("[BookService] Generating book statistics")

        total = BookRepo.count()
        available = BookRepo.count_available()
        in_stock = BookRepo.count_in_stock()
        avg_price, max_price, min_price = BookRepo.price_summary()
        now = datetime.now(timezone.utc)

        return {
            "totalBooks": total,
            "availableBooks": available,
            "unavailableBooks": total - available,
            # genre'si NULL olan kitaplar bu haritaya girmez
            "booksByGenre": {genre: count for genre, count in BookRepo.count_by_genre()},
            "booksByAuthor": {author: count for author, count in BookRepo.count_by_author()},
            "averagePrice": _as_float(avg_price),
            "maxPrice": _as_float(max_price),
            "minPrice": _as_float(min_price),
            "booksInStock": in_stock,
            "booksOutOfStock": total - in_stock,
            "timestamp": int(now.timestamp() * 1000),
            "generatedAt": now.isoformat(),
        }

    # -----------------------------
    # Writes
    # -----------------------------
    @staticmethod
    def create_book(data):
        payload = data if isinstance(data, BookCreate) else parse(BookCreate, data)
        log = BookService._log()
        log.debug(f"[BookService] Creating new book: {payload.title}")

        if BookRepo.find_title_author_duplicate(payload.title, payload.author):
            log.warning(f"[BookService] Duplicate book detected: {payload.title} by {payload.author}")
            raise DuplicateBookError(DUPLICATE_TITLE_AUTHOR)

        if payload.isbn is not None and BookRepo.isbn_exists(payload.isbn):
            log.warning(f"[BookService] Book with ISBN {payload.isbn} already exists")
            raise DuplicateBookError(f"Book with ISBN {payload.isbn} already exists")

        book = Book(
            title=payload.title,
            author=payload.author,
            isbn=payload.isbn,
            description=payload.description,
            genre=payload.genre,
            price=payload.price,
            publication_year=payload.publication_year,
            stock_quantity=payload.stock_quantity,
            available=payload.available,
        )
        try:
            BookRepo.add(book)
            BookRepo.commit()
        except IntegrityError as e:
            # eşzamanlı create: unique index son sözü söyler
            BookRepo.rollback()
            raise DuplicateBookError(BookService._conflict_message(e, payload.isbn)) from e

        cache.clear(BOOKS)
        cache.clear(BOOK_STATS)
        log.info(f"[BookService] Book created successfully with id: {book.id}")
        return book.to_dict()

    @staticmethod
    def update_book(book_id: int, data):
        payload = data if isinstance(data, BookUpdate) else parse(BookUpdate, data)
        log = BookService._log()
        log.debug(f"[BookService] Updating book with id: {book_id}")

        book = BookRepo.get_for_update(book_id)
        if not book:
            log.warning(f"[BookService] Book not found with id: {book_id}")
            raise BookNotFoundError(book_id)

        old_author = book.author
        book.title = payload.title
        book.author = payload.author
        for field in _OPTIONAL_UPDATE_FIELDS:
            value = getattr(payload, field)
            if value is not None:
                setattr(book, field, value)

        try:
            BookRepo.commit()
        except IntegrityError as e:
            BookRepo.rollback()
            raise DuplicateBookError(BookService._conflict_message(e, payload.isbn)) from e

        cache.evict(BOOKS, book_id)
        cache.evict(BOOKS, ALL_BOOKS_KEY)
        cache.evict(BOOKS, _author_key(old_author))
        cache.evict(BOOKS, _author_key(book.author))
        cache.clear(BOOK_STATS)

        log.info(f"[BookService] Book updated successfully with id: {book.id}")
        return book.to_dict()

    @staticmethod
    def delete_book(book_id: int):
        log = BookService._log()
        log.debug(f"[BookService] Deleting book with id: {book_id}")

        book = BookRepo.get_for_update(book_id)
        if not book:
            log.warning(f"[BookService] Book not found with id: {book_id}")
            raise BookNotFoundError(book_id)

        BookRepo.delete(book)
        BookRepo.commit()

        cache.clear(BOOKS)
        cache.clear(BOOK_STATS)
        log.info(f"[BookService] Book deleted successfully with id: {book_id}")

    @staticmethod
    def _conflict_message(error: IntegrityError, isbn) -> str:
        detail = str(getattr(error, "orig", error)).lower()
        if isbn is not None and "isbn" in detail:
            return f"Book with ISBN {isbn} already exists"
        return DUPLICATE_TITLE_AUTHOR
