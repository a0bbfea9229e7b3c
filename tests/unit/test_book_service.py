"""Unit tests for BookService: CRUD rules, queries, statistics and cache invalidation."""

import pytest

from book_catalog.cache import BOOK_STATS, BOOKS
from book_catalog.errors import BookNotFoundError, DuplicateBookError, ValidationError
from book_catalog.extensions import cache, db
from book_catalog.models.book import Book
from book_catalog.repositories.book_repo import BookRepo
from book_catalog.schemas.book import SearchFilters
from book_catalog.services.book_service import BookService
from book_catalog.utils.pagination import PageRequest


class TestCreate:
    def test_assigns_id_and_timestamps(self, app_ctx) -> None:
        book = BookService.create_book({"title": "Dune", "author": "Frank Herbert", "price": 15.00})
        assert book["id"] is not None
        assert book["createdAt"] and book["updatedAt"]
        assert book["price"] == 15.0
        assert book["available"] is True

    def test_duplicate_title_author_conflicts(self, app_ctx) -> None:
        BookService.create_book({
            "title": "Dune", "author": "Frank Herbert", "price": 15.00, "genre": "Sci-Fi", "available": True,
        })
        with pytest.raises(DuplicateBookError) as exc:
            BookService.create_book({"title": "Dune", "author": "Frank Herbert"})
        assert "title and author" in exc.value.message

    def test_duplicate_check_ignores_case(self, app_ctx) -> None:
        BookService.create_book({"title": "Dune", "author": "Frank Herbert"})
        with pytest.raises(DuplicateBookError):
            BookService.create_book({"title": "DUNE", "author": "frank herbert"})

    def test_duplicate_check_folds_accented_letters(self, app_ctx) -> None:
        BookService.create_book({"title": "Élan Vital", "author": "Émile Zola"})
        with pytest.raises(DuplicateBookError):
            BookService.create_book({"title": "élan vital", "author": "émile zola"})
        assert BookRepo.count() == 1

    def test_unique_index_folds_accented_letters(self, app_ctx, monkeypatch) -> None:
        BookService.create_book({"title": "Über Alles", "author": "Ölçer"})
        monkeypatch.setattr(BookRepo, "find_title_author_duplicate", staticmethod(lambda t, a: None))

        with pytest.raises(DuplicateBookError):
            BookService.create_book({"title": "ÜBER ALLES", "author": "ÖLÇER"})
        assert BookRepo.count() == 1

    def test_same_title_other_author_is_fine(self, app_ctx) -> None:
        BookService.create_book({"title": "Dune", "author": "Frank Herbert"})
        BookService.create_book({"title": "Dune", "author": "Brian Herbert"})
        assert BookRepo.count() == 2

    def test_duplicate_isbn_conflicts(self, app_ctx) -> None:
        BookService.create_book({"title": "A", "author": "X", "isbn": "978-0-123456-78-9"})
        with pytest.raises(DuplicateBookError) as exc:
            BookService.create_book({"title": "B", "author": "Y", "isbn": "978-0-123456-78-9"})
        assert exc.value.message == "Book with ISBN 978-0-123456-78-9 already exists"

    def test_many_books_without_isbn(self, app_ctx) -> None:
        for i in range(3):
            BookService.create_book({"title": f"Book {i}", "author": "Anon"})
        assert BookRepo.count() == 3

    def test_unique_index_backstops_racing_create(self, app_ctx, monkeypatch) -> None:
        """A duplicate that slips past the pre-check is still rejected by the database."""
        BookService.create_book({"title": "Dune", "author": "Frank Herbert"})
        monkeypatch.setattr(BookRepo, "find_title_author_duplicate", staticmethod(lambda t, a: None))

        with pytest.raises(DuplicateBookError) as exc:
            BookService.create_book({"title": "dune", "author": "FRANK HERBERT"})
        assert "title and author" in exc.value.message
        assert BookRepo.count() == 1

    def test_unique_isbn_backstop(self, app_ctx, monkeypatch) -> None:
        BookService.create_book({"title": "A", "author": "X", "isbn": "111"})
        monkeypatch.setattr(BookRepo, "isbn_exists", staticmethod(lambda isbn: False))

        with pytest.raises(DuplicateBookError) as exc:
            BookService.create_book({"title": "B", "author": "Y", "isbn": "111"})
        assert "ISBN 111" in exc.value.message

    def test_validation_error_for_missing_fields(self, app_ctx) -> None:
        with pytest.raises(ValidationError) as exc:
            BookService.create_book({"isbn": "123"})
        assert {"title", "author"} <= set(exc.value.field_errors)


class TestUpdate:
    def test_partial_update_keeps_absent_fields(self, app_ctx) -> None:
        book = BookService.create_book({
            "title": "Dune", "author": "Frank Herbert", "price": 15.00,
            "genre": "Sci-Fi", "description": "Spice", "stockQuantity": 4,
        })
        updated = BookService.update_book(book["id"], {
            "title": "Dune (Deluxe)", "author": "Frank Herbert", "price": 25.50, "genre": None,
        })
        assert updated["title"] == "Dune (Deluxe)"
        assert updated["price"] == 25.5
        assert updated["genre"] == "Sci-Fi"
        assert updated["description"] == "Spice"
        assert updated["stockQuantity"] == 4

    def test_title_and_author_always_overwritten(self, app_ctx) -> None:
        book = BookService.create_book({"title": "Dune", "author": "Frank Herbert"})
        updated = BookService.update_book(book["id"], {"title": "", "author": ""})
        assert (updated["title"], updated["author"]) == ("", "")

    def test_available_false_is_applied(self, app_ctx) -> None:
        book = BookService.create_book({"title": "Dune", "author": "Frank Herbert"})
        updated = BookService.update_book(book["id"], {"title": "Dune", "author": "Frank Herbert", "available": False})
        assert updated["available"] is False

    def test_id_is_stable(self, app_ctx) -> None:
        book = BookService.create_book({"title": "Dune", "author": "Frank Herbert"})
        updated = BookService.update_book(book["id"], {"title": "Other", "author": "Someone", "id": 999})
        assert updated["id"] == book["id"]

    def test_unknown_id(self, app_ctx) -> None:
        with pytest.raises(BookNotFoundError) as exc:
            BookService.update_book(404, {"title": "x", "author": "y"})
        assert exc.value.message == "Book not found with id: 404"


class TestDeleteAndExists:
    def test_delete_then_missing(self, app_ctx) -> None:
        book = BookService.create_book({"title": "Dune", "author": "Frank Herbert"})
        assert BookService.exists(book["id"]) is True

        BookService.delete_book(book["id"])

        assert BookService.exists(book["id"]) is False
        with pytest.raises(BookNotFoundError):
            BookService.get_book(book["id"])

    def test_delete_unknown_id(self, app_ctx) -> None:
        with pytest.raises(BookNotFoundError):
            BookService.delete_book(12345)

    def test_exists_never_raises(self, app_ctx) -> None:
        assert BookService.exists(777) is False


class TestQueries:
    @pytest.fixture()
    def catalog(self, app_ctx):
        books = [
            {"title": "Dune", "author": "Frank Herbert", "price": 15.00, "genre": "Sci-Fi",
             "publicationYear": 1965, "stockQuantity": 5},
            {"title": "Cheap Space Opera", "author": "Jane Doe", "price": 5.00, "genre": "Sci-Fi",
             "publicationYear": 2001, "stockQuantity": 0},
            {"title": "Effective Coding", "author": "John Smith", "price": 42.00, "genre": "Programming",
             "description": "A tour of Java programming idioms", "publicationYear": 2018,
             "available": False},
            {"title": "Untitled Notes", "author": "Frank Herbert"},
        ]
        return [BookService.create_book(b) for b in books]

    def test_list_all(self, catalog) -> None:
        assert [b["title"] for b in BookService.list_books()] == [b["title"] for b in catalog]

    def test_filter_genre_and_min_price(self, catalog) -> None:
        page = BookService.search_books(
            {"genre": "Sci-Fi", "minPrice": "10.00"}, PageRequest()
        )
        assert [b["title"] for b in page.items] == ["Dune"]
        assert page.extra["filters"]["genre"] == "Sci-Fi"
        assert page.extra["filters"]["title"] == ""

    def test_filter_substrings_are_case_insensitive(self, catalog) -> None:
        page = BookService.search_books(SearchFilters(author="herbert"), PageRequest())
        assert {b["title"] for b in page.items} == {"Dune", "Untitled Notes"}

    def test_filter_year_range_and_availability(self, catalog) -> None:
        page = BookService.search_books(
            SearchFilters(min_year=2000, max_year=2020, available=True), PageRequest()
        )
        assert [b["title"] for b in page.items] == ["Cheap Space Opera"]

    def test_no_filters_matches_everything(self, catalog) -> None:
        page = BookService.search_books(SearchFilters(), PageRequest(size=100))
        assert page.total == len(catalog)

    def test_max_price_excludes_unpriced(self, catalog) -> None:
        page = BookService.search_books(SearchFilters(max_price=100), PageRequest())
        assert "Untitled Notes" not in {b["title"] for b in page.items}

    def test_filter_sorting(self, catalog) -> None:
        page = BookService.search_books(SearchFilters(genre="sci"), PageRequest(sort_by="price", sort_dir="desc"))
        assert [b["title"] for b in page.items] == ["Dune", "Cheap Space Opera"]

    def test_unknown_sort_field_fails(self, catalog) -> None:
        with pytest.raises(ValidationError) as exc:
            BookService.list_books_page(PageRequest(sort_by="popularity"))
        assert "sortBy" in exc.value.field_errors

    def test_full_text_matches_description(self, catalog) -> None:
        page = BookService.full_text_search("java", PageRequest())
        assert [b["title"] for b in page.items] == ["Effective Coding"]
        assert page.extra["searchTerm"] == "java"

    def test_full_text_matches_author_and_genre(self, catalog) -> None:
        assert BookService.full_text_search("HERBERT", PageRequest()).total == 2
        assert BookService.full_text_search("sci-fi", PageRequest()).total == 2

    def test_full_text_folds_accented_letters(self, app_ctx) -> None:
        BookService.create_book({"title": "Über Alles", "author": "A"})
        BookService.create_book({"title": "Plain", "author": "B", "description": "Notes on ÉTUDES"})

        assert [b["title"] for b in BookService.full_text_search("über", PageRequest()).items] == ["Über Alles"]
        assert [b["title"] for b in BookService.full_text_search("études", PageRequest()).items] == ["Plain"]

    def test_filters_fold_accented_letters(self, app_ctx) -> None:
        BookService.create_book({"title": "Çalıkuşu", "author": "Reşat Nuri", "genre": "Roman"})
        BookService.create_book({"title": "Other", "author": "Someone", "genre": "Roman"})

        page = BookService.search_books({"title": "çalık", "author": "REŞAT"}, PageRequest())
        assert [b["title"] for b in page.items] == ["Çalıkuşu"]

    def test_full_text_wildcards_are_literal(self, app_ctx) -> None:
        BookService.create_book({"title": "100% Pure", "author": "A"})
        BookService.create_book({"title": "Plain", "author": "B"})
        page = BookService.full_text_search("%", PageRequest())
        assert [b["title"] for b in page.items] == ["100% Pure"]

    def test_full_text_requires_term(self, app_ctx) -> None:
        with pytest.raises(ValidationError):
            BookService.full_text_search("  ", PageRequest())

    def test_get_by_author_is_exact(self, catalog) -> None:
        assert len(BookService.get_books_by_author("Frank Herbert")) == 2
        assert BookService.get_books_by_author("Frank") == []

    def test_available_books(self, catalog) -> None:
        page = BookService.available_books(PageRequest())
        assert "Effective Coding" not in {b["title"] for b in page.items}
        assert page.total == 3

    def test_genre_year_and_price_range(self, catalog) -> None:
        assert {b["title"] for b in BookService.books_by_genre("Sci-Fi")} == {"Dune", "Cheap Space Opera"}
        assert [b["title"] for b in BookService.books_by_publication_year(1965)] == ["Dune"]
        in_range = BookService.books_by_price_range(5, 15)
        assert [b["title"] for b in in_range] == ["Cheap Space Opera", "Dune"]

    def test_price_range_must_be_ordered(self, app_ctx) -> None:
        with pytest.raises(ValidationError):
            BookService.books_by_price_range(20, 10)

    def test_top_expensive_and_recent(self, catalog) -> None:
        assert [b["title"] for b in BookService.top_expensive_books()] == [
            "Effective Coding", "Dune", "Cheap Space Opera",
        ]
        assert BookService.recently_added_books()[0]["title"] == "Untitled Notes"

    def test_total_count(self, catalog) -> None:
        assert BookService.total_count() == 4


class TestPaginationOverStore:
    def test_fifteen_books_in_pages_of_five(self, app_ctx) -> None:
        for i in range(1, 16):
            BookService.create_book({"title": f"Book {i:02d}", "author": f"Author {i}"})

        first = BookService.list_books_page(PageRequest(page=0, size=5, sort_by="title"))
        assert first.total == 15
        assert first.total_pages == 3
        assert [b["title"] for b in first.items] == [f"Book {i:02d}" for i in range(1, 6)]

        last = BookService.list_books_page(PageRequest(page=2, size=5, sort_by="title"))
        assert [b["title"] for b in last.items][-1] == "Book 15"
        assert last.has_next is False and last.has_previous is True

    def test_last_page_holds_remainder(self, app_ctx) -> None:
        for i in range(7):
            BookService.create_book({"title": f"T{i}", "author": "A"})
        page = BookService.list_books_page(PageRequest(page=2, size=3))
        assert len(page.items) == 7 - 3 * (page.total_pages - 1)

    def test_page_past_the_end_is_empty(self, app_ctx) -> None:
        BookService.create_book({"title": "Only", "author": "One"})
        page = BookService.list_books_page(PageRequest(page=5, size=10))
        assert page.items == []
        assert page.total == 1


class TestStatistics:
    def test_empty_store(self, app_ctx) -> None:
        stats = BookService.statistics()
        assert stats["totalBooks"] == 0
        assert stats["averagePrice"] == 0
        assert stats["maxPrice"] == 0
        assert stats["minPrice"] == 0
        assert stats["booksByGenre"] == {}
        assert stats["booksInStock"] + stats["booksOutOfStock"] == 0

    def test_aggregates(self, app_ctx) -> None:
        BookService.create_book({"title": "Fiction Book", "author": "Author 1", "genre": "Fiction",
                                 "price": 15.99, "stockQuantity": 3})
        BookService.create_book({"title": "Sci-Fi Book", "author": "Author 2", "genre": "Science Fiction",
                                 "price": 18.99, "stockQuantity": 0, "available": False})
        BookService.create_book({"title": "No Genre", "author": "Author 1"})

        stats = BookService.statistics()

        assert stats["totalBooks"] == 3
        assert stats["availableBooks"] == 2
        assert stats["unavailableBooks"] == 1
        assert stats["booksByGenre"] == {"Fiction": 1, "Science Fiction": 1}
        assert stats["booksByAuthor"] == {"Author 1": 2, "Author 2": 1}
        assert stats["averagePrice"] == pytest.approx(17.49)
        assert stats["maxPrice"] == pytest.approx(18.99)
        assert stats["minPrice"] == pytest.approx(15.99)
        assert stats["booksInStock"] == 1
        assert stats["booksOutOfStock"] == 2
        assert isinstance(stats["timestamp"], int)
        assert stats["generatedAt"]

    def test_partitions_sum_to_total(self, app_ctx) -> None:
        for i in range(5):
            BookService.create_book({"title": f"B{i}", "author": "A", "available": i % 2 == 0,
                                     "stockQuantity": i})
        stats = BookService.statistics()
        assert stats["availableBooks"] + stats["unavailableBooks"] == stats["totalBooks"]
        assert stats["booksInStock"] + stats["booksOutOfStock"] == stats["totalBooks"]


class TestCacheInvalidation:
    def test_get_book_is_cached(self, app_ctx) -> None:
        book = BookService.create_book({"title": "Dune", "author": "Frank Herbert"})
        BookService.get_book(book["id"])

        # cache'i atlayarak doğrudan DB'de değiştir
        db.session.get(Book, book["id"]).title = "Changed Behind The Cache"
        db.session.commit()

        assert BookService.get_book(book["id"])["title"] == "Dune"

    def test_update_evicts_entry_and_lists(self, app_ctx) -> None:
        book = BookService.create_book({"title": "Dune", "author": "Frank Herbert"})
        BookService.get_book(book["id"])
        BookService.list_books()
        BookService.get_books_by_author("Frank Herbert")

        BookService.update_book(book["id"], {"title": "Dune Messiah", "author": "F. Herbert"})

        assert BookService.get_book(book["id"])["title"] == "Dune Messiah"
        assert BookService.list_books()[0]["title"] == "Dune Messiah"
        assert BookService.get_books_by_author("Frank Herbert") == []

    def test_create_and_delete_purge_books_region(self, app_ctx) -> None:
        BookService.list_books()
        assert cache.keys(BOOKS) == {"all_books"}

        book = BookService.create_book({"title": "Dune", "author": "Frank Herbert"})
        assert cache.keys(BOOKS) == set()

        BookService.get_book(book["id"])
        BookService.delete_book(book["id"])
        assert cache.keys(BOOKS) == set()

    def test_statistics_stay_fresh(self, app_ctx) -> None:
        assert BookService.statistics()["totalBooks"] == 0
        assert cache.keys(BOOK_STATS) == {"statistics"}

        book = BookService.create_book({"title": "Dune", "author": "Frank Herbert"})
        assert BookService.statistics()["totalBooks"] == 1

        BookService.update_book(book["id"], {"title": "Dune", "author": "Frank Herbert", "available": False})
        assert BookService.statistics()["availableBooks"] == 0

        BookService.delete_book(book["id"])
        assert BookService.statistics()["totalBooks"] == 0
