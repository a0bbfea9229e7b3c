# book_catalog/controllers/book_controller.py

from flask import Blueprint, current_app, jsonify, request

from book_catalog.schemas.book import (
    PageParams,
    PriceRangeParams,
    SearchFilters,
    TextSearchParams,
    parse,
)
from book_catalog.services.book_service import BookService

book_bp = Blueprint("books", __name__)


def _query_args():
    return request.args.to_dict()


def _page_request(default_sort: str = "id"):
    args = _query_args()
    args.setdefault("size", current_app.config.get("DEFAULT_PAGE_SIZE", 10))
    args.setdefault("sortBy", default_sort)
    return parse(PageParams, args).to_page_request()


def _page_response(page):
    return jsonify({"success": True, **page.to_dict()})


@book_bp.post("")
def create_book():
    book = BookService.create_book(request.get_json(silent=True))
    current_app.logger.info(f"[books] Created book: {book['title']} (id={book['id']})")
    return jsonify({"success": True, "data": book}), 201


@book_bp.get("")
def list_books():
    current_app.logger.info("[books] Fetching all books")
    return jsonify({"success": True, "data": BookService.list_books()})


@book_bp.get("/pageable")
def list_books_pageable():
    page_request = _page_request()
    current_app.logger.info(
        f"[books] Fetching books with pagination - page: {page_request.page}, size: {page_request.size}, "
        f"sortBy: {page_request.sort_by}, sortDir: {page_request.sort_dir}"
    )
    return _page_response(BookService.list_books_page(page_request))


@book_bp.get("/search")
def search_books():
    current_app.logger.info("[books] Advanced search with filters")
    filters = parse(SearchFilters, _query_args())
    page = BookService.search_books(filters, _page_request())
    return _page_response(page)


@book_bp.get("/search/text")
def full_text_search():
    params = parse(TextSearchParams, _query_args())
    current_app.logger.info(f"[books] Full-text search for: {params.q}")
    page = BookService.full_text_search(params.q, _page_request())
    return _page_response(page)


@book_bp.get("/<int:book_id>")
def get_book(book_id: int):
    current_app.logger.info(f"[books] Fetching book with id: {book_id}")
    return jsonify({"success": True, "data": BookService.get_book(book_id)})


@book_bp.get("/author/<author>")
def get_books_by_author(author: str):
    current_app.logger.info(f"[books] Fetching books by author: {author}")
    return jsonify({"success": True, "data": BookService.get_books_by_author(author)})


@book_bp.get("/genre/<genre>")
def get_books_by_genre(genre: str):
    return jsonify({"success": True, "data": BookService.books_by_genre(genre)})


@book_bp.get("/price-range")
def get_books_by_price_range():
    params = parse(PriceRangeParams, _query_args())
    books = BookService.books_by_price_range(params.min_price, params.max_price)
    return jsonify({"success": True, "data": books})


@book_bp.get("/year/<int:year>")
def get_books_by_year(year: int):
    return jsonify({"success": True, "data": BookService.books_by_publication_year(year)})


@book_bp.get("/top-expensive")
def top_expensive_books():
    return jsonify({"success": True, "data": BookService.top_expensive_books()})


@book_bp.get("/recent")
def recently_added_books():
    return jsonify({"success": True, "data": BookService.recently_added_books()})


@book_bp.get("/count")
def count_books():
    return jsonify({"success": True, "count": BookService.total_count()})


@book_bp.put("/<int:book_id>")
def update_book(book_id: int):
    current_app.logger.info(f"[books] Updating book with id: {book_id}")
    book = BookService.update_book(book_id, request.get_json(silent=True))
    return jsonify({"success": True, "data": book})


@book_bp.delete("/<int:book_id>")
def delete_book(book_id: int):
    current_app.logger.info(f"[books] Deleting book with id: {book_id}")
    BookService.delete_book(book_id)
    return jsonify({"success": True, "message": "Book deleted successfully", "id": str(book_id)})


@book_bp.get("/stats")
def book_stats():
    current_app.logger.info("[books] Fetching book statistics")
    return jsonify({"success": True, **BookService.statistics()})


@book_bp.get("/exists/<int:book_id>")
def book_exists(book_id: int):
    current_app.logger.info(f"[books] Checking if book exists with id: {book_id}")
    return jsonify({"success": True, "exists": BookService.exists(book_id)})


@book_bp.get("/available")
def available_books():
    current_app.logger.info("[books] Fetching available books")
    return _page_response(BookService.available_books(_page_request()))
