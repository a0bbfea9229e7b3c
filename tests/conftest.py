"""Shared pytest fixtures: an app on in-memory SQLite, its client, and a book factory."""

import pytest

from book_catalog import create_app
from book_catalog.config import TestConfig
from book_catalog.services.book_service import BookService


@pytest.fixture
def app():
    """A fresh application with an empty in-memory database."""
    return create_app(TestConfig)


@pytest.fixture
def app_ctx(app):
    """Push an application context for service/repository level tests."""
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_book(app):
    """Create books through the service, returning their serialized form."""

    def _make(title="Test Book", author="Test Author", **fields):
        data = {"title": title, "author": author, "available": True, "stockQuantity": 10}
        data.update(fields)
        with app.app_context():
            return BookService.create_book(data)

    return _make
