from flask import current_app, jsonify


class CatalogError(ValueError):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {"success": False, "message": self.message}


class BookNotFoundError(CatalogError):
    status_code = 404

    def __init__(self, book_id):
        super().__init__(f"Book not found with id: {book_id}")
        self.book_id = book_id


class DuplicateBookError(CatalogError):
    """Create would break the (title, author) or isbn uniqueness rule."""

    status_code = 409


class ValidationError(CatalogError):
    status_code = 400

    def __init__(self, message: str = "Validation failed", field_errors=None):
        super().__init__(message)
        self.field_errors = dict(field_errors or {})

    def to_dict(self):
        body = super().to_dict()
        if self.field_errors:
            body["fieldErrors"] = self.field_errors
        return body


def register_error_handlers(app):
    @app.errorhandler(CatalogError)
    def _catalog_error(e: CatalogError):
        if e.status_code >= 404:
            current_app.logger.warning(f"[errors] {type(e).__name__}: {e.message}")
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(404)
    def _not_found(_e):
        return jsonify({"success": False, "message": "Not found"}), 404

    @app.errorhandler(405)
    def _method_not_allowed(_e):
        return jsonify({"success": False, "message": "Method not allowed"}), 405
