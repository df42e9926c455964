"""Catalog error taxonomy.

Rule violations are returned as data by the evaluator; these exceptions are
raised by the orchestration layer and the store adapters. Each class carries
the HTTP status and machine-readable code the API reports for it.
"""


class CatalogError(Exception):
    """Base class for all catalog errors."""

    status_code = 500
    error_code = "INTERNAL_SERVER_ERROR"

    def __init__(self, message: str, details: list[str] | None = None):
        super().__init__(message)
        self.message = message
        self.details = list(details or [])


class ValidationFailure(CatalogError):
    """One or more rule violations. Nothing was persisted."""

    status_code = 400
    error_code = "VALIDATION_ERROR"

    def __init__(self, errors: list[str] | str):
        if isinstance(errors, str):
            errors = [errors]
        super().__init__("Validation failed", errors)

    @property
    def errors(self) -> list[str]:
        return self.details


class ConflictFailure(ValidationFailure):
    """The store's uniqueness constraint rejected the ISBN at commit time."""

    status_code = 409
    error_code = "ISBN_CONFLICT"

    def __init__(self, isbn: str):
        super().__init__(f"A book with ISBN '{isbn}' already exists in the system.")
        self.message = "Conflict"
        self.isbn = isbn


class NotFound(CatalogError):
    """No catalog item has the requested id."""

    status_code = 404
    error_code = "BOOK_NOT_FOUND"

    def __init__(self, item_id: str):
        super().__init__(f"Book with ID {item_id} was not found")
        self.item_id = item_id


class InfrastructureFailure(CatalogError):
    """The store could not serve a required read or write."""

    status_code = 503
    error_code = "STORE_UNAVAILABLE"


class StoreError(InfrastructureFailure):
    """Underlying I/O failure inside a store adapter."""


class EvaluationInterrupted(InfrastructureFailure):
    """Evaluation was cancelled while waiting on store reads."""

    error_code = "EVALUATION_INTERRUPTED"

    def __init__(self, message: str = "Evaluation was interrupted"):
        super().__init__(message)
