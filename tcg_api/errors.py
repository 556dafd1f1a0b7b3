"""Exception hierarchy for the card catalog service.

Every error the service raises on purpose derives from ``TcgApiError`` and
carries the HTTP status it maps to, so the application can render all of
them through one handler as ``{"error": message}``.
"""


class TcgApiError(Exception):
    """Base exception for all catalog service errors."""

    status_code = 500


class FilterValidationError(TcgApiError):
    """A search parameter holds an unknown type/realm or an out-of-range level."""

    status_code = 400

    def __init__(self, message: str, token: str = ""):
        super().__init__(message)
        self.token = token


class StorageError(TcgApiError):
    """The underlying data store failed (connectivity, malformed query)."""

    status_code = 500

    def __init__(self, original: str):
        super().__init__(f"Storage failure: {original}")
        self.original = original


class AuthorizationError(TcgApiError):
    """Missing or invalid bearer token."""

    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class ImportDataError(TcgApiError):
    """A catalog document or dataset file cannot be imported."""

    status_code = 400
