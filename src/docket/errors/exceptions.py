"""Exception hierarchy for the to-do engine and its HTTP surface."""


class DocketError(Exception):
    """Base exception for Docket."""

    def __init__(self, code: str, message: str, details=None, status_code: int = 500):
        self.code = code
        self.message = message
        self.details = details
        self.status_code = status_code
        super().__init__(message)


class ValidationError(DocketError):
    """Invalid input: unknown action kind, missing target reference, bad request body."""

    def __init__(self, message: str, details=None):
        super().__init__("VALIDATION_ERROR", message, details, status_code=400)


class NotFoundError(DocketError):
    """Resource not found."""

    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            "NOT_FOUND",
            f"{resource} '{resource_id}' not found",
            status_code=404,
        )


class AuthenticationError(DocketError):
    """No acting user could be established for the request."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__("AUTHENTICATION_ERROR", message, status_code=401)


class ConflictError(DocketError):
    """Resource state conflict, e.g. restoring a to-do that is still pending."""

    def __init__(self, message: str):
        super().__init__("CONFLICT", message, status_code=409)
