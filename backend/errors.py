"""Application errors carried from the services layer up to the HTTP envelope."""


class LorelineError(Exception):
    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(LorelineError):
    status_code = 404
    code = "NOT_FOUND"


class InvalidRequestError(LorelineError):
    status_code = 400
    code = "INVALID_REQUEST"


class ProjectBusyError(LorelineError):
    """Another rename is still holding the project's lock."""

    status_code = 409
    code = "PROJECT_BUSY"


class PersistenceError(LorelineError):
    """A row write failed; the surrounding transaction was rolled back."""
