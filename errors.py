"""Domain errors. Each carries the HTTP status the API answers with."""


class CallboardError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotAuthorizedError(CallboardError):
    status_code = 403


class NotFoundError(CallboardError):
    status_code = 404


class DuplicateSubmissionError(CallboardError):
    """A commitment or report already exists for the day."""

    status_code = 409


class InvalidTransitionError(CallboardError):
    status_code = 409


class IdentityError(CallboardError):
    """The identity provider rejected a token or an account operation."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code
