class FinanceError(Exception):
    """Base error carrying the HTTP status code the API answers with."""
    status_code = 400

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class ValidationError(FinanceError):
    status_code = 400


class AuthError(FinanceError):
    status_code = 401


class NotFoundError(FinanceError):
    status_code = 404


class UnexpectedError(FinanceError):
    status_code = 500
