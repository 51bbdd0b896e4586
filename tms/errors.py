"""Domain errors raised by services and mapped to HTTP responses in main."""


class ServiceError(Exception):
    """Business-rule violation with the HTTP status it should surface as."""

    status_code = 400

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class NotFoundError(ServiceError):
    status_code = 404


class ConflictError(ServiceError):
    status_code = 400
