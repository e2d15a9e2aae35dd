"""Service-level errors. main.py maps them to HTTP responses."""


class ServiceError(Exception):
    status_code = 500

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class NotFound(ServiceError):
    status_code = 404


class Forbidden(ServiceError):
    status_code = 403


class ValidationError(ServiceError):
    status_code = 400


class IntegrityError(ServiceError):
    """Stored references that should always resolve did not."""
    status_code = 500
