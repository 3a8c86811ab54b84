class CarpoolError(Exception):
    """Base class for rule violations raised by the domain and services."""

    status_code = 500

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationError(CarpoolError):
    status_code = 400


class Forbidden(CarpoolError):
    status_code = 403


class NotFound(CarpoolError):
    status_code = 404


class Conflict(CarpoolError):
    status_code = 409


class PolicyError(CarpoolError):
    status_code = 422
