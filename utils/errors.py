# utils/errors.py
"""Error taxonomy shared by the storage layer, services and routes.

Every error that reaches a caller is a ServiceError carrying the HTTP status
it maps to. StorageError never exposes driver messages to the caller; the
original exception is chained and logged server-side instead.
"""


class ServiceError(Exception):
    status_code = 500
    public_message = "Internal server error"

    def __init__(self, message=None, details=None):
        super().__init__(message or self.public_message)
        self.message = message or self.public_message
        self.details = details

    def to_dict(self):
        body = {"success": False, "error": self.public_error()}
        if self.details:
            body["details"] = self.details
        return body

    def public_error(self):
        return self.message


class BadRequest(ServiceError):
    status_code = 400
    public_message = "Bad request"


class NotFound(ServiceError):
    status_code = 404
    public_message = "Not found"


class RegistrationNotFound(NotFound):
    public_message = "Registration not found"


class Conflict(ServiceError):
    status_code = 409
    public_message = "Conflict"


class StorageError(ServiceError):
    """Connectivity, timeout or unclassified constraint failure."""

    status_code = 500

    def __init__(self, message=None, retryable=False):
        super().__init__(message)
        self.retryable = retryable

    def public_error(self):
        return self.public_message


class ServiceUnavailable(ServiceError):
    status_code = 503
    public_message = "Service unavailable"


class DuplicateKeyError(Exception):
    """A generated serial collided with an existing row."""

    def __init__(self, serial):
        super().__init__(f"Serial already exists: {serial}")
        self.serial = serial
