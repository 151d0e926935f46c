"""Domain errors raised by the stores and the reservation engine."""


class DomainError(Exception):
    status_code = 400

    def __init__(self, message: str, status_code: int = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class NotFoundError(DomainError):
    status_code = 404


class ValidationError(DomainError):
    status_code = 400


class AuthorizationError(DomainError):
    status_code = 403


class ConflictError(DomainError):
    status_code = 409


class CapacityConflict(ConflictError):
    """Not enough tickets, or a seat label is already taken."""


class ConcurrentUpdateError(CapacityConflict):
    """A conditional write found the row changed since it was read."""


class StorageFailure(DomainError):
    status_code = 500
