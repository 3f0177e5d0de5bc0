"""Armory-Engine exception hierarchy.

Workflow steps carry these as values inside ``Err`` results; they are only
raised when a caller unwraps a failed result.
"""


class ArmoryError(Exception):
    """Base exception for all Armory errors."""

    status_code = 500

    def __init__(self, message: str = "", code: str = "ARMORY_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class ValidationError(ArmoryError):
    """Malformed or missing input. Never commits."""

    status_code = 422

    def __init__(self, message: str = "Invalid input"):
        super().__init__(message, code="VALIDATION_ERROR")


class NotFoundError(ArmoryError):
    """A referenced entity does not exist."""

    status_code = 404

    def __init__(self, message: str = "Not found"):
        super().__init__(message, code="NOT_FOUND")


class InvalidStateError(ArmoryError):
    """An operation was attempted outside its allowed state-machine edge."""

    status_code = 409

    def __init__(self, message: str = "Invalid state transition"):
        super().__init__(message, code="INVALID_STATE")


class ConflictError(ArmoryError):
    """Uniqueness violation, e.g. a duplicate serial number."""

    status_code = 409

    def __init__(self, message: str = "Conflicting record exists"):
        super().__init__(message, code="CONFLICT")


class PermissionDeniedError(ArmoryError):
    """The actor is not allowed to perform the operation."""

    status_code = 403

    def __init__(self, message: str = "Permission denied"):
        super().__init__(message, code="PERMISSION_DENIED")


class StorageUnavailableError(ArmoryError):
    """The transaction could not be committed."""

    status_code = 503

    def __init__(self, message: str = "Storage unavailable"):
        super().__init__(message, code="STORAGE_UNAVAILABLE")
