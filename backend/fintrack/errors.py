"""Exception taxonomy raised by the service layer and mapped to HTTP codes in main.py."""


class FintrackError(Exception):
    """Base exception for fintrack errors"""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInputError(FintrackError):
    """A required field is missing or a value violates a constraint"""

    status_code = 400


class NotFoundError(FintrackError):
    """A requested entity does not exist"""

    status_code = 404


class ConflictError(FintrackError):
    """Duplicate name, or dependants block a delete"""

    status_code = 409


class DataIntegrityError(FintrackError):
    """A stored foreign key points at a missing row"""

    status_code = 500


class StoreError(FintrackError):
    """The underlying store raised an error"""

    status_code = 500
