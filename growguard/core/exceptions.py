"""
Domain errors.
Each carries an error kind and the HTTP status the API answers with.
"""


class GrowGuardError(Exception):
    """Base error for the application."""
    kind = 'ERROR'
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(GrowGuardError):
    """Requested entity does not exist."""
    kind = 'NOT_FOUND'
    status_code = 404


class InvalidInputError(GrowGuardError):
    """Input cannot be processed (e.g. non-positive average cost, overselling)."""
    kind = 'INVALID_INPUT'
    status_code = 422


class DivisionByZeroError(InvalidInputError):
    """A ratio would divide by zero (e.g. a position with zero average cost)."""
    kind = 'DIVISION_BY_ZERO'
