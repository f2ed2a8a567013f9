"""
Error tiers shared by the services.

Routes translate these into HTTP responses; see main.py.
"""


class SoilQError(Exception):
    status_code = 500
    kind = "internal"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SoilQError):
    """Client sent something malformed: missing fields, empty item list, bad id."""
    status_code = 400
    kind = "validation"


class NotFoundError(SoilQError):
    status_code = 404
    kind = "not_found"


class BusinessRuleError(SoilQError):
    """A well-formed request that the domain rules refuse."""
    status_code = 400
    kind = "business"
