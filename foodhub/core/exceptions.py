"""
API Error Taxonomy

Every failure a handler reports is one of these HTTPException subclasses.
They are rendered by the application exception handlers as
``{"message": detail}`` with the status code of their category.
"""

from fastapi import HTTPException, status


class AuthenticationError(HTTPException):
    """Missing, invalid or expired bearer credential."""

    def __init__(self, message: str = "Not authorized") -> None:
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=message)


class AuthorizationError(HTTPException):
    """Role or ownership mismatch."""

    def __init__(self, message: str = "Access denied") -> None:
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=message)


class ValidationFailed(HTTPException):
    """Missing, malformed or out-of-range input."""

    def __init__(self, message: str) -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


class NotFoundError(HTTPException):
    """Referenced entity does not exist."""

    def __init__(self, message: str) -> None:
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=message)


class ConflictError(HTTPException):
    """Operation not allowed in the current state (duplicates, terminal orders)."""

    def __init__(self, message: str) -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=message)
