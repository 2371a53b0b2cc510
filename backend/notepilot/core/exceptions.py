"""
Custom exception classes for unified error handling.
"""

from fastapi import HTTPException


class AppBaseError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message: str, detail: str | None = None):
        self.message = message
        self.detail = detail
        super().__init__(message)


class EntityNotFoundError(AppBaseError):
    """Raised when a search-based tool finds no row under its status constraint."""
    def __init__(self, kind: str, query: str, status: str | None = None):
        qualifier = f"{status} " if status else ""
        super().__init__(
            message=f'No {qualifier}{kind} found matching "{query}"',
            detail="Try the exact title or other keywords from the item.",
        )
        self.kind = kind
        self.query = query


class ContextAssemblyError(AppBaseError):
    """Raised when any read of the user's context snapshot fails."""
    def __init__(self, original_error: str):
        super().__init__(
            message="Failed to load user context",
            detail=original_error,
        )


class ConnectorUnavailableError(AppBaseError):
    """Raised when a third-party connector cannot supply its tools."""
    def __init__(self, provider: str, reason: str):
        super().__init__(
            message=f"Connector '{provider}' is unavailable",
            detail=reason,
        )


class ModelInvocationError(AppBaseError):
    """Raised when the language model call itself fails."""
    def __init__(self, original_error: str):
        super().__init__(
            message="Failed to process input",
            detail=original_error,
        )


# ── Utility: convert to HTTPException ────────────────────

def app_error_to_http(error: AppBaseError, status_code: int = 400) -> HTTPException:
    """Convert an AppBaseError to an HTTPException with consistent JSON body."""
    return HTTPException(
        status_code=status_code,
        detail={
            "error": error.message,
            "detail": error.detail,
            "type": type(error).__name__,
        },
    )
