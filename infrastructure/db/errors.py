"""
Translation of Supabase/PostgREST failures into application errors.

Part of STR-102: Error taxonomy
"""
from typing import Type

from postgrest.exceptions import APIError

from application.exceptions import ConflictError, InternalError, ProgramStateError

# PostgreSQL unique_violation
UNIQUE_VIOLATION = "23505"


def is_unique_violation(error: Exception) -> bool:
    return isinstance(error, APIError) and error.code == UNIQUE_VIOLATION


def translate_error(
    error: Exception,
    operation: str,
    conflict: Type[ConflictError] = ConflictError,
) -> ProgramStateError:
    """
    Map a storage exception onto the application taxonomy.

    Args:
        error: Exception raised by the Supabase client
        operation: Short description used in the message
        conflict: Conflict subclass to raise for unique violations

    Returns:
        The exception to raise (the caller raises it ``from error``)
    """
    if isinstance(error, ProgramStateError):
        return error
    if is_unique_violation(error):
        return conflict()
    return InternalError(f"{operation} failed: {error}")
