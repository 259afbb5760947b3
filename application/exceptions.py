"""
Application-layer exceptions.

Part of STR-102: Error taxonomy

Core services raise these; the API layer maps ``kind`` onto HTTP status
codes (see api/exception_handlers.py). Repository adapters translate
storage failures into InternalError or one of the Conflict subclasses.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    NOT_FOUND = "NOT_FOUND"
    VALIDATION = "VALIDATION"
    CONFLICT = "CONFLICT"
    FORBIDDEN = "FORBIDDEN"
    UNAUTHORIZED = "UNAUTHORIZED"
    INTERNAL = "INTERNAL"


class ProgramStateError(Exception):
    """Base class for errors raised by the core services."""

    kind: ErrorKind = ErrorKind.INTERNAL
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NotFoundError(ProgramStateError):
    kind = ErrorKind.NOT_FOUND
    code = "NOT_FOUND"

    def __init__(self, resource: str, identifier: Optional[str] = None):
        message = f"{resource} not found"
        if identifier:
            message = f"{resource} not found: {identifier}"
        super().__init__(message, {"resource": resource, "id": identifier})
        self.resource = resource


class ValidationError(ProgramStateError):
    kind = ErrorKind.VALIDATION
    code = "VALIDATION_ERROR"


class NoApplicableProgressionsError(ValidationError):
    """No enabled progression config matched the request."""

    code = "NO_APPLICABLE_PROGRESSIONS"

    def __init__(self, message: str = "no applicable progressions found"):
        super().__init__(message)


class NotVariableSchemeError(ValidationError):
    """Next-set calculation requested for a fixed set scheme."""

    code = "NOT_VARIABLE_SCHEME"

    def __init__(self, scheme_type: str):
        super().__init__(
            f"prescription does not use a variable set scheme (got {scheme_type or 'none'})",
            {"scheme_type": scheme_type},
        )


class NoSetsLoggedError(ValidationError):
    code = "NO_SETS_LOGGED"

    def __init__(self):
        super().__init__("no sets logged yet - log the first set before requesting next set")


class ProgressionConfigurationError(ValidationError):
    """A progression definition is unknown or its parameters are invalid."""

    code = "INVALID_PROGRESSION_CONFIGURATION"


class SetSchemeConfigurationError(ValidationError):
    code = "INVALID_SET_SCHEME"


class ConflictError(ProgramStateError):
    kind = ErrorKind.CONFLICT
    code = "CONFLICT"

    def __init__(self, message: str = "resource already exists", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class DuplicateLiftMaxError(ConflictError):
    """A lift max already exists for (user, lift, type, effective_date)."""

    code = "DUPLICATE_LIFT_MAX"

    def __init__(self, message: str = "a max already exists for this lift, type and effective date"):
        super().__init__(message)


class DuplicateProgressionConfigError(ConflictError):
    code = "DUPLICATE_PROGRESSION_CONFIG"

    def __init__(self, message: str = "progression is already configured for this program and lift"):
        super().__init__(message)


class DuplicateProgressionLogError(ConflictError):
    """The progression was already recorded for (user, lift, position)."""

    code = "DUPLICATE_PROGRESSION_LOG"

    def __init__(self, message: str = "progression already applied for this lift and position"):
        super().__init__(message)


class AlreadyEnrolledError(ConflictError):
    code = "ALREADY_ENROLLED"

    def __init__(self, user_id: str):
        super().__init__(f"user {user_id} is already enrolled in a program", {"user_id": user_id})


class StalePositionError(ConflictError):
    """The position changed between read and write."""

    code = "STALE_POSITION"

    def __init__(self, user_id: str, program_id: str):
        super().__init__(
            "program position was modified concurrently, retry the request",
            {"user_id": user_id, "program_id": program_id},
        )


class ForbiddenError(ProgramStateError):
    kind = ErrorKind.FORBIDDEN
    code = "FORBIDDEN"


class UnauthorizedError(ProgramStateError):
    kind = ErrorKind.UNAUTHORIZED
    code = "UNAUTHORIZED"

    def __init__(self, message: str = "authentication required"):
        super().__init__(message)


class InternalError(ProgramStateError):
    kind = ErrorKind.INTERNAL
    code = "INTERNAL_ERROR"
