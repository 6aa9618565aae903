"""
SchoolDesk Backend — Custom Exception Hierarchy
=================================================

What:  Application-specific exceptions for every failure the API reports.
How:   Each exception carries a user-facing message and an optional context
       dict. Global handlers (registered in main.py) map them to HTTP status
       codes and a consistent JSON body. Context is logged, never returned.
Who:   Raised by the authorization layer and services; caught by main.py.

Exception Hierarchy:
    SchoolDeskError (base)
    ├── ValidationError       → 400 Bad Request (client can fix)
    ├── AuthenticationError   → 401 Unauthorized (no or bad session token)
    ├── AuthorizationError    → 403 Forbidden (role or school scope)
    ├── NotFoundError         → 404 Not Found (absent or outside partition)
    ├── ConflictError         → 500 (concurrent write broke an invariant)
    └── UnexpectedError       → 500 (store or transport failure)

Propagation:
    Validation and authorization failures are raised before any write is
    issued. Anything raised after a write makes get_db_session roll back.
"""

from typing import Any, Dict, Optional


class SchoolDeskError(Exception):
    """
    Base exception for all SchoolDesk application errors.

    Attributes:
        message:  User-facing error description (safe to return)
        context:  Additional debug info (logged but NOT returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(SchoolDeskError):
    """
    Raised when client input fails a business rule.

    When:    start date not before end date, unknown term name, empty id list.
    HTTP:    400 Bad Request

    Pydantic shape errors are mapped to the same 400 response by main.py,
    so clients only ever see one validation status code.
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class AuthenticationError(SchoolDeskError):
    """No principal could be resolved: missing, expired or forged token. HTTP 401."""

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class AuthorizationError(SchoolDeskError):
    """
    The principal is known but may not perform the operation.

    When:    Role not in the allowed set, or the target school lies outside
             the principal's school scope.
    HTTP:    403 Forbidden
    """

    def __init__(
        self,
        message: str = "Access denied",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(SchoolDeskError):
    """
    Raised when a requested resource does not exist in the caller's partition.

    SQLAlchemy returns None for missing rows; services convert that into this
    exception so routes stay free of status-code logic.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        if message is None:
            message = f"The requested {resource} was not found"
            if resource_id:
                message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class ConflictError(SchoolDeskError):
    """
    Raised when the store rejects a write because a concurrent transaction
    already changed the same partition (e.g. two Active terms at commit).

    HTTP:    500, with a retry hint. The transaction is rolled back in full.
    """

    def __init__(
        self,
        message: str = "The record was changed by another request. Please retry.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class UnexpectedError(SchoolDeskError):
    """
    Raised when a database or transport operation fails unexpectedly.

    Security Note:
        The client always receives a generic message. SQL text, constraint
        names and driver errors stay in the server log.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
