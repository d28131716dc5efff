"""
TaskManager Backend — Custom Exception Hierarchy
=================================================

What:  Application-specific exceptions for every failure a unit of work can hit.
Why:   Any exception raised inside a unit of work aborts the whole transaction;
       typed exceptions let the HTTP boundary map each one to a precise status
       code and a machine-readable error code.
How:   Each exception class carries a message, an optional context dict, an
       `error_code` and a `status_code`. Global exception handlers (registered
       in main.py) turn them into structured JSON error responses.
Who:   Raised by services; caught by the transaction coordinator (abort) and
       then by the global handlers.

Exception Hierarchy:
    TaskManagerError (base)
    ├── ValidationError               → 400 (bad or out-of-scope references)
    ├── NotFoundError                 → 404
    ├── ConflictError                 → 409
    │   ├── InsufficientStockError    → 409 insufficient_stock
    │   ├── InactiveMaterialError     → 409 inactive_material
    │   └── ParentDeletedError        → 409 parent_deleted
    └── DatabaseError                 → 500
"""

from typing import Any, Dict, Optional


class TaskManagerError(Exception):
    """
    Base exception for all TaskManager application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged, returned only as `details`
                  for client-correctable errors)
    """

    error_code = "internal_error"
    status_code = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(TaskManagerError):
    """
    Raised when a referenced entity or value is malformed or out of scope.

    Always raised before any mutation is issued, e.g. an unknown material
    in a delta set, a deleted material, or a comment reply that would
    exceed the maximum depth.
    """

    error_code = "validation_error"
    status_code = 400

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


class NotFoundError(TaskManagerError):
    """
    Raised when a requested entity does not exist in the caller's scope.

    Entities outside the caller's organization/department are reported as
    not found rather than forbidden, so scope boundaries do not leak.
    """

    error_code = "not_found"
    status_code = 404

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class ConflictError(TaskManagerError):
    """
    Raised when the request is well-formed but the current state forbids it.
    """

    error_code = "conflict"
    status_code = 409

    def __init__(
        self,
        message: str = "Resource conflict",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class InsufficientStockError(ConflictError):
    """
    Raised when a conditional stock decrement matched no material.

    Distinct from a generic conflict so callers can tell the user exactly
    which material ran out.
    """

    error_code = "insufficient_stock"

    def __init__(
        self,
        message: str = "Insufficient stock",
        material_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if material_id:
            ctx["material_id"] = material_id
        super().__init__(message=message, context=ctx)
        self.material_id = material_id


class InactiveMaterialError(ConflictError):
    """Raised when new consumption targets a material that is not ACTIVE."""

    error_code = "inactive_material"

    def __init__(
        self,
        message: str = "Cannot use inactive materials. Set material status to ACTIVE first.",
        material_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if material_id:
            ctx["material_id"] = material_id
        super().__init__(message=message, context=ctx)
        self.material_id = material_id


class ParentDeletedError(ConflictError):
    """
    Raised when restoring a child whose ancestor is still deleted, or when
    mutating the children of a deleted parent. Restores must run top-down.
    """

    error_code = "parent_deleted"

    def __init__(
        self,
        parent_model: str,
        parent_id: Optional[str] = None,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["parent_model"] = parent_model
        if parent_id:
            ctx["parent_id"] = parent_id
        super().__init__(
            message=message or f"Parent {parent_model} is deleted. Restore it first.",
            context=ctx,
        )
        self.parent_model = parent_model


class DatabaseError(TaskManagerError):
    """
    Raised when database operations fail unexpectedly.

    Security Note:
        The message returned to the client is always generic. Driver error
        text, SQL and constraint names are logged server-side only.
    """

    error_code = "server_error"

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
