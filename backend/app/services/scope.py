"""
Tenant scoping helpers.

Every read and write in the core is filtered by organization AND department.
Cascades never cross that boundary, even when a parent/child edge would.
"""

import uuid
from dataclasses import dataclass
from typing import Any, Union

from app.exceptions import ValidationError


def parse_id(value: Union[str, uuid.UUID], field: str = "id") -> uuid.UUID:
    """Normalize a UUID given as string or UUID; anything else is a ValidationError."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        raise ValidationError(f"{field} '{value}' is not a valid identifier", field=field)


@dataclass(frozen=True)
class TenantScope:
    organization_id: uuid.UUID
    department_id: uuid.UUID

    def as_context(self) -> dict:
        return {
            "organization_id": str(self.organization_id),
            "department_id": str(self.department_id),
        }


def scoped(stmt: Any, model: Any, scope: TenantScope) -> Any:
    """Add the organization + department predicates for `model` to a select/update."""
    return stmt.where(
        model.organization_id == scope.organization_id,
        model.department_id == scope.department_id,
    )
