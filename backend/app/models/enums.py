"""
Enumerations shared by the ORM models and the services.

All are `str` enums persisted as short VARCHAR columns (not database
enums), so adding a value never needs a type migration.
"""

import enum


class ParentModel(str, enum.Enum):
    """Discriminator for polymorphic `parent_model` + `parent_id` references."""

    TASK = "Task"
    TASK_ACTIVITY = "TaskActivity"
    TASK_COMMENT = "TaskComment"


class TaskType(str, enum.Enum):
    PROJECT = "ProjectTask"
    ASSIGNED = "AssignedTask"
    ROUTINE = "RoutineTask"


class TaskStatus(str, enum.Enum):
    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"


class TaskPriority(str, enum.Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class MaterialStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class NotificationEntityModel(str, enum.Enum):
    """Entities a notification may point at via `entity_model` + `entity_id`."""

    TASK = "Task"
    TASK_ACTIVITY = "TaskActivity"
    TASK_COMMENT = "TaskComment"
    ATTACHMENT = "Attachment"
