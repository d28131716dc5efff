"""
ORM model registry.

Importing this package registers every table with `Base.metadata`, which is
what Alembic's autogenerate and the test-suite's create_all() rely on.
"""

from app.models.attachment import Attachment
from app.models.enums import (
    MaterialStatus,
    NotificationEntityModel,
    ParentModel,
    TaskPriority,
    TaskStatus,
    TaskType,
)
from app.models.material import Material
from app.models.notification import Notification
from app.models.task import AssignedTask, ProjectTask, RoutineTask, RoutineTaskMaterial, Task
from app.models.task_activity import TaskActivity, TaskActivityMaterial
from app.models.task_comment import TaskComment

__all__ = [
    "AssignedTask",
    "Attachment",
    "Material",
    "MaterialStatus",
    "Notification",
    "NotificationEntityModel",
    "ParentModel",
    "ProjectTask",
    "RoutineTask",
    "RoutineTaskMaterial",
    "Task",
    "TaskActivity",
    "TaskActivityMaterial",
    "TaskComment",
    "TaskPriority",
    "TaskStatus",
    "TaskType",
]
