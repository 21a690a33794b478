"""Operation bounded context: models, ports, actions and the merge engine."""

from .actions import Action, action, as_action
from .models import (
    ActionEnvelope,
    MergeableItem,
    Notice,
    OperationConfig,
    OperationServices,
    OperationState,
    Task,
)

__all__ = [
    "Action",
    "ActionEnvelope",
    "MergeableItem",
    "Notice",
    "OperationConfig",
    "OperationServices",
    "OperationState",
    "Task",
    "action",
    "as_action",
]
