"""opcontext — request-scoped unit of work with deduplicated side effects."""

from .domain.common.errors import (
    CollaboratorError,
    ConfigurationError,
    InvalidTransitionError,
    OperationError,
    ProtocolError,
)
from .domain.common.uow import Dao, Outcome
from .domain.operation import (
    Action,
    Notice,
    OperationConfig,
    OperationServices,
    OperationState,
    Task,
    action,
)
from .domain.operation.ports import Cache, Dispatcher, Notifier
from .use_cases import common_actions as actions
from .use_cases.executor import Executor
from .use_cases.operation import Operation

__all__ = [
    "Action",
    "Cache",
    "CollaboratorError",
    "ConfigurationError",
    "Dao",
    "Dispatcher",
    "Executor",
    "InvalidTransitionError",
    "Notice",
    "Notifier",
    "Operation",
    "OperationConfig",
    "OperationError",
    "OperationServices",
    "OperationState",
    "Outcome",
    "ProtocolError",
    "Task",
    "action",
    "actions",
]
