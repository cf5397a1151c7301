"""Database models and storage layer."""

from .database import (
    Base,
    get_database_engine,
    get_session_factory,
    reset_database_engine,
    create_tables,
    drop_tables,
)
from .models import (
    WorkflowModel,
    DocumentModel,
    ChatSessionModel,
    ChatMessageModel,
    ExecutionLogModel,
)

__all__ = [
    "Base",
    "get_database_engine",
    "get_session_factory",
    "reset_database_engine",
    "create_tables",
    "drop_tables",
    "WorkflowModel",
    "DocumentModel",
    "ChatSessionModel",
    "ChatMessageModel",
    "ExecutionLogModel",
]
