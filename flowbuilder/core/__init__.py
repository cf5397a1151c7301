"""Core flow builder engine components."""

from .exceptions import (
    WorkflowEngineError,
    WorkflowValidationError,
    WorkflowNotFoundError,
    WorkflowExecutionError,
    DocumentRetrievalError,
    ModelProviderError,
    StorageError,
    ConfigurationError,
)
from .logging import setup_logging, get_logger, logging_context
from .context import ExecutionContext
from .graph_orderer import GraphOrderer
from .components import build_component_catalog
from .dispatcher import StepDispatcher
from .execution_engine import ExecutionEngine
from .workflow_manager import WorkflowManager
from .session_manager import SessionManager

__all__ = [
    "WorkflowEngineError",
    "WorkflowValidationError",
    "WorkflowNotFoundError",
    "WorkflowExecutionError",
    "DocumentRetrievalError",
    "ModelProviderError",
    "StorageError",
    "ConfigurationError",
    "setup_logging",
    "get_logger",
    "logging_context",
    "ExecutionContext",
    "GraphOrderer",
    "build_component_catalog",
    "StepDispatcher",
    "ExecutionEngine",
    "WorkflowManager",
    "SessionManager",
]
