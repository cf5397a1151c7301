"""Exception hierarchy of the flow builder service.

Every error carries a machine-readable code, a severity, a category, free-form
``details`` and identifying ``context`` (workflow, session, provider...), so API
responses and structured logs can report it without parsing the message.
"""

from datetime import datetime
from typing import Optional, Dict, Any, List
from enum import Enum


class ErrorSeverity(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    VALIDATION = "validation"
    EXECUTION = "execution"
    STORAGE = "storage"
    PROVIDER = "provider"
    CONFIGURATION = "configuration"


class WorkflowEngineError(Exception):
    """Base class of all flow builder errors.

    Keyword arguments other than ``error_code`` and ``details`` become context
    entries; ``None`` values are dropped, so callers can pass optional
    identifiers unconditionally.
    """

    severity = ErrorSeverity.MEDIUM
    category = ErrorCategory.EXECUTION

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        **context: Any
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or type(self).__name__
        self.details: Dict[str, Any] = dict(details or {})
        self.context: Dict[str, Any] = {key: value for key, value in context.items() if value is not None}
        self.timestamp = datetime.utcnow()

    def to_dict(self) -> Dict[str, Any]:
        """Flat representation for structured logs."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "severity": self.severity.value,
            "category": self.category.value,
            "details": self.details,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "exception_type": type(self).__name__
        }

    def add_details(self, **kwargs):
        self.details.update(kwargs)
        return self


class WorkflowValidationError(WorkflowEngineError):
    """A workflow definition cannot be stored. Context: ``workflow_name``."""

    category = ErrorCategory.VALIDATION

    def __init__(self, message: str, validation_errors: Optional[List[str]] = None, **context):
        super().__init__(message, **context)
        self.validation_errors = list(validation_errors or [])
        if self.validation_errors:
            self.add_details(validation_errors=self.validation_errors)


class WorkflowNotFoundError(WorkflowEngineError):
    """A workflow, session or other stored record does not exist. Context: ``resource``, ``resource_id``."""

    severity = ErrorSeverity.LOW
    category = ErrorCategory.STORAGE


class WorkflowExecutionError(WorkflowEngineError):
    """A run aborted outside the component handlers.

    ``trace`` holds the steps recorded before the fault. Context:
    ``workflow_id``, ``session_id``.
    """

    severity = ErrorSeverity.HIGH

    def __init__(self, message: str, trace: Optional[List[Any]] = None, **context):
        super().__init__(message, **context)
        self.trace = list(trace or [])
        self.add_details(completed_steps=len(self.trace))


class DocumentRetrievalError(WorkflowEngineError):
    """Knowledge base documents cannot be loaded. Context: ``workflow_id``."""

    category = ErrorCategory.STORAGE


class ModelProviderError(WorkflowEngineError):
    """A language model provider cannot serve a call. Context: ``provider``, ``model``."""

    category = ErrorCategory.PROVIDER


class StorageError(WorkflowEngineError):
    """A database operation failed. Context: ``operation``, ``table``."""

    severity = ErrorSeverity.HIGH
    category = ErrorCategory.STORAGE


class ConfigurationError(WorkflowEngineError):
    """Settings are invalid or missing. Context: ``config_key``."""

    severity = ErrorSeverity.HIGH
    category = ErrorCategory.CONFIGURATION


def create_error_response(error: WorkflowEngineError) -> Dict[str, Any]:
    """Body of an API error response."""
    return {
        "error": error.error_code,
        "message": error.message,
        "details": {
            **error.details,
            "severity": error.severity.value,
            "category": error.category.value,
            "timestamp": error.timestamp.isoformat()
        },
        "context": error.context
    }
