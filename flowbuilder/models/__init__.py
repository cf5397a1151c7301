"""Data models for the flow builder engine."""

from .core import (
    ComponentKind,
    StepStatus,
    MessageType,
    NodePosition,
    WorkflowNode,
    WorkflowEdge,
    WorkflowDefinition,
    DocumentRecord,
    StepRecord,
    ExecutionResult,
    ValidationResult,
    WorkflowSummary,
    ChatSession,
    ChatMessage,
    ExecutionLogEntry,
)

__all__ = [
    "ComponentKind",
    "StepStatus",
    "MessageType",
    "NodePosition",
    "WorkflowNode",
    "WorkflowEdge",
    "WorkflowDefinition",
    "DocumentRecord",
    "StepRecord",
    "ExecutionResult",
    "ValidationResult",
    "WorkflowSummary",
    "ChatSession",
    "ChatMessage",
    "ExecutionLogEntry",
]
