"""Interfaces the execution engine consumes from storage and model providers."""

from typing import Any, List, Optional, Protocol, Sequence, runtime_checkable

from ..models.core import DocumentRecord, StepStatus


@runtime_checkable
class DocumentSource(Protocol):
    """Provides the knowledge base documents attached to a workflow."""

    def get_documents(self, workflow_id: str) -> Sequence[DocumentRecord]:
        ...


@runtime_checkable
class ModelClient(Protocol):
    """Sends a prompt to a language model and returns its text answer.

    Implementations raise ``ModelProviderError`` when the provider cannot be
    used, e.g. because credentials are missing.
    """

    def call_model(
        self,
        provider: str,
        model: str,
        system_prompt: str,
        prompt: str,
        temperature: float
    ) -> str:
        ...


@runtime_checkable
class ExecutionLogSink(Protocol):
    """Durable audit log receiving one entry per dispatched step."""

    def log_execution_step(
        self,
        workflow_id: str,
        session_id: str,
        kind: str,
        input_data: Any,
        output_data: Any,
        elapsed_ms: float,
        status: StepStatus,
        error_message: Optional[str] = None
    ) -> None:
        ...


class DocumentMatcher(Protocol):
    """Selects the documents relevant to a query, most relevant first."""

    def match(self, query: str, documents: Sequence[DocumentRecord]) -> List[DocumentRecord]:
        ...


class SubstringMatcher:
    """Case-insensitive containment of the whole query in the document text.

    Matches keep storage order.
    """

    def match(self, query: str, documents: Sequence[DocumentRecord]) -> List[DocumentRecord]:
        needle = (query or "").lower()
        return [doc for doc in documents if needle in (doc.content or "").lower()]


class NullExecutionLog:
    """Log sink that drops every entry."""

    def log_execution_step(self, workflow_id, session_id, kind, input_data, output_data,
                           elapsed_ms, status, error_message=None) -> None:
        return None
