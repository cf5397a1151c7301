"""Pytest configuration and fixtures."""

from typing import Any, Dict, List, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from flowbuilder.core.exceptions import DocumentRetrievalError, ModelProviderError, StorageError
from flowbuilder.models.core import DocumentRecord, WorkflowDefinition
from flowbuilder.storage.database import create_tables, drop_tables


class FakeDocumentSource:
    """In-memory document source keyed by workflow ID."""

    def __init__(self, documents: Optional[Dict[str, List[DocumentRecord]]] = None):
        self.documents = documents or {}
        self.requests: List[str] = []

    def add(self, workflow_id: str, filename: str, content: str) -> None:
        self.documents.setdefault(workflow_id, []).append(
            DocumentRecord(workflow_id=workflow_id, filename=filename, content=content)
        )

    def get_documents(self, workflow_id: str) -> List[DocumentRecord]:
        self.requests.append(workflow_id)
        return list(self.documents.get(workflow_id, []))


class FailingDocumentSource:
    def get_documents(self, workflow_id: str) -> List[DocumentRecord]:
        raise DocumentRetrievalError("database is locked", workflow_id=workflow_id)


class FakeModelClient:
    """Model client answering with a fixed text and remembering every call."""

    def __init__(self, answer: str = "Paris is the capital of France."):
        self.answer = answer
        self.calls: List[Dict[str, Any]] = []

    def call_model(self, provider, model, system_prompt, prompt, temperature) -> str:
        self.calls.append({
            "provider": provider,
            "model": model,
            "system_prompt": system_prompt,
            "prompt": prompt,
            "temperature": temperature,
        })
        return self.answer


class FailingModelClient:
    def __init__(self):
        self.calls = 0

    def call_model(self, provider, model, system_prompt, prompt, temperature) -> str:
        self.calls += 1
        raise ModelProviderError("OpenAI API key not configured", provider=provider, model=model)


class RecordingExecutionLog:
    """Execution log sink that keeps every entry in memory."""

    def __init__(self):
        self.entries: List[Dict[str, Any]] = []

    def log_execution_step(self, workflow_id, session_id, kind, input_data, output_data,
                           elapsed_ms, status, error_message=None) -> None:
        self.entries.append({
            "workflow_id": workflow_id,
            "session_id": session_id,
            "kind": kind,
            "input": input_data,
            "output": output_data,
            "elapsed_ms": elapsed_ms,
            "status": status,
            "error_message": error_message,
        })


class FailingExecutionLog:
    def __init__(self):
        self.attempts = 0

    def log_execution_step(self, *args, **kwargs) -> None:
        self.attempts += 1
        raise StorageError("disk I/O error", operation="create", table="execution_logs")


def make_definition(nodes, edges=()) -> WorkflowDefinition:
    """Build a definition from ``(id, kind[, config])`` tuples and ``(source, target)`` pairs."""
    return WorkflowDefinition(
        nodes=[
            {"id": node[0], "type": node[1], "config": node[2] if len(node) > 2 else {}}
            for node in nodes
        ],
        edges=[{"source": source, "target": target} for source, target in edges],
    )


def linear_pipeline(output_config: Optional[Dict[str, Any]] = None) -> WorkflowDefinition:
    """UserQuery -> KnowledgeBase -> LLMEngine -> Output."""
    return make_definition(
        [
            ("query", "UserQuery"),
            ("kb", "KnowledgeBase"),
            ("llm", "LLMEngine", {"model": "gpt-4", "temperature": 0.2}),
            ("output", "Output", output_config or {}),
        ],
        [("query", "kb"), ("kb", "llm"), ("llm", "output")],
    )


@pytest.fixture
def document_source():
    return FakeDocumentSource()


@pytest.fixture
def model_client():
    return FakeModelClient()


@pytest.fixture
def execution_log():
    return RecordingExecutionLog()


@pytest.fixture(scope="function")
def session_factory():
    """Session factory bound to a fresh in-memory database."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_tables(engine)

    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)

    drop_tables(engine)
    engine.dispose()
