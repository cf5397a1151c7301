"""Chat sessions, chat transcripts and the per-step execution log."""

import uuid
from datetime import datetime
from typing import Any, Callable, List, Optional
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from ..models.core import (
    ChatMessage,
    ChatSession,
    ExecutionLogEntry,
    MessageType,
    StepStatus,
)
from ..storage.database import get_session_factory
from ..storage.models import (
    ChatMessageModel,
    ChatSessionModel,
    ExecutionLogModel,
    WorkflowModel,
)
from .exceptions import StorageError, WorkflowNotFoundError
from .logging import get_logger

logger = get_logger(__name__)


class SessionManager:
    """Persists chat sessions, their messages and the execution log of their runs."""

    def __init__(self, session_factory: Optional[Callable[[], Session]] = None):
        """Initialize SessionManager with an optional session factory."""
        self._session_factory = session_factory

    def _session(self) -> Session:
        factory = self._session_factory or get_session_factory()
        return factory()

    def create_session(self, workflow_id: str) -> ChatSession:
        """
        Open a chat session against a workflow.

        Raises:
            WorkflowNotFoundError: If no workflow has this ID
            StorageError: If storage operation fails
        """
        try:
            with self._session() as db:
                if db.get(WorkflowModel, workflow_id) is None:
                    raise WorkflowNotFoundError(
                        f"Workflow with ID '{workflow_id}' not found",
                        resource="workflow",
                        resource_id=workflow_id
                    )

                model = ChatSessionModel(
                    id=str(uuid.uuid4()),
                    workflow_id=workflow_id,
                    created_at=datetime.utcnow(),
                )
                db.add(model)
                db.commit()
                db.refresh(model)

                logger.info(f"Created chat session {model.id} for workflow {workflow_id}")
                return ChatSession(id=model.id, workflow_id=model.workflow_id, created_at=model.created_at)

        except SQLAlchemyError as e:
            logger.error(f"Database error while creating chat session: {str(e)}")
            raise StorageError(f"Failed to create chat session: {str(e)}", operation="create", table="chat_sessions")

    def get_session(self, session_id: str) -> ChatSession:
        """
        Retrieve a chat session.

        Raises:
            WorkflowNotFoundError: If no session has this ID
        """
        try:
            with self._session() as db:
                model = db.get(ChatSessionModel, session_id)
                if model is None:
                    raise WorkflowNotFoundError(
                        f"Chat session with ID '{session_id}' not found",
                        resource="chat_session",
                        resource_id=session_id
                    )
                return ChatSession(id=model.id, workflow_id=model.workflow_id, created_at=model.created_at)

        except SQLAlchemyError as e:
            logger.error(f"Database error while retrieving chat session: {str(e)}")
            raise StorageError(f"Failed to retrieve chat session: {str(e)}", operation="get", table="chat_sessions")

    def add_message(
        self,
        session_id: str,
        message: str,
        response: Optional[str] = None,
        message_type: MessageType = MessageType.USER
    ) -> ChatMessage:
        """Append a message to a session transcript."""
        try:
            with self._session() as db:
                model = ChatMessageModel(
                    session_id=session_id,
                    message=message,
                    response=response,
                    message_type=message_type.value,
                    created_at=datetime.utcnow(),
                )
                db.add(model)
                db.commit()
                db.refresh(model)
                return self._to_message(model)

        except SQLAlchemyError as e:
            logger.error(f"Database error while storing chat message: {str(e)}")
            raise StorageError(f"Failed to store chat message: {str(e)}", operation="create", table="chat_messages")

    def get_messages(self, session_id: str) -> List[ChatMessage]:
        """Transcript of a session, oldest first."""
        try:
            with self._session() as db:
                models = (
                    db.query(ChatMessageModel)
                    .filter(ChatMessageModel.session_id == session_id)
                    .order_by(ChatMessageModel.id)
                    .all()
                )
                return [self._to_message(model) for model in models]

        except SQLAlchemyError as e:
            logger.error(f"Database error while loading chat messages: {str(e)}")
            raise StorageError(f"Failed to load chat messages: {str(e)}", operation="list", table="chat_messages")

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
        """
        Store one dispatched step.

        Raises:
            StorageError: If the write fails; the engine logs and ignores it
        """
        try:
            with self._session() as db:
                db.add(ExecutionLogModel(
                    workflow_id=workflow_id,
                    session_id=session_id,
                    component_type=kind,
                    input_data=input_data,
                    output_data=output_data,
                    execution_time_ms=elapsed_ms,
                    status=StepStatus(status).value,
                    error_message=error_message,
                    created_at=datetime.utcnow(),
                ))
                db.commit()

        except SQLAlchemyError as e:
            logger.error(f"Database error while writing execution log: {str(e)}")
            raise StorageError(f"Failed to write execution log: {str(e)}", operation="create", table="execution_logs")

    def get_execution_logs(self, session_id: str) -> List[ExecutionLogEntry]:
        """Execution log of a session in the order the steps ran."""
        try:
            with self._session() as db:
                models = (
                    db.query(ExecutionLogModel)
                    .filter(ExecutionLogModel.session_id == session_id)
                    .order_by(ExecutionLogModel.id)
                    .all()
                )
                return [
                    ExecutionLogEntry(
                        id=model.id,
                        workflow_id=model.workflow_id,
                        session_id=model.session_id,
                        component_type=model.component_type,
                        input_data=model.input_data,
                        output_data=model.output_data,
                        execution_time_ms=model.execution_time_ms,
                        status=StepStatus(model.status),
                        error_message=model.error_message,
                        created_at=model.created_at,
                    )
                    for model in models
                ]

        except SQLAlchemyError as e:
            logger.error(f"Database error while loading execution logs: {str(e)}")
            raise StorageError(f"Failed to load execution logs: {str(e)}", operation="list", table="execution_logs")

    @staticmethod
    def _to_message(model: ChatMessageModel) -> ChatMessage:
        return ChatMessage(
            id=model.id,
            session_id=model.session_id,
            message=model.message,
            response=model.response,
            message_type=MessageType(model.message_type),
            created_at=model.created_at,
        )
