"""FastAPI REST endpoints for the flow builder service."""

from datetime import datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from ..core.execution_engine import ExecutionEngine
from ..core.exceptions import WorkflowEngineError, WorkflowValidationError, create_error_response
from ..core.middleware import status_code_for_error
from ..core.session_manager import SessionManager
from ..core.workflow_manager import WorkflowManager
from ..core.logging import get_logger
from ..models.core import (
    ChatMessage,
    DocumentRecord,
    ExecutionLogEntry,
    MessageType,
    ValidationResult,
    WorkflowDefinition,
    WorkflowSummary,
)

logger = get_logger(__name__)

# Routes are plain functions: the engine and managers block, so FastAPI runs
# them in its threadpool instead of on the event loop.
router = APIRouter(prefix="/api/v1", tags=["workflow"])

# Set by the application lifespan
_workflow_manager: Optional[WorkflowManager] = None
_session_manager: Optional[SessionManager] = None
_execution_engine: Optional[ExecutionEngine] = None


def init_dependencies(
    workflow_manager: WorkflowManager,
    session_manager: SessionManager,
    execution_engine: ExecutionEngine
):
    """Initialize the shared service objects."""
    global _workflow_manager, _session_manager, _execution_engine
    _workflow_manager = workflow_manager
    _session_manager = session_manager
    _execution_engine = execution_engine


def get_workflow_manager() -> WorkflowManager:
    """Dependency to get workflow manager."""
    if _workflow_manager is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Workflow manager not initialized"
        )
    return _workflow_manager


def get_session_manager() -> SessionManager:
    """Dependency to get session manager."""
    if _session_manager is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Session manager not initialized"
        )
    return _session_manager


def get_execution_engine() -> ExecutionEngine:
    """Dependency to get execution engine."""
    if _execution_engine is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Execution engine not initialized"
        )
    return _execution_engine


def _http_error(error: WorkflowEngineError) -> HTTPException:
    return HTTPException(status_code=status_code_for_error(error), detail=create_error_response(error))


# Request/Response models
class CreateWorkflowRequest(BaseModel):
    """Request model for creating a workflow."""
    name: str = Field(..., description="Workflow name")
    description: str = Field("", description="Workflow description")
    definition: WorkflowDefinition = Field(..., description="Nodes and edges of the workflow")
    is_active: bool = Field(True, description="Whether the workflow accepts runs")


class UpdateWorkflowRequest(BaseModel):
    """Request model for updating a workflow. Omitted fields keep their value."""
    name: Optional[str] = None
    description: Optional[str] = None
    definition: Optional[WorkflowDefinition] = None
    is_active: Optional[bool] = None


class ExecuteWorkflowRequest(BaseModel):
    """Request model for running a workflow once."""
    query: str = Field(..., min_length=1, description="User query to run the workflow against")


class ExecuteWorkflowResponse(BaseModel):
    """Response model for a workflow run."""
    response: str
    workflow_id: str
    session_id: str
    executed_at: datetime


class AddDocumentRequest(BaseModel):
    """Request model for attaching extracted text to a workflow."""
    filename: str = Field(..., min_length=1, description="Original file name")
    content: str = Field(..., description="Extracted document text")
    file_type: str = Field("text/plain", description="MIME type of the original file")
    file_size: Optional[int] = Field(None, ge=0, description="Size of the original file in bytes")


class ChatRequest(BaseModel):
    """Request model for a chat turn."""
    workflow_id: str = Field(..., min_length=1, description="Workflow answering the message")
    message: str = Field(..., min_length=1, description="User message")
    session_id: Optional[str] = Field(None, description="Existing session to continue")


class ChatResponse(BaseModel):
    """Response model for a chat turn."""
    response: str
    session_id: str
    workflow_step: str = "Workflow Complete"


class DeleteResponse(BaseModel):
    success: bool


# Endpoints

@router.post(
    "/workflows",
    response_model=WorkflowSummary,
    status_code=status.HTTP_201_CREATED,
    summary="Create a workflow"
)
def create_workflow(
    request: CreateWorkflowRequest,
    workflow_manager: WorkflowManager = Depends(get_workflow_manager)
) -> WorkflowSummary:
    try:
        return workflow_manager.create_workflow(
            request.name, request.definition,
            description=request.description, is_active=request.is_active
        )
    except WorkflowEngineError as e:
        logger.warning(f"Workflow creation failed: {str(e)}")
        raise _http_error(e)


@router.get("/workflows", response_model=List[WorkflowSummary], summary="List workflows")
def list_workflows(
    workflow_manager: WorkflowManager = Depends(get_workflow_manager)
) -> List[WorkflowSummary]:
    try:
        return workflow_manager.list_workflows()
    except WorkflowEngineError as e:
        raise _http_error(e)


@router.post("/workflows/validate", response_model=ValidationResult, summary="Validate a workflow")
def validate_workflow(
    request: CreateWorkflowRequest,
    workflow_manager: WorkflowManager = Depends(get_workflow_manager)
) -> ValidationResult:
    return workflow_manager.validate_workflow(request.name, request.definition)


@router.get("/workflows/{workflow_id}", response_model=WorkflowSummary, summary="Get a workflow")
def get_workflow(
    workflow_id: str,
    workflow_manager: WorkflowManager = Depends(get_workflow_manager)
) -> WorkflowSummary:
    try:
        return workflow_manager.get_workflow(workflow_id)
    except WorkflowEngineError as e:
        raise _http_error(e)


@router.put("/workflows/{workflow_id}", response_model=WorkflowSummary, summary="Update a workflow")
def update_workflow(
    workflow_id: str,
    request: UpdateWorkflowRequest,
    workflow_manager: WorkflowManager = Depends(get_workflow_manager)
) -> WorkflowSummary:
    try:
        return workflow_manager.update_workflow(
            workflow_id,
            name=request.name,
            description=request.description,
            definition=request.definition,
            is_active=request.is_active
        )
    except WorkflowEngineError as e:
        logger.warning(f"Workflow update failed: {str(e)}")
        raise _http_error(e)


@router.delete("/workflows/{workflow_id}", response_model=DeleteResponse, summary="Delete a workflow")
def delete_workflow(
    workflow_id: str,
    workflow_manager: WorkflowManager = Depends(get_workflow_manager)
) -> DeleteResponse:
    try:
        deleted = workflow_manager.delete_workflow(workflow_id)
    except WorkflowEngineError as e:
        raise _http_error(e)

    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={
                "error": "WorkflowNotFound",
                "message": f"Workflow with ID '{workflow_id}' not found",
                "details": {"workflow_id": workflow_id}
            }
        )
    return DeleteResponse(success=True)


@router.post(
    "/workflows/{workflow_id}/documents",
    response_model=DocumentRecord,
    status_code=status.HTTP_201_CREATED,
    summary="Attach a text document to a workflow's knowledge base"
)
def add_document(
    workflow_id: str,
    request: AddDocumentRequest,
    workflow_manager: WorkflowManager = Depends(get_workflow_manager)
) -> DocumentRecord:
    try:
        document = workflow_manager.add_document(
            workflow_id, request.filename, request.content,
            file_type=request.file_type, file_size=request.file_size
        )
    except WorkflowEngineError as e:
        raise _http_error(e)

    logger.info(f"Document uploaded: {document.filename} ({document.file_size} bytes)")
    return document


@router.get(
    "/workflows/{workflow_id}/documents",
    response_model=List[DocumentRecord],
    summary="List a workflow's documents"
)
def list_documents(
    workflow_id: str,
    workflow_manager: WorkflowManager = Depends(get_workflow_manager)
) -> List[DocumentRecord]:
    try:
        workflow_manager.get_workflow(workflow_id)
        return workflow_manager.get_documents(workflow_id)
    except WorkflowEngineError as e:
        raise _http_error(e)


@router.post(
    "/workflows/{workflow_id}/execute",
    response_model=ExecuteWorkflowResponse,
    summary="Run a workflow against a single query"
)
def execute_workflow(
    workflow_id: str,
    request: ExecuteWorkflowRequest,
    workflow_manager: WorkflowManager = Depends(get_workflow_manager),
    session_manager: SessionManager = Depends(get_session_manager),
    execution_engine: ExecutionEngine = Depends(get_execution_engine)
) -> ExecuteWorkflowResponse:
    try:
        workflow = workflow_manager.get_workflow(workflow_id)
        session = session_manager.create_session(workflow_id)

        logger.info(f"Executing workflow {workflow.name} with query: {request.query}")
        response = execution_engine.execute_workflow(workflow.definition, workflow_id, session.id, request.query)

    except WorkflowEngineError as e:
        logger.error(f"Error executing workflow {workflow_id}: {str(e)}")
        raise _http_error(e)

    return ExecuteWorkflowResponse(
        response=response,
        workflow_id=workflow_id,
        session_id=session.id,
        executed_at=datetime.utcnow()
    )


@router.post("/chat", response_model=ChatResponse, summary="Answer a chat message with a workflow")
def chat(
    request: ChatRequest,
    workflow_manager: WorkflowManager = Depends(get_workflow_manager),
    session_manager: SessionManager = Depends(get_session_manager),
    execution_engine: ExecutionEngine = Depends(get_execution_engine)
) -> ChatResponse:
    try:
        workflow = workflow_manager.get_workflow(request.workflow_id)

        if request.session_id:
            session = session_manager.get_session(request.session_id)
            if session.workflow_id != request.workflow_id:
                raise WorkflowValidationError(
                    f"Session '{session.id}' belongs to workflow '{session.workflow_id}'",
                    session_id=session.id,
                    workflow_id=request.workflow_id
                )
        else:
            session = session_manager.create_session(request.workflow_id)

        session_manager.add_message(session.id, request.message, message_type=MessageType.USER)

        logger.info(f"Processing message through workflow: {workflow.name}")
        response = execution_engine.execute_workflow(
            workflow.definition, request.workflow_id, session.id, request.message
        )

        session_manager.add_message(session.id, request.message, response=response,
                                    message_type=MessageType.ASSISTANT)

    except WorkflowEngineError as e:
        logger.error(f"Error processing chat message: {str(e)}")
        raise _http_error(e)

    return ChatResponse(response=response, session_id=session.id)


@router.get(
    "/sessions/{session_id}/messages",
    response_model=List[ChatMessage],
    summary="Get a chat session transcript"
)
def get_session_messages(
    session_id: str,
    session_manager: SessionManager = Depends(get_session_manager)
) -> List[ChatMessage]:
    try:
        session_manager.get_session(session_id)
        return session_manager.get_messages(session_id)
    except WorkflowEngineError as e:
        raise _http_error(e)


@router.get(
    "/sessions/{session_id}/logs",
    response_model=List[ExecutionLogEntry],
    summary="Get the execution log of a chat session"
)
def get_session_logs(
    session_id: str,
    session_manager: SessionManager = Depends(get_session_manager)
) -> List[ExecutionLogEntry]:
    try:
        session_manager.get_session(session_id)
        return session_manager.get_execution_logs(session_id)
    except WorkflowEngineError as e:
        raise _http_error(e)
