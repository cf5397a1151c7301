"""Core Pydantic models for the flow builder engine."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


class ComponentKind(str, Enum):
    """Enumeration of the component kinds the engine knows how to run."""
    USER_QUERY = "UserQuery"
    KNOWLEDGE_BASE = "KnowledgeBase"
    LLM_ENGINE = "LLMEngine"
    OUTPUT = "Output"

    @classmethod
    def resolve(cls, value: str) -> Optional["ComponentKind"]:
        """Return the matching kind, or None for kinds outside the catalog."""
        try:
            return cls(value)
        except ValueError:
            return None


class StepStatus(str, Enum):
    """Outcome of a single dispatched step."""
    SUCCESS = "success"
    ERROR = "error"


class MessageType(str, Enum):
    """Author of a chat message."""
    USER = "user"
    ASSISTANT = "assistant"


class NodePosition(BaseModel):
    """Canvas position of a node. Only the builder UI reads it."""
    x: float = 0.0
    y: float = 0.0


class WorkflowNode(BaseModel):
    """A typed processing step of a workflow.

    The kind travels as ``type`` on the wire. Any string is accepted so the
    editor can ship node kinds before the engine supports them.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Unique identifier for the node")
    kind: str = Field(..., alias="type", description="Component kind of the node")
    config: Dict[str, Any] = Field(default_factory=dict, description="Component configuration")
    position: NodePosition = Field(default_factory=NodePosition, description="Canvas position")

    @field_validator('id')
    @classmethod
    def validate_id(cls, id_value):
        """Ensure node ID is not blank."""
        if not id_value or not id_value.strip():
            raise ValueError("Node ID cannot be empty")
        return id_value.strip()

    @field_validator('config', mode='before')
    @classmethod
    def default_config(cls, config):
        """Treat a null config as an empty one."""
        return config or {}

    @property
    def component_kind(self) -> Optional[ComponentKind]:
        return ComponentKind.resolve(self.kind)


class WorkflowEdge(BaseModel):
    """Directed dependency: ``target`` consumes the output of ``source``."""
    source: str = Field(..., description="Source node ID")
    target: str = Field(..., description="Target node ID")

    @field_validator('source', 'target')
    @classmethod
    def validate_endpoint(cls, node_id):
        """Ensure endpoints are not blank and match node IDs, which are stripped too."""
        if not node_id or not node_id.strip():
            raise ValueError("Edge endpoint cannot be empty")
        return node_id.strip()


class WorkflowDefinition(BaseModel):
    """Graph of nodes and edges describing a pipeline.

    Edges that reference unknown nodes are kept as-is; the orderer ignores them.
    """
    nodes: List[WorkflowNode] = Field(default_factory=list, description="Nodes of the workflow")
    edges: List[WorkflowEdge] = Field(default_factory=list, description="Edges connecting nodes")

    def find_node(self, node_id: str) -> Optional[WorkflowNode]:
        """Find a node by ID, returning the first match."""
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def dangling_edges(self) -> List[WorkflowEdge]:
        """Edges whose source or target is not a node of this definition."""
        node_ids = {node.id for node in self.nodes}
        return [
            edge for edge in self.edges
            if edge.source not in node_ids or edge.target not in node_ids
        ]


class DocumentRecord(BaseModel):
    """Text document attached to a workflow's knowledge base."""
    id: Optional[str] = None
    workflow_id: Optional[str] = None
    filename: str
    content: str = ""
    file_type: str = "text/plain"
    file_size: int = 0
    upload_date: Optional[datetime] = None


class StepRecord(BaseModel):
    """Trace entry for one dispatched node."""
    node_id: str = Field(..., description="ID of the dispatched node")
    kind: ComponentKind = Field(..., description="Component kind of the node")
    input: Any = Field(None, description="Snapshot of the step input")
    output: Any = Field(None, description="Snapshot of the step output")
    elapsed_ms: float = Field(..., description="Wall time spent in the handler, in milliseconds")
    status: StepStatus = Field(StepStatus.SUCCESS, description="Step outcome")
    error_message: Optional[str] = Field(None, description="Failure message for errored steps")


class ExecutionResult(BaseModel):
    """Final text of a run together with its trace."""
    response: str
    execution_order: List[str] = Field(default_factory=list)
    trace: List[StepRecord] = Field(default_factory=list)

    @property
    def total_execution_time(self) -> float:
        return sum(step.elapsed_ms for step in self.trace)


class ValidationResult(BaseModel):
    """Result of workflow definition validation."""
    is_valid: bool = Field(..., description="Whether the definition can be stored")
    errors: List[str] = Field(default_factory=list, description="List of validation errors")
    warnings: List[str] = Field(default_factory=list, description="List of validation warnings")


class WorkflowSummary(BaseModel):
    """Stored workflow as returned by the API."""
    id: str = Field(..., description="Workflow ID")
    name: str = Field(..., description="Workflow name")
    description: str = Field("", description="Workflow description")
    definition: WorkflowDefinition = Field(..., description="Workflow graph")
    is_active: bool = Field(True, description="Whether the workflow accepts runs")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")


class ChatSession(BaseModel):
    """Conversation against a single workflow."""
    id: str
    workflow_id: str
    created_at: datetime


class ChatMessage(BaseModel):
    """Stored chat message."""
    id: int
    session_id: str
    message: str
    response: Optional[str] = None
    message_type: MessageType
    created_at: datetime


class ExecutionLogEntry(BaseModel):
    """Durable audit record of one dispatched step."""
    id: int
    workflow_id: str
    session_id: str
    component_type: str
    input_data: Any = None
    output_data: Any = None
    execution_time_ms: float
    status: StepStatus
    error_message: Optional[str] = None
    created_at: datetime
