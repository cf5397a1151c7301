"""Workflow Manager for workflow definitions and their knowledge base documents."""

import uuid
from datetime import datetime
from typing import Callable, List, Optional
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from ..models.core import (
    ComponentKind,
    DocumentRecord,
    ValidationResult,
    WorkflowDefinition,
    WorkflowSummary,
)
from ..storage.database import get_session_factory
from ..storage.models import DocumentModel, WorkflowModel
from .exceptions import (
    DocumentRetrievalError,
    StorageError,
    WorkflowNotFoundError,
    WorkflowValidationError,
)
from .logging import get_logger

logger = get_logger(__name__)


class WorkflowManager:
    """Manages workflow definitions, validation, storage and documents."""

    def __init__(self, session_factory: Optional[Callable[[], Session]] = None):
        """Initialize WorkflowManager with an optional session factory."""
        self._session_factory = session_factory

    def _session(self) -> Session:
        factory = self._session_factory or get_session_factory()
        return factory()

    def create_workflow(
        self,
        name: str,
        definition: WorkflowDefinition,
        description: str = "",
        is_active: bool = True
    ) -> WorkflowSummary:
        """
        Validate and store a new workflow.

        Args:
            name: Display name of the workflow
            definition: Nodes and edges of the workflow
            description: Optional description
            is_active: Whether the workflow accepts runs

        Returns:
            WorkflowSummary: The stored workflow

        Raises:
            WorkflowValidationError: If the definition is not valid
            StorageError: If storage operation fails
        """
        logger.info(f"Creating new workflow: {name}")
        self._ensure_valid(name, definition)

        workflow_id = self._generate_unique_id()
        try:
            with self._session() as db:
                model = WorkflowModel(
                    id=workflow_id,
                    name=name.strip(),
                    description=description or "",
                    definition=definition.model_dump(by_alias=True),
                    is_active=is_active,
                    created_at=datetime.utcnow(),
                    updated_at=datetime.utcnow(),
                )
                db.add(model)
                db.commit()
                db.refresh(model)

                logger.info(f"Successfully created workflow '{name}' with ID: {workflow_id}")
                return self._to_summary(model)

        except SQLAlchemyError as e:
            logger.error(f"Database error while creating workflow: {str(e)}")
            raise StorageError(f"Failed to store workflow: {str(e)}", operation="create", table="workflows")

    def get_workflow(self, workflow_id: str) -> WorkflowSummary:
        """
        Retrieve a stored workflow.

        Raises:
            WorkflowNotFoundError: If no workflow has this ID
            StorageError: If storage operation fails
        """
        logger.debug(f"Retrieving workflow with ID: {workflow_id}")
        try:
            with self._session() as db:
                model = db.get(WorkflowModel, workflow_id)
                if model is None:
                    raise WorkflowNotFoundError(
                        f"Workflow with ID '{workflow_id}' not found",
                        resource="workflow",
                        resource_id=workflow_id
                    )
                return self._to_summary(model)

        except SQLAlchemyError as e:
            logger.error(f"Database error while retrieving workflow: {str(e)}")
            raise StorageError(f"Failed to retrieve workflow: {str(e)}", operation="get", table="workflows")

    def list_workflows(self) -> List[WorkflowSummary]:
        """List stored workflows, newest first."""
        logger.debug("Listing all workflows")
        try:
            with self._session() as db:
                models = db.query(WorkflowModel).order_by(WorkflowModel.created_at.desc()).all()
                return [self._to_summary(model) for model in models]

        except SQLAlchemyError as e:
            logger.error(f"Database error while listing workflows: {str(e)}")
            raise StorageError(f"Failed to list workflows: {str(e)}", operation="list", table="workflows")

    def update_workflow(
        self,
        workflow_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        definition: Optional[WorkflowDefinition] = None,
        is_active: Optional[bool] = None
    ) -> WorkflowSummary:
        """
        Update the given fields of a stored workflow.

        Raises:
            WorkflowNotFoundError: If no workflow has this ID
            WorkflowValidationError: If the new name or definition is not valid
            StorageError: If storage operation fails
        """
        logger.info(f"Updating workflow with ID: {workflow_id}")
        try:
            with self._session() as db:
                model = db.get(WorkflowModel, workflow_id)
                if model is None:
                    raise WorkflowNotFoundError(
                        f"Workflow with ID '{workflow_id}' not found",
                        resource="workflow",
                        resource_id=workflow_id
                    )

                new_name = name if name is not None else model.name
                new_definition = definition or WorkflowDefinition(**model.definition)
                self._ensure_valid(new_name, new_definition)

                model.name = new_name.strip()
                if description is not None:
                    model.description = description
                if definition is not None:
                    model.definition = definition.model_dump(by_alias=True)
                if is_active is not None:
                    model.is_active = is_active
                model.updated_at = datetime.utcnow()

                db.commit()
                db.refresh(model)
                return self._to_summary(model)

        except SQLAlchemyError as e:
            logger.error(f"Database error while updating workflow: {str(e)}")
            raise StorageError(f"Failed to update workflow: {str(e)}", operation="update", table="workflows")

    def delete_workflow(self, workflow_id: str) -> bool:
        """
        Delete a workflow together with its documents and sessions.

        Returns:
            bool: True if the workflow was deleted, False if not found
        """
        logger.info(f"Deleting workflow with ID: {workflow_id}")
        try:
            with self._session() as db:
                model = db.get(WorkflowModel, workflow_id)
                if model is None:
                    logger.warning(f"Workflow with ID '{workflow_id}' not found for deletion")
                    return False

                db.delete(model)
                db.commit()
                logger.info(f"Successfully deleted workflow with ID: {workflow_id}")
                return True

        except SQLAlchemyError as e:
            logger.error(f"Database error while deleting workflow: {str(e)}")
            raise StorageError(f"Failed to delete workflow: {str(e)}", operation="delete", table="workflows")

    def validate_workflow(self, name: str, definition: WorkflowDefinition) -> ValidationResult:
        """
        Check a workflow before it is stored.

        Only problems that make the record unusable are errors. Shapes the
        engine tolerates at run time (dangling edges, unknown kinds, cycles)
        are reported as warnings.
        """
        errors: List[str] = []
        warnings: List[str] = []

        if not name or not name.strip():
            errors.append("Workflow name cannot be empty")

        node_ids = [node.id for node in definition.nodes]
        duplicates = sorted({node_id for node_id in node_ids if node_ids.count(node_id) > 1})
        if duplicates:
            errors.append(f"Duplicate node IDs: {', '.join(duplicates)}")

        for edge in definition.dangling_edges():
            warnings.append(f"Edge {edge.source} -> {edge.target} references a missing node")

        unknown_kinds = sorted({node.kind for node in definition.nodes if node.component_kind is None})
        if unknown_kinds:
            warnings.append(f"Unsupported component kinds will be skipped: {', '.join(unknown_kinds)}")

        kinds = {node.component_kind for node in definition.nodes}
        if definition.nodes and ComponentKind.USER_QUERY not in kinds:
            warnings.append("Workflow has no UserQuery component")
        if definition.nodes and ComponentKind.OUTPUT not in kinds:
            warnings.append("Workflow has no Output component")

        if self._has_cycles(definition):
            warnings.append("Workflow contains cycles; each component still runs at most once")

        return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)

    def add_document(
        self,
        workflow_id: str,
        filename: str,
        content: str,
        file_type: str = "text/plain",
        file_size: Optional[int] = None
    ) -> DocumentRecord:
        """
        Attach an already-extracted text document to a workflow's knowledge base.

        Raises:
            WorkflowNotFoundError: If no workflow has this ID
            StorageError: If storage operation fails
        """
        logger.info(f"Adding document '{filename}' to workflow {workflow_id}")
        try:
            with self._session() as db:
                if db.get(WorkflowModel, workflow_id) is None:
                    raise WorkflowNotFoundError(
                        f"Workflow with ID '{workflow_id}' not found",
                        resource="workflow",
                        resource_id=workflow_id
                    )

                model = DocumentModel(
                    id=self._generate_unique_id(),
                    workflow_id=workflow_id,
                    filename=filename,
                    content=content,
                    file_type=file_type,
                    file_size=file_size if file_size is not None else len(content.encode("utf-8")),
                    upload_date=datetime.utcnow(),
                )
                db.add(model)
                db.commit()
                db.refresh(model)
                return self._to_document(model)

        except SQLAlchemyError as e:
            logger.error(f"Database error while adding document: {str(e)}")
            raise StorageError(f"Failed to store document: {str(e)}", operation="create", table="documents")

    def get_documents(self, workflow_id: str) -> List[DocumentRecord]:
        """
        All documents attached to a workflow, in storage order.

        Raises:
            DocumentRetrievalError: If the documents cannot be loaded
        """
        try:
            with self._session() as db:
                models = db.query(DocumentModel).filter(DocumentModel.workflow_id == workflow_id).all()
                return [self._to_document(model) for model in models]

        except SQLAlchemyError as e:
            logger.error(f"Database error while loading documents: {str(e)}")
            raise DocumentRetrievalError(f"Failed to load documents: {str(e)}", workflow_id=workflow_id)

    def _ensure_valid(self, name: str, definition: WorkflowDefinition) -> None:
        validation_result = self.validate_workflow(name, definition)
        if not validation_result.is_valid:
            error_msg = f"Workflow validation failed: {'; '.join(validation_result.errors)}"
            logger.error(error_msg)
            raise WorkflowValidationError(
                error_msg,
                validation_errors=validation_result.errors,
                workflow_name=name
            )
        if validation_result.warnings:
            logger.warning(f"Workflow validation warnings: {'; '.join(validation_result.warnings)}")

    @staticmethod
    def _has_cycles(definition: WorkflowDefinition) -> bool:
        """Check if the graph contains cycles using DFS."""
        graph = {}
        for edge in definition.edges:
            graph.setdefault(edge.source, []).append(edge.target)

        visited = set()
        rec_stack = set()

        def has_cycle_util(node_id):
            visited.add(node_id)
            rec_stack.add(node_id)
            for neighbor in graph.get(node_id, []):
                if neighbor not in visited:
                    if has_cycle_util(neighbor):
                        return True
                elif neighbor in rec_stack:
                    return True
            rec_stack.remove(node_id)
            return False

        for node_id in list(graph):
            if node_id not in visited and has_cycle_util(node_id):
                return True
        return False

    @staticmethod
    def _generate_unique_id() -> str:
        return str(uuid.uuid4())

    @staticmethod
    def _to_summary(model: WorkflowModel) -> WorkflowSummary:
        return WorkflowSummary(
            id=model.id,
            name=model.name,
            description=model.description or "",
            definition=WorkflowDefinition(**(model.definition or {})),
            is_active=bool(model.is_active),
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    @staticmethod
    def _to_document(model: DocumentModel) -> DocumentRecord:
        return DocumentRecord(
            id=model.id,
            workflow_id=model.workflow_id,
            filename=model.filename,
            content=model.content or "",
            file_type=model.file_type,
            file_size=model.file_size or 0,
            upload_date=model.upload_date,
        )
