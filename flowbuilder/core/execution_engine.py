"""Execution engine: runs a workflow definition against a single query."""

import time
from typing import List, Optional

from ..models.core import ExecutionResult, WorkflowDefinition
from .collaborators import DocumentMatcher, DocumentSource, ExecutionLogSink, ModelClient
from .components import build_component_catalog
from .context import ExecutionContext
from .dispatcher import StepDispatcher
from .exceptions import WorkflowExecutionError
from .graph_orderer import GraphOrderer
from .logging import get_logger, logging_context

logger = get_logger(__name__)

COMPLETED_WITHOUT_RESPONSE = "Workflow completed successfully"


class ExecutionEngine:
    """Runs workflows step by step and returns their final answer.

    The engine holds no per-run state; one instance is built at startup and
    shared by every caller. Each run gets its own ``ExecutionContext``.
    """

    def __init__(
        self,
        document_source: DocumentSource,
        model_client: ModelClient,
        execution_log: Optional[ExecutionLogSink] = None,
        config=None,
        matcher: Optional[DocumentMatcher] = None,
        orderer: Optional[GraphOrderer] = None
    ):
        """Initialize the execution engine.

        Args:
            document_source: Provider of knowledge base documents
            model_client: Language model client used by LLM nodes
            execution_log: Durable sink receiving one entry per step
            config: Optional ``AppConfig`` with component defaults
            matcher: Optional document relevance strategy
            orderer: Optional graph orderer
        """
        self.orderer = orderer or GraphOrderer()
        self.dispatcher = StepDispatcher(
            build_component_catalog(document_source, model_client, config=config, matcher=matcher),
            execution_log=execution_log,
        )

    def execute_workflow(
        self,
        definition: WorkflowDefinition,
        workflow_id: str,
        session_id: str,
        query: str
    ) -> str:
        """
        Run a workflow and return its final text.

        Args:
            definition: Workflow graph to run
            workflow_id: ID of the workflow, used for documents and logs
            session_id: ID of the chat session the run belongs to
            query: Raw user query

        Returns:
            The final response text

        Raises:
            WorkflowExecutionError: If ordering or iterating the graph fails
        """
        return self.run_workflow(definition, workflow_id, session_id, query).response

    def run_workflow(
        self,
        definition: WorkflowDefinition,
        workflow_id: str,
        session_id: str,
        query: str
    ) -> ExecutionResult:
        """Run a workflow and return its final text together with the trace."""
        context = ExecutionContext(workflow_id, session_id, query)
        order: List[str] = []
        started = time.perf_counter()

        with logging_context(workflow_id=workflow_id, session_id=session_id):
            try:
                order = self.orderer.order(definition)
                logger.info(f"Executing workflow {workflow_id} with {len(order)} components")

                for node_id in order:
                    node = definition.find_node(node_id)
                    if node is None:
                        continue
                    if not context.mark_dispatched(node_id):
                        continue
                    self.dispatcher.dispatch(node, context)

                response = self._final_response(context)

            except Exception as e:
                logger.error(f"Workflow execution failed for workflow {workflow_id}: {str(e)}", exc_info=True)
                raise WorkflowExecutionError(
                    f"Workflow execution failed: {str(e) or type(e).__name__}",
                    workflow_id=workflow_id,
                    session_id=session_id,
                    trace=context.trace,
                ) from e

            logger.info(
                f"Workflow {workflow_id} completed: {context.step_count} steps "
                f"in {(time.perf_counter() - started) * 1000:.1f}ms"
            )
        return ExecutionResult(response=response, execution_order=order, trace=context.trace)

    @staticmethod
    def _final_response(context: ExecutionContext) -> str:
        """finalResponse, else response, else a generic completion message."""
        for key in ("finalResponse", "response"):
            value = context.current_value(key)
            if value:
                return str(value)
        return COMPLETED_WITHOUT_RESPONSE
