"""Step dispatcher: runs one workflow node and records the step."""

import copy
import time
from typing import Any, Dict, Optional

from ..models.core import ComponentKind, StepRecord, WorkflowNode
from .collaborators import ExecutionLogSink, NullExecutionLog
from .components import Component, NoOpComponent
from .context import ExecutionContext
from .logging import get_logger

logger = get_logger(__name__)


class StepDispatcher:
    """Dispatches nodes to the handler registered for their kind.

    Every dispatched node yields exactly one trace entry and one execution log
    write, whether the handler succeeded or not. Nodes whose kind has no
    handler are skipped without a trace entry.
    """

    def __init__(self, catalog: Dict[ComponentKind, Component], execution_log: Optional[ExecutionLogSink] = None):
        self._catalog = dict(catalog)
        self._execution_log = execution_log or NullExecutionLog()
        self._no_op = NoOpComponent()

    def resolve(self, node: WorkflowNode) -> Component:
        """Return the handler for a node, or the no-op handler for unknown kinds."""
        kind = node.component_kind
        if kind is None:
            return self._no_op
        return self._catalog.get(kind, self._no_op)

    def dispatch(self, node: WorkflowNode, context: ExecutionContext) -> Any:
        """
        Run a node and thread its output into the context.

        Args:
            node: Node to run
            context: Execution context of the current run

        Returns:
            The context's ``current_data`` after the step
        """
        component = self.resolve(node)
        if not component.records_steps:
            return context.current_data

        input_snapshot = copy.deepcopy(component.input_snapshot(context))

        started = time.perf_counter()
        outcome = component.run(node, context)
        elapsed_ms = (time.perf_counter() - started) * 1000

        record = StepRecord(
            node_id=node.id,
            kind=component.kind,
            input=input_snapshot,
            output=copy.deepcopy(outcome.output),
            elapsed_ms=elapsed_ms,
            status=outcome.status,
            error_message=outcome.error_message,
        )
        context.record_step(record)
        self._write_execution_log(context, record)

        context.current_data = outcome.output
        logger.debug(
            f"Dispatched {record.kind.value} node {node.id} for workflow {context.workflow_id}: "
            f"{record.status.value} in {elapsed_ms:.2f}ms"
        )
        return context.current_data

    def _write_execution_log(self, context: ExecutionContext, record: StepRecord) -> None:
        """Persist the step. Failures are logged and never abort the run."""
        try:
            self._execution_log.log_execution_step(
                context.workflow_id,
                context.session_id,
                record.kind.value,
                record.input,
                record.output,
                record.elapsed_ms,
                record.status,
                record.error_message,
            )
        except Exception as e:
            logger.error(f"Failed to write execution log for node {record.node_id}: {str(e)}")
