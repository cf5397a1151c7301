"""Per-run execution state threaded between workflow steps."""

from typing import Any, Dict, List, Optional, Set

from ..models.core import StepRecord


class ExecutionContext:
    """Mutable state owned by a single run.

    ``current_data`` holds the output of the last dispatched step and is
    replaced after every step. ``trace`` only ever grows.
    """

    def __init__(self, workflow_id: str, session_id: str, user_query: str):
        self._workflow_id = workflow_id
        self._session_id = session_id
        self._user_query = user_query
        self.current_data: Optional[Dict[str, Any]] = None
        self._trace: List[StepRecord] = []
        self._dispatched: Set[str] = set()

    @property
    def workflow_id(self) -> str:
        return self._workflow_id

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def user_query(self) -> str:
        return self._user_query

    @property
    def trace(self) -> List[StepRecord]:
        """Copy of the recorded steps in execution order."""
        return list(self._trace)

    @property
    def step_count(self) -> int:
        return len(self._trace)

    def record_step(self, record: StepRecord) -> None:
        self._trace.append(record)

    def mark_dispatched(self, node_id: str) -> bool:
        """Claim a node for dispatch. Returns False if it already ran in this run."""
        if node_id in self._dispatched:
            return False
        self._dispatched.add(node_id)
        return True

    def current_value(self, key: str, default: Any = None) -> Any:
        """Read a field of ``current_data``, tolerating non-dict outputs."""
        if isinstance(self.current_data, dict):
            return self.current_data.get(key, default)
        return default

    def total_execution_time(self) -> float:
        return sum(step.elapsed_ms for step in self._trace)

    def components_used(self) -> List[str]:
        return [step.kind.value for step in self._trace]

    def __repr__(self) -> str:
        return (
            f"ExecutionContext(workflow_id={self._workflow_id!r}, session_id={self._session_id!r}, "
            f"steps={len(self._trace)})"
        )
