"""Execution ordering for workflow graphs."""

from collections import deque
from typing import Dict, List

from ..models.core import ComponentKind, WorkflowDefinition
from .logging import get_logger

logger = get_logger(__name__)


class GraphOrderer:
    """Turns a workflow's nodes and edges into a linear execution sequence.

    The order is a breadth-first walk from every node without incoming edges,
    not a strict topological sort: a node reachable along two paths runs as
    soon as the first path reaches it, possibly before its other predecessor.
    Nodes the walk never reaches are appended in their original order.
    """

    def order(self, definition: WorkflowDefinition) -> List[str]:
        """
        Compute the execution order of a workflow definition.

        Args:
            definition: Workflow graph to order

        Returns:
            Node IDs in the order they should be dispatched
        """
        node_ids = [node.id for node in definition.nodes]
        in_degree: Dict[str, int] = {node_id: 0 for node_id in node_ids}
        adjacency: Dict[str, List[str]] = {node_id: [] for node_id in node_ids}

        for edge in definition.edges:
            # Edges touching unknown nodes are ignored entirely
            if edge.source not in in_degree or edge.target not in in_degree:
                continue
            in_degree[edge.target] += 1
            adjacency[edge.source].append(edge.target)

        start_nodes = [node_id for node_id in node_ids if in_degree[node_id] == 0]

        if not start_nodes:
            user_query = next(
                (node for node in definition.nodes if node.kind == ComponentKind.USER_QUERY.value),
                None
            )
            if user_query is not None:
                logger.debug(f"No start node found, falling back to UserQuery node {user_query.id}")
                return [user_query.id]
            logger.debug("No start node found, falling back to definition order")
            return node_ids

        visited = set()
        order: List[str] = []
        queue = deque(start_nodes)

        while queue:
            current_id = queue.popleft()
            if current_id in visited:
                continue

            visited.add(current_id)
            order.append(current_id)

            for next_id in adjacency.get(current_id, []):
                if next_id not in visited:
                    queue.append(next_id)

        for node_id in node_ids:
            if node_id not in visited:
                order.append(node_id)
                visited.add(node_id)

        return order
