# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Pre-flight graph validation.

Run before handing a graph to the engine. Returns human-readable issues;
an empty list means the graph is acceptable to execute.
"""

from typing import Any, Dict, List, Sequence, Set

from .exceptions import WorkflowValidationError
from .models import NodeType, WorkflowEdge, WorkflowNode, as_edges, as_nodes


CYCLE_MESSAGE = "Workflow contains a cycle"


def validate_graph(nodes: Sequence[Any], edges: Sequence[Any]) -> List[str]:
    """
    Validate workflow structure.

    Checks:
    1. At least one trigger node
    2. Every non-trigger node is referenced by some edge
    3. Every edge references existing nodes
    4. No cycles (DFS with a recursion stack)
    """
    nodes = as_nodes(list(nodes))
    edges = as_edges(list(edges))
    issues: List[str] = []

    # 1. Trigger node
    if not any(node.type == NodeType.TRIGGER.value for node in nodes):
        issues.append("Workflow must have at least one trigger node")

    # 2. Orphan nodes
    node_ids = {node.id for node in nodes}
    connected: Set[str] = set()
    for edge in edges:
        connected.add(edge.source)
        connected.add(edge.target)

    for node in nodes:
        if node.type != NodeType.TRIGGER.value and node.id not in connected:
            issues.append(f'Node "{node.id}" has no connections')

    # 3. Invalid edge references
    for edge in edges:
        if edge.source not in node_ids:
            issues.append(f'Edge "{edge.id}" references non-existent source node "{edge.source}"')
        if edge.target not in node_ids:
            issues.append(f'Edge "{edge.id}" references non-existent target node "{edge.target}"')

    # 4. Cycles
    if has_cycle(nodes, edges):
        issues.append(CYCLE_MESSAGE)

    return issues


def has_cycle(nodes: Sequence[WorkflowNode], edges: Sequence[WorkflowEdge]) -> bool:
    """Depth-first search from every unvisited node, tracking the active path."""
    outgoing: Dict[str, List[str]] = {}
    for edge in edges:
        outgoing.setdefault(edge.source, []).append(edge.target)

    visited: Set[str] = set()
    recursion_stack: Set[str] = set()

    def visit(node_id: str) -> bool:
        visited.add(node_id)
        recursion_stack.add(node_id)

        for next_id in outgoing.get(node_id, []):
            if next_id not in visited:
                if visit(next_id):
                    return True
            elif next_id in recursion_stack:
                return True

        recursion_stack.discard(node_id)
        return False

    for node in nodes:
        if node.id not in visited and visit(node.id):
            return True

    return False


def ensure_valid_graph(nodes: Sequence[Any], edges: Sequence[Any]) -> None:
    """
    Raise WorkflowValidationError if the graph has any issue.
    """
    issues = validate_graph(nodes, edges)
    if issues:
        raise WorkflowValidationError(
            f"Workflow graph is invalid: {'; '.join(issues)}",
            issues=issues
        )
