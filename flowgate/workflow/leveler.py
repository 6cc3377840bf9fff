# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Dependency leveling.

Partitions a graph into ordered levels: every node's dependencies sit in a
strictly earlier level, and nodes sharing a level may run concurrently.
"""

import logging
from typing import Dict, List, Sequence, Set

from .exceptions import GraphLevelingError, WorkflowValidationError
from .models import WorkflowEdge, WorkflowNode


logger = logging.getLogger(__name__)


def build_dependency_map(nodes: Sequence[WorkflowNode], edges: Sequence[WorkflowEdge]) -> Dict[str, Set[str]]:
    """Build map of node_id -> set of parent node_ids"""
    dependencies: Dict[str, Set[str]] = {node.id: set() for node in nodes}

    for edge in edges:
        if edge.target in dependencies:
            dependencies[edge.target].add(edge.source)

    return dependencies


def compute_levels(
    nodes: Sequence[WorkflowNode],
    edges: Sequence[WorkflowEdge],
    strict: bool = True,
) -> List[List[WorkflowNode]]:
    """
    Group nodes into execution levels.

    Each pass collects every unplaced node whose parents are all placed.
    A pass that places nothing means the remaining nodes sit on a cycle or
    depend on a node that is not in the graph. With ``strict`` that raises
    GraphLevelingError; otherwise the remaining nodes are appended as one
    final level and a warning is logged.
    """
    dependencies = build_dependency_map(nodes, edges)
    if len(dependencies) != len(nodes):
        node_ids = [node.id for node in nodes]
        duplicates = sorted({nid for nid in node_ids if node_ids.count(nid) > 1})
        raise WorkflowValidationError(f"Duplicate node IDs found: {duplicates}", field="nodes")

    placed: Set[str] = set()
    levels: List[List[WorkflowNode]] = []

    while len(placed) < len(nodes):
        ready = [
            node for node in nodes
            if node.id not in placed and dependencies[node.id] <= placed
        ]

        if not ready:
            remaining = [node for node in nodes if node.id not in placed]
            stuck = [node.id for node in remaining]
            if strict:
                raise GraphLevelingError(stuck)
            logger.warning(
                "Leveling stalled, running %d remaining nodes as a final level: %s",
                len(remaining), stuck
            )
            levels.append(remaining)
            break

        levels.append(ready)
        placed.update(node.id for node in ready)

    return levels
