# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Run Context

Tracks execution state for one run of a workflow graph.
"""

import json
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from .models import ExecutionLog, ExecutionResult, NodeStatus, WorkflowEdge, WorkflowNode


def new_run_id() -> str:
    return f"run_{datetime.now(timezone.utc).strftime('%Y%m%d_%H%M%S')}_{uuid.uuid4().hex[:8]}"


class RunContext:
    """
    Execution context for a workflow run.

    Tracks:
    - Node results (the run's only shared mutable state)
    - Trigger data and business context (read-only)
    - Execution log entries
    """

    def __init__(
        self,
        nodes: Sequence[WorkflowNode],
        edges: Sequence[WorkflowEdge],
        trigger_data: Optional[Dict[str, Any]] = None,
        business_context: Optional[Dict[str, Any]] = None,
        run_id: Optional[str] = None,
        log_dir: Optional[Path] = None,
    ):
        self.run_id = run_id or new_run_id()
        self.nodes = list(nodes)
        self.edges = list(edges)
        self._nodes_by_id = {node.id: node for node in self.nodes}
        self.trigger_data: Dict[str, Any] = dict(trigger_data or {})
        self.business_context = business_context
        self.started_at = datetime.now(timezone.utc)
        self.completed_at: Optional[datetime] = None

        self.results: Dict[str, ExecutionResult] = {}
        self.logs: List[ExecutionLog] = []
        self.log_file: Optional[Path] = None
        if log_dir is not None:
            self.log_file = log_dir / self.started_at.strftime('%Y-%m-%d') / f"{self.run_id}.log"

    def record(self, result: ExecutionResult) -> None:
        """Record a node's single outcome for this run"""
        if result.node_id in self.results:
            raise RuntimeError(f"Node '{result.node_id}' already has a result in run {self.run_id}")
        self.results[result.node_id] = result

    def is_completed(self, node_id: str) -> bool:
        return node_id in self.results

    def get_result(self, node_id: str) -> Optional[ExecutionResult]:
        return self.results.get(node_id)

    def get_data(self, node_id: str) -> Any:
        """Output of a node, or None when it failed, was skipped or never ran"""
        result = self.results.get(node_id)
        return result.data if result is not None else None

    def get_node(self, node_id: str) -> Optional[WorkflowNode]:
        return self._nodes_by_id.get(node_id)

    def incoming_edges(self, node_id: str) -> List[WorkflowEdge]:
        return [edge for edge in self.edges if edge.target == node_id]

    def gather_inputs(self, node_id: str) -> Dict[str, Any]:
        """Map of source node id -> that node's output for every edge into ``node_id``"""
        return {edge.source: self.get_data(edge.source) for edge in self.incoming_edges(node_id)}

    @property
    def failed_nodes(self) -> List[str]:
        return [nid for nid, r in self.results.items() if r.status == NodeStatus.ERROR]

    @property
    def succeeded(self) -> bool:
        return not self.failed_nodes

    def log(self, level: str, message: str, node_id: Optional[str] = None) -> ExecutionLog:
        """Append a log entry and mirror it to the run log file when configured"""
        entry = ExecutionLog(
            timestamp=datetime.now(timezone.utc).isoformat(),
            node_id=node_id,
            level=level,
            message=message
        )
        self.logs.append(entry)

        if self.log_file is not None:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.log_file, 'a') as f:
                f.write(json.dumps({"run_id": self.run_id, **entry.model_dump()}) + "\n")

        return entry

    def finalize(self) -> None:
        """Mark execution as complete"""
        self.completed_at = datetime.now(timezone.utc)

    @property
    def duration_ms(self) -> int:
        end = self.completed_at or datetime.now(timezone.utc)
        return int((end - self.started_at).total_seconds() * 1000)


# Task-local handles for handlers that need to know where they run
# (approval ids, adaptation's view of the current graph). Every node task
# gets its own copy, so concurrent runs never see each other.
current_run: ContextVar[Optional[RunContext]] = ContextVar("flowgate_current_run", default=None)
current_node: ContextVar[Optional[WorkflowNode]] = ContextVar("flowgate_current_node", default=None)
