# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow Engine

Level-based DAG execution: levels run one after another, nodes inside a
level run concurrently. A failing node is recorded and the run carries on;
callers read the per-node results to decide whether the run succeeded.
"""

import asyncio
import time
from typing import Any, Dict, List, Optional, Sequence, Union

from flowgate.core.config import Config, get_config
from flowgate.core.errors import sanitize_error_for_user
from flowgate.core.logging import get_service_logger, log_event

from .context import RunContext, current_node, current_run
from .events import ExecutionListener, notify
from .exceptions import NodeTimeoutException
from .leveler import compute_levels
from .models import (
    BusinessContext,
    ExecutionResult,
    NodeStatus,
    NodeType,
    WorkflowEdge,
    WorkflowNode,
    as_edges,
    as_nodes,
)
from .registry import NodeExecutorRegistry


BRANCH_HANDLES = ("true", "false")


class WorkflowEngine:
    """
    Level-based workflow engine.

    Dispatches every node through a NodeExecutorRegistry. Trigger nodes are
    built in: they succeed immediately with the run's trigger data.
    """

    def __init__(
        self,
        registry: Optional[NodeExecutorRegistry] = None,
        config: Optional[Config] = None,
        listener: Optional[ExecutionListener] = None,
    ):
        self.registry = registry or NodeExecutorRegistry()
        self.config = config or get_config()
        self.listener = listener
        self.logger = get_service_logger("engine")

    async def run(
        self,
        nodes: Sequence[Union[WorkflowNode, Dict[str, Any]]],
        edges: Sequence[Union[WorkflowEdge, Dict[str, Any]]],
        trigger_data: Optional[Dict[str, Any]] = None,
        business_context: Optional[Union[BusinessContext, Dict[str, Any]]] = None,
        listener: Optional[ExecutionListener] = None,
        run_id: Optional[str] = None,
    ) -> Dict[str, ExecutionResult]:
        """
        Execute a graph and return ``{node_id: ExecutionResult}``.

        Raises:
            GraphLevelingError: If the graph cannot be leveled (strict mode)
            WorkflowValidationError: If node ids are not unique
        """
        context = await self.execute(
            nodes, edges, trigger_data, business_context, listener=listener, run_id=run_id
        )
        return context.results

    async def execute(
        self,
        nodes: Sequence[Union[WorkflowNode, Dict[str, Any]]],
        edges: Sequence[Union[WorkflowEdge, Dict[str, Any]]],
        trigger_data: Optional[Dict[str, Any]] = None,
        business_context: Optional[Union[BusinessContext, Dict[str, Any]]] = None,
        listener: Optional[ExecutionListener] = None,
        run_id: Optional[str] = None,
    ) -> RunContext:
        """
        Execute a graph and return the whole RunContext (results, logs, timing).
        """
        nodes = as_nodes(list(nodes))
        edges = as_edges(list(edges))
        levels = compute_levels(nodes, edges, strict=self.config.strict_leveling)

        context = RunContext(
            nodes,
            edges,
            trigger_data=trigger_data,
            business_context=_as_dict(business_context),
            run_id=run_id,
            log_dir=self.config.run_log_path,
        )
        listener = listener or self.listener

        self._log(context, "info", f"Executing {len(nodes)} nodes in {len(levels)} levels")

        try:
            for index, level in enumerate(levels):
                self._log(
                    context, "info",
                    f"Level {index}: {', '.join(node.id for node in level)}"
                )
                await self._execute_level(level, context, listener)
        finally:
            context.finalize()

        failed = context.failed_nodes
        self._log(
            context,
            "info" if not failed else "warning",
            f"Run finished in {context.duration_ms}ms"
            + (f" with failed nodes: {', '.join(failed)}" if failed else "")
        )
        return context

    async def _execute_level(
        self,
        level: List[WorkflowNode],
        context: RunContext,
        listener: Optional[ExecutionListener],
    ) -> None:
        """Run every node of a level concurrently and wait for all of them"""
        await asyncio.gather(*(self._execute_node(node, context, listener) for node in level))

    async def _execute_node(
        self,
        node: WorkflowNode,
        context: RunContext,
        listener: Optional[ExecutionListener],
    ) -> None:
        """Execute a single node and record its result; never raises on node failure"""
        current_run.set(context)
        current_node.set(node)

        inputs = context.gather_inputs(node.id)

        if self.config.prune_untaken_branches and self._on_untaken_branch(node, context):
            result = ExecutionResult(node_id=node.id, status=NodeStatus.SKIPPED)
            context.record(result)
            self._log(context, "info", f"Skipped {node.id}: no active incoming branch", node.id)
            notify(listener, "on_node_complete", node.id, node.type, result, inputs)
            return

        notify(listener, "on_node_starting", node.id, node.type, inputs)
        started = time.monotonic()

        try:
            data = await self._dispatch(node, inputs, context)
            result = ExecutionResult(
                node_id=node.id,
                status=NodeStatus.SUCCESS,
                data=data,
                duration_ms=_elapsed_ms(started),
            )
            self._log(
                context, "success",
                f"{node.id} ({node.type}) completed in {result.duration_ms}ms", node.id
            )
        except Exception as e:
            result = ExecutionResult(
                node_id=node.id,
                status=NodeStatus.ERROR,
                data=None,
                duration_ms=_elapsed_ms(started),
                error=sanitize_error_for_user(e, include_type=False) or type(e).__name__,
            )
            self._log(context, "error", f"{node.id} ({node.type}) failed: {result.error}", node.id)

        context.record(result)
        log_event(
            self.logger,
            "node_complete",
            level="DEBUG",
            run_id=context.run_id,
            node_id=node.id,
            node_type=node.type,
            status=result.status.value,
            duration_ms=result.duration_ms,
        )
        notify(listener, "on_node_complete", node.id, node.type, result, inputs)

    async def _dispatch(self, node: WorkflowNode, inputs: Dict[str, Any], context: RunContext) -> Any:
        """Dispatch by node type, applying the per-node deadline if configured"""
        if node.type == NodeType.TRIGGER.value:
            return dict(context.trigger_data)

        pending = self.registry.execute(
            node.type,
            dict(node.config),
            inputs,
            context.trigger_data,
            context.business_context,
        )

        timeout = self.config.node_timeout_seconds
        # Approval nodes wait on the gate's own timer
        if not timeout or node.type == NodeType.APPROVAL.value:
            return await pending

        try:
            return await asyncio.wait_for(pending, timeout=timeout)
        except asyncio.TimeoutError:
            raise NodeTimeoutException(node.id, node.type, timeout)

    def _on_untaken_branch(self, node: WorkflowNode, context: RunContext) -> bool:
        """True when the node has incoming edges and none of them is active"""
        incoming = context.incoming_edges(node.id)
        if not incoming:
            return False
        return not any(self._edge_active(edge, context) for edge in incoming)

    def _edge_active(self, edge: WorkflowEdge, context: RunContext) -> bool:
        source = context.get_result(edge.source)
        if source is None:
            return True
        if source.status == NodeStatus.SKIPPED:
            return False

        source_node = context.get_node(edge.source)
        if (
            source_node is not None
            and source_node.type == NodeType.CONDITION.value
            and source.status == NodeStatus.SUCCESS
            and edge.source_handle in BRANCH_HANDLES
            and isinstance(source.data, dict)
        ):
            taken = "true" if source.data.get("result") else "false"
            return edge.source_handle == taken

        return True

    def _log(self, context: RunContext, level: str, message: str, node_id: Optional[str] = None) -> None:
        """Write log entry to the run context and the service logger"""
        context.log(level, message, node_id)
        log_level = {"success": "info"}.get(level, level)
        getattr(self.logger, log_level)(f"[{context.run_id}] {message}")


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


def _as_dict(business_context: Optional[Union[BusinessContext, Dict[str, Any]]]) -> Optional[Dict[str, Any]]:
    if isinstance(business_context, BusinessContext):
        return business_context.model_dump()
    return business_context
