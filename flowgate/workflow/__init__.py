# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow execution core.

Graph leveling, concurrent per-level dispatch, the approval gate and the
helpers node handlers share (interpolation, condition evaluation, findings).
"""

from .approval import ApprovalGate, ApprovalNotifier
from .context import RunContext, current_node, current_run
from .engine import WorkflowEngine
from .events import CallbackListener, ExecutionListener
from .exceptions import (
    ApprovalConflictError,
    GraphLevelingError,
    NodeExecutionException,
    NodeTimeoutException,
    UnknownNodeTypeError,
    WorkflowValidationError,
)
from .interpolation import interpolate, interpolate_config, interpolate_qualified, interpolate_simple
from .leveler import compute_levels
from .models import (
    AdaptationProposal,
    ApprovalOutcome,
    ApprovalStatus,
    BusinessContext,
    ExecutionResult,
    NodeStatus,
    NodeType,
    ResolveResult,
    WorkflowEdge,
    WorkflowGraph,
    WorkflowNode,
)
from .registry import NodeExecutorRegistry
from .validation import ensure_valid_graph, validate_graph

__all__ = [
    "AdaptationProposal",
    "ApprovalConflictError",
    "ApprovalGate",
    "ApprovalNotifier",
    "ApprovalOutcome",
    "ApprovalStatus",
    "BusinessContext",
    "CallbackListener",
    "ExecutionListener",
    "ExecutionResult",
    "GraphLevelingError",
    "NodeExecutionException",
    "NodeExecutorRegistry",
    "NodeStatus",
    "NodeTimeoutException",
    "NodeType",
    "ResolveResult",
    "RunContext",
    "UnknownNodeTypeError",
    "WorkflowEdge",
    "WorkflowEngine",
    "WorkflowGraph",
    "WorkflowNode",
    "WorkflowValidationError",
    "compute_levels",
    "current_node",
    "current_run",
    "ensure_valid_graph",
    "interpolate",
    "interpolate_config",
    "interpolate_qualified",
    "interpolate_simple",
    "validate_graph",
]
