# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow Models

Pydantic models for graph definitions, node results and approvals.
"""

from datetime import datetime
from enum import Enum
from typing import List, Dict, Any, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Workflow Definition Models
# ============================================================================

class NodeType(str, Enum):
    """Node types understood by the default executor registry"""
    TRIGGER = "trigger"
    AI = "ai"
    ACTION = "action"
    CONDITION = "condition"
    APPROVAL = "approval"
    EXTERNAL_FETCH = "external-fetch"
    EXTERNAL_PARSE = "external-parse"
    EXTERNAL_NOTIFY = "external-notify"
    RETRIEVAL = "retrieval"
    ADAPTATION = "adaptation"


class WorkflowNode(BaseModel):
    """Single node in a workflow graph"""
    model_config = ConfigDict(frozen=True)

    id: str
    type: str  # NodeType value; unknown types fail only at dispatch
    config: Dict[str, Any] = Field(default_factory=dict)
    label: Optional[str] = None
    position: Optional[Dict[str, float]] = None  # Editor metadata, ignored by the engine


class WorkflowEdge(BaseModel):
    """Directed link between two nodes"""
    model_config = ConfigDict(frozen=True, populate_by_name=True)  # Allow both 'sourceHandle' and 'source_handle'

    id: str = ""
    source: str
    target: str
    source_handle: Optional[str] = Field(default=None, alias="sourceHandle")
    target_handle: Optional[str] = Field(default=None, alias="targetHandle")
    label: Optional[str] = None


class WorkflowGraph(BaseModel):
    """Complete workflow definition"""
    id: Optional[str] = None
    name: Optional[str] = None
    nodes: List[WorkflowNode]
    edges: List[WorkflowEdge] = Field(default_factory=list)


def as_nodes(nodes: List[Any]) -> List[WorkflowNode]:
    """Accept WorkflowNode instances or raw dicts (e.g. straight from JSON)"""
    return [n if isinstance(n, WorkflowNode) else WorkflowNode.model_validate(n) for n in nodes]


def as_edges(edges: List[Any]) -> List[WorkflowEdge]:
    return [e if isinstance(e, WorkflowEdge) else WorkflowEdge.model_validate(e) for e in edges]


class BusinessContext(BaseModel):
    """Read-only auxiliary state passed into a run"""
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    recent_revenue: float = Field(default=0.0, alias="recentRevenue")
    trend: Literal["up", "down", "stable"] = "stable"
    alerts: List[str] = Field(default_factory=list)


# ============================================================================
# Execution Models
# ============================================================================

class NodeStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    SKIPPED = "skipped"  # Only reachable through an untaken condition branch


class ExecutionResult(BaseModel):
    """Outcome of a single node within a run"""
    node_id: str
    status: NodeStatus
    data: Any = None
    duration_ms: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == NodeStatus.SUCCESS


class ExecutionLog(BaseModel):
    """Single log entry during workflow execution"""
    timestamp: str
    node_id: Optional[str] = None
    level: str  # "info", "success", "error", "warning"
    message: str


# ============================================================================
# Approval Models
# ============================================================================

class ApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"  # The waiting run was torn down


class ResolveResult(str, Enum):
    """Answer to an inbound approve/reject callback"""
    OK = "ok"
    NOT_FOUND = "not_found"
    ALREADY_RESOLVED = "already_resolved"


class ApprovalOutcome(BaseModel):
    """What a waiting approval node sees once the gate settles"""
    approval_id: str
    approved: bool
    timed_out: bool = False


class ApprovalSummary(BaseModel):
    """Inspectable view of a registry entry (no waiter attached)"""
    approval_id: str
    status: ApprovalStatus
    payload: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    resolved_at: Optional[datetime] = None
    run_id: Optional[str] = None
    node_id: Optional[str] = None


# ============================================================================
# Adaptation Models
# ============================================================================

class AdaptationProposal(BaseModel):
    """Model-proposed replacement graph; never applied by the engine"""
    model_config = ConfigDict(populate_by_name=True)

    should_adapt: bool = Field(default=False, alias="shouldAdapt")
    new_workflow: Optional[WorkflowGraph] = Field(default=None, alias="newWorkflow")
    reasoning: str = ""
    changes: List[str] = Field(default_factory=list)
