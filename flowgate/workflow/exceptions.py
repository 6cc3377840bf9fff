# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow Exceptions

Custom exceptions for graph validation, leveling and node execution.
"""

from typing import Iterable, List, Optional

from flowgate.core.errors import ConflictError, ExecutionError, NotFoundError, ValidationError


class WorkflowValidationError(ValidationError):
    """Workflow graph failed pre-flight validation"""
    def __init__(self, message: str, issues: Optional[List[str]] = None, field: str = None):
        self.issues = list(issues or [])
        super().__init__(message, field=field, details={"issues": self.issues})


class GraphLevelingError(WorkflowValidationError):
    """Leveling stalled: a cycle or a dependency on a missing node"""
    def __init__(self, stuck_nodes: Iterable[str]):
        self.stuck_nodes = sorted(stuck_nodes)
        super().__init__(
            f"Cannot level workflow graph: nodes {self.stuck_nodes} depend on a cycle "
            f"or on nodes that do not exist",
            field="edges"
        )


class NodeExecutionException(ExecutionError):
    """Node execution failed"""
    def __init__(self, node_id: str, node_type: str, message: str, context: dict = None):
        self.node_id = node_id
        self.node_type = node_type
        self.context = context or {}
        super().__init__(f"Node '{node_id}' ({node_type}) failed: {message}", details=self.context)


class NodeTimeoutException(NodeExecutionException):
    """Node execution exceeded timeout"""
    def __init__(self, node_id: str, node_type: str, timeout: float):
        super().__init__(
            node_id,
            node_type,
            f"Execution exceeded timeout ({timeout}s)"
        )
        self.timeout = timeout


class UnknownNodeTypeError(NotFoundError):
    """No handler registered for a node type"""
    def __init__(self, node_type: str):
        self.node_type = node_type
        super().__init__("Handler for node type", node_type)


class ApprovalConflictError(ConflictError):
    """An approval with the same id is already registered"""
    def __init__(self, approval_id: str):
        self.approval_id = approval_id
        super().__init__(f"Approval already registered: {approval_id}", resource="approval")
