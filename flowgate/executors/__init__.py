# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Default node handlers and their wiring.
"""

from typing import Optional

import httpx
from openai import AsyncOpenAI

from flowgate.core.config import Config, get_config
from flowgate.workflow.approval import ApprovalGate
from flowgate.workflow.engine import WorkflowEngine
from flowgate.workflow.events import ExecutionListener
from flowgate.workflow.models import NodeType
from flowgate.workflow.registry import NodeExecutorRegistry

from .action import ActionHandler
from .adaptation import AdaptationHandler
from .ai import AIHandler
from .approval import ApprovalHandler
from .condition import execute_condition
from .fetch import FetchHandler
from .notify import EmailApprovalNotifier, NotifyHandler, ResendClient
from .parse import ParseHandler
from .retrieval import DocumentStore, InMemoryDocumentStore, RetrievalHandler


def create_approval_gate(
    config: Optional[Config] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> ApprovalGate:
    """Approval gate that mails approvers through Resend"""
    config = config or get_config()
    notifier = EmailApprovalNotifier(ResendClient(config, http_client))
    return ApprovalGate(notifier=notifier, base_url=config.approval_base_url)


def build_default_registry(
    config: Optional[Config] = None,
    gate: Optional[ApprovalGate] = None,
    http_client: Optional[httpx.AsyncClient] = None,
    openai_client: Optional[AsyncOpenAI] = None,
    document_store: Optional[DocumentStore] = None,
) -> NodeExecutorRegistry:
    """
    Registry with a handler for every node type except ``trigger`` (built
    into the engine).

    Args:
        config: Configuration (defaults to the global config)
        gate: Approval gate shared with whatever resolves approvals
        http_client: Shared HTTP client for all HTTP-backed handlers
        openai_client: Shared OpenAI client for ai/retrieval/adaptation
        document_store: Documents for retrieval nodes
    """
    config = config or get_config()
    gate = gate or create_approval_gate(config, http_client)

    registry = NodeExecutorRegistry()
    registry.register(NodeType.CONDITION, execute_condition)
    registry.register(NodeType.AI, AIHandler(config, openai_client))
    registry.register(NodeType.ACTION, ActionHandler(config, http_client))
    registry.register(NodeType.EXTERNAL_FETCH, FetchHandler(config, http_client))
    registry.register(NodeType.EXTERNAL_PARSE, ParseHandler(config, http_client))
    registry.register(NodeType.EXTERNAL_NOTIFY, NotifyHandler(ResendClient(config, http_client)))
    registry.register(NodeType.RETRIEVAL, RetrievalHandler(document_store, config, openai_client))
    registry.register(NodeType.APPROVAL, ApprovalHandler(gate, config))
    registry.register(NodeType.ADAPTATION, AdaptationHandler(config, openai_client))
    return registry


def create_engine(
    config: Optional[Config] = None,
    gate: Optional[ApprovalGate] = None,
    listener: Optional[ExecutionListener] = None,
    **handler_options
) -> WorkflowEngine:
    """
    WorkflowEngine over the default registry; extra options go to
    build_default_registry(). Pass ``gate`` to keep a handle for resolving
    approvals.
    """
    config = config or get_config()
    registry = build_default_registry(config, gate, **handler_options)
    return WorkflowEngine(registry, config=config, listener=listener)


__all__ = [
    "ActionHandler",
    "AdaptationHandler",
    "AIHandler",
    "ApprovalHandler",
    "DocumentStore",
    "EmailApprovalNotifier",
    "FetchHandler",
    "InMemoryDocumentStore",
    "NotifyHandler",
    "ParseHandler",
    "ResendClient",
    "RetrievalHandler",
    "build_default_registry",
    "create_approval_gate",
    "create_engine",
    "execute_condition",
]
