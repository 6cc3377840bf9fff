# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""Approval node: pauses its branch until a human decides or the timer fires."""

import uuid
from typing import Any, Dict, Optional

from flowgate.core.config import Config, get_config
from flowgate.core.errors import ValidationError
from flowgate.workflow.approval import ApprovalGate
from flowgate.workflow.context import current_node, current_run
from flowgate.workflow.findings import extract_findings
from flowgate.workflow.interpolation import interpolate

from .base import config_value


class ApprovalHandler:
    """
    Handler for ``approval`` nodes.

    Output: ``{"approved", "timed_out", "approval_id", "findings"}``. A timeout
    is a normal outcome (``approved=False, timed_out=True``), not an error.
    """

    def __init__(self, gate: ApprovalGate, config: Optional[Config] = None):
        self.gate = gate
        self.config = config or get_config()

    async def __call__(
        self,
        config: Dict[str, Any],
        inputs: Dict[str, Any],
        trigger_data: Dict[str, Any],
        business_context: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        to = interpolate(config.get("to") or self.config.approval_notify_to, trigger_data, inputs)
        subject = interpolate(config.get("subject") or self.config.approval_subject, trigger_data, inputs)
        findings = extract_findings(inputs)

        timeout = _timeout_seconds(
            config_value(config, "timeout_ms", "timeoutMs"), self.config.approval_timeout_seconds
        )

        run = current_run.get()
        node = current_node.get()
        if run is not None and node is not None:
            approval_id = f"{run.run_id}_{node.id}"
        else:
            approval_id = f"approval_{uuid.uuid4().hex[:12]}"

        outcome = await self.gate.request_approval(
            approval_id,
            {"to": to, "subject": subject, "findings": findings},
            timeout,
            run_id=run.run_id if run else None,
            node_id=node.id if node else None,
        )

        return {
            "approved": outcome.approved,
            "timed_out": outcome.timed_out,
            "approval_id": outcome.approval_id,
            "findings": findings,
        }


def _timeout_seconds(timeout_ms: Any, default: float) -> float:
    """Convert ``timeout_ms`` (number or numeric string) to seconds"""
    if timeout_ms is None or timeout_ms == "":
        return default
    try:
        return float(timeout_ms) / 1000
    except (TypeError, ValueError):
        raise ValidationError(f"timeoutMs must be a number of milliseconds, got {timeout_ms!r}", field="timeoutMs")
