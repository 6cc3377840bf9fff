# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""Condition node: evaluates a boolean expression over upstream outputs."""

from typing import Any, Dict, Optional

from flowgate.core.errors import ValidationError
from flowgate.workflow.condition_evaluator import evaluate_condition


def execute_condition(
    config: Dict[str, Any],
    inputs: Dict[str, Any],
    trigger_data: Dict[str, Any],
    business_context: Optional[Dict[str, Any]] = None,
) -> Dict[str, bool]:
    """
    Evaluate ``config["expression"]`` and return ``{"result": bool}``.

    The expression sees ``inputs`` (upstream outputs by node id), ``trigger``
    (the trigger payload) and ``context`` (business context), e.g.
    ``inputs["fetch-1"].total_results > 0 && trigger.amount >= 100``.
    """
    expression = config.get("expression")
    if not expression:
        raise ValidationError("Condition node requires an 'expression'", field="expression")

    variables = {
        "inputs": inputs,
        "trigger": trigger_data or {},
        "context": business_context or {},
    }
    return {"result": evaluate_condition(expression, variables)}
