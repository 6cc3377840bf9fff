# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Adaptation node: asks the model whether the running graph should change.

The answer is returned as data (an ``AdaptationProposal``); the engine never
applies it to the run in progress.
"""

import json
import re
from typing import Any, Dict, Optional

import openai
from openai import AsyncOpenAI

from flowgate.core.config import Config, get_config
from flowgate.core.errors import ExecutionError, ServiceUnavailableError
from flowgate.workflow.context import current_run
from flowgate.workflow.models import AdaptationProposal

from .base import BaseHandler, create_openai_client


JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)

PROMPT_TEMPLATE = """You are a workflow optimization AI. Analyze the current workflow and business context, then determine if the workflow should be modified.

CURRENT WORKFLOW:
{workflow}

TRIGGER EVENT:
{trigger}

BUSINESS CONTEXT:
- Recent Revenue: ${revenue}
- Trend: {trend}
- Active Alerts: {alerts}

INSTRUCTIONS:
1. Analyze if the current workflow is optimal for the current business state
2. If revenue is DOWN: Consider adding discount campaigns, reducing costs, alerting team
3. If revenue is UP: Consider scaling operations, premium upsells, restocking
4. Return a JSON object with:
   - shouldAdapt: boolean
   - newWorkflow: the modified workflow (if shouldAdapt is true) with "nodes" and "edges" arrays
   - reasoning: why you made this decision
   - changes: array of specific changes made

Return ONLY valid JSON."""


def parse_proposal(text: str) -> AdaptationProposal:
    """Parse the model's answer, tolerating prose or code fences around the JSON"""
    match = JSON_OBJECT.search(text or "")
    if not match:
        raise ExecutionError("Model did not return a JSON object")
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise ExecutionError(f"Model returned invalid JSON: {e}")
    return AdaptationProposal.model_validate(data)


class AdaptationHandler(BaseHandler):
    """Handler for ``adaptation`` nodes"""

    service = "adaptation"

    def __init__(self, config: Optional[Config] = None, openai_client: Optional[AsyncOpenAI] = None):
        super().__init__(config or get_config())
        self._openai = openai_client

    @property
    def openai(self) -> AsyncOpenAI:
        if self._openai is None:
            self._openai = create_openai_client(purpose="adaptation nodes")
        return self._openai

    def build_prompt(self, trigger_data: Dict[str, Any], business_context: Optional[Dict[str, Any]]) -> str:
        run = current_run.get()
        workflow = {
            "nodes": [n.model_dump(exclude_none=True) for n in run.nodes] if run else [],
            "edges": [e.model_dump(by_alias=True, exclude_none=True) for e in run.edges] if run else [],
        }
        business_context = business_context or {}
        return PROMPT_TEMPLATE.format(
            workflow=json.dumps(workflow, indent=2),
            trigger=json.dumps(trigger_data or {}, indent=2, default=str),
            revenue=business_context.get("recent_revenue", business_context.get("recentRevenue", 0)),
            trend=business_context.get("trend", "stable"),
            alerts=", ".join(business_context.get("alerts") or []) or "None",
        )

    async def __call__(
        self,
        config: Dict[str, Any],
        inputs: Dict[str, Any],
        trigger_data: Dict[str, Any],
        business_context: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        model = config.get("model") or self.config.adaptation_model
        prompt = self.build_prompt(trigger_data, business_context)

        try:
            response = await self.openai.chat.completions.create(
                model=model,
                messages=[{"role": "user", "content": prompt}],
                response_format={"type": "json_object"},
                max_completion_tokens=self.config.ai_max_tokens,
            )
        except openai.OpenAIError as e:
            raise ServiceUnavailableError(f"OpenAI request failed: {e}", service="openai")

        proposal = parse_proposal(response.choices[0].message.content or "")
        self.logger.info(
            f"Adaptation proposal: should_adapt={proposal.should_adapt} ({len(proposal.changes)} changes)"
        )
        return proposal.model_dump(mode="json")
