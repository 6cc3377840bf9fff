# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
AI node: one chat completion over the node's prompt and upstream data.

When a retrieval node feeds the AI node, the prompt switches to an analyst
template that puts current data next to the historical hits so the answer
can explain why a change matters.
"""

import json
from typing import Any, Dict, List, Mapping, Optional, Tuple

import openai
from openai import AsyncOpenAI

from flowgate.core.config import Config, get_config
from flowgate.core.errors import ServiceUnavailableError

from .base import BaseHandler, config_value, create_openai_client


DEFAULT_PROMPT = "Analyze the following data and provide insights."

ANALYST_TEMPLATE = """You are a financial analyst. Your task is to analyze current events in the context of historical data and explain WHY changes matter.

## Your Analysis Must Include:
1. **What Changed**: Summarize the current event/news
2. **Historical Context**: Compare against the historical data provided
3. **Why It Matters**: Explain the significance based on historical patterns
4. **Recommended Action**: What should be done and why (based on evidence)

## Current Data (Real-time):
{current}

## Historical Context:
{historical}

## Ticker: {ticker}

## User Request:
{request}

Provide your analysis with clear reasoning based on the historical context. Be specific about how past performance informs current recommendations."""


def categorize_inputs(
    inputs: Mapping[str, Any],
    trigger_data: Optional[Mapping[str, Any]],
) -> Tuple[List[Dict[str, str]], List[Mapping[str, Any]], Optional[str]]:
    """
    Split upstream outputs into current data and historical (retrieval) hits.

    Returns:
        (current, historical, ticker)
    """
    current: List[Dict[str, str]] = []
    historical: List[Mapping[str, Any]] = []
    ticker = (trigger_data or {}).get("ticker")

    for node_id, data in inputs.items():
        if not isinstance(data, Mapping):
            continue

        results = data.get("results")
        if isinstance(results, list) and data.get("method"):
            hits = [r for r in results if isinstance(r, Mapping)]
            historical.extend(hits)
            if hits and hits[0].get("ticker"):
                ticker = hits[0]["ticker"]
            continue

        if isinstance(results, list):
            for i, r in enumerate(results):
                if not isinstance(r, Mapping):
                    continue
                summary = r.get("description") or str(r.get("content") or "")[:300]
                current.append({"source": f"News {i + 1}", "content": f"{r.get('title') or ''}: {summary}"})
            continue

        if data.get("content"):
            current.append({"source": data.get("url") or node_id, "content": str(data["content"])[:500]})
            continue

        if data.get("extracted"):
            current.append({"source": "Document Extract", "content": json.dumps(data["extracted"], indent=2)})

    return current, historical, ticker


def build_prompt(
    request: str,
    inputs: Mapping[str, Any],
    trigger_data: Optional[Mapping[str, Any]],
) -> Tuple[str, Dict[str, Any]]:
    """Build the user message and the metadata describing what went into it"""
    current, historical, ticker = categorize_inputs(inputs, trigger_data)

    if historical:
        prompt = ANALYST_TEMPLATE.format(
            current="\n".join(f"- {d['source']}: {d['content']}" for d in current) or "- None",
            historical="\n".join(
                f"- [{h.get('date', '')}] {h.get('title', '')}: {h.get('excerpt', '')}" for h in historical
            ),
            ticker=ticker or "Unknown",
            request=request,
        )
    else:
        summary = json.dumps({"inputs": inputs, "trigger_data": trigger_data}, indent=2, default=str)
        prompt = f"{request}\n\nInput Data:\n{summary}"

    meta = {
        "used_retrieval": bool(historical),
        "retrieval_results": len(historical),
        "ticker": ticker,
    }
    return prompt, meta


class AIHandler(BaseHandler):
    """Chat completion handler for ``ai`` nodes"""

    service = "ai"

    def __init__(self, config: Optional[Config] = None, openai_client: Optional[AsyncOpenAI] = None):
        super().__init__(config or get_config())
        self._openai = openai_client

    @property
    def openai(self) -> AsyncOpenAI:
        if self._openai is None:
            self._openai = create_openai_client(purpose="AI nodes")
        return self._openai

    async def __call__(
        self,
        config: Dict[str, Any],
        inputs: Dict[str, Any],
        trigger_data: Dict[str, Any],
        business_context: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        request = self.render(config.get("prompt") or DEFAULT_PROMPT, trigger_data, inputs)
        prompt, meta = build_prompt(request, inputs, trigger_data)
        model = config.get("model") or self.config.ai_model

        messages = []
        system_prompt = config_value(config, "system_prompt", "systemPrompt")
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        self.logger.info(f"Calling {model} (retrieval context: {meta['used_retrieval']})")
        try:
            response = await self.openai.chat.completions.create(
                model=model,
                messages=messages,
                max_completion_tokens=self.config.ai_max_tokens,
            )
        except openai.OpenAIError as e:
            raise ServiceUnavailableError(f"OpenAI request failed: {e}", service="openai")

        text = response.choices[0].message.content or ""
        return {"response": text, "model": model, "meta": meta}
