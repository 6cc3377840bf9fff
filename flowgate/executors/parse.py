# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
External parse node (Reducto): parse a document into text or extract
structured fields with a JSON schema.

Long documents come back as a job; the handler polls until the job
completes, fails, or ``max_wait_ms`` elapses.
"""

import asyncio
import time
from typing import Any, Dict, List, Mapping, Optional

from flowgate.core.config import get_reducto_api_key
from flowgate.core.errors import ExecutionError, ServiceUnavailableError, ValidationError

from .base import BaseHandler, config_value, require_secret


REDUCTO_API_URL = "https://platform.reducto.ai"
DEFAULT_MAX_WAIT_MS = 60000
DEFAULT_POLL_INTERVAL_MS = 2000


def discover_document_url(inputs: Mapping[str, Any]) -> Optional[str]:
    """First PDF link found in upstream output"""
    candidates: List[str] = []
    for data in inputs.values():
        if not isinstance(data, Mapping):
            continue
        results = data.get("results")
        if isinstance(results, list):
            candidates.extend(r["url"] for r in results if isinstance(r, Mapping) and r.get("url"))
        if data.get("url"):
            candidates.append(data["url"])
        links = data.get("links")
        if isinstance(links, list):
            candidates.extend(link for link in links if isinstance(link, str))

    for url in candidates:
        if url.lower().split("?")[0].endswith(".pdf"):
            return url
    return None


def _chunks(result: Mapping[str, Any]) -> List[Dict[str, Any]]:
    return [
        {"content": chunk.get("content"), "metadata": chunk.get("metadata")}
        for chunk in result.get("chunks") or []
        if isinstance(chunk, Mapping)
    ]


class ParseHandler(BaseHandler):
    """Handler for ``external-parse`` nodes"""

    service = "reducto"

    def __init__(self, *args: Any, base_url: str = REDUCTO_API_URL, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.base_url = base_url.rstrip("/")

    async def __call__(
        self,
        config: Dict[str, Any],
        inputs: Dict[str, Any],
        trigger_data: Dict[str, Any],
        business_context: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        mode = config.get("mode") or "parse"
        if mode not in ("parse", "extract"):
            raise ValidationError(f"Unknown mode: {mode}", field="mode")

        schema = config.get("schema")
        if mode == "extract" and not schema:
            raise ValidationError("schema is required for extract mode", field="schema")

        document_url = self.render(config_value(config, "document_url", "documentUrl"), trigger_data, inputs)
        if not document_url:
            document_url = discover_document_url(inputs)
        if not document_url:
            raise ValidationError(f"documentUrl is required for {mode} mode", field="documentUrl")

        api_key = require_secret(get_reducto_api_key(), "REDUCTO_API_KEY", "external-parse nodes")
        headers = {"Authorization": f"Bearer {api_key}"}

        payload: Dict[str, Any] = {"document_url": document_url}
        if mode == "extract":
            payload["schema"] = schema

        self.logger.info(f"Reducto {mode}: {document_url}")
        body = await self.request_json(
            "POST",
            f"{self.base_url}/{mode}",
            json=payload,
            headers=headers,
            timeout=self.config.http_timeout_long,
        )

        if body.get("result") is None and body.get("job_id"):
            job_id = body["job_id"]
            if config_value(config, "wait_for_completion", "waitForCompletion", default=True) is False:
                return {"job_id": job_id, "status": "processing"}
            body = await self._poll(
                job_id,
                headers,
                max_wait_ms=int(config_value(config, "max_wait_ms", "maxWaitMs", default=DEFAULT_MAX_WAIT_MS)),
                poll_interval_ms=int(config_value(
                    config, "poll_interval_ms", "pollIntervalMs", default=DEFAULT_POLL_INTERVAL_MS
                )),
            )

        return self._format(mode, body)

    async def _poll(
        self,
        job_id: str,
        headers: Dict[str, str],
        max_wait_ms: int,
        poll_interval_ms: int,
    ) -> Dict[str, Any]:
        """Poll a job until it completes; raise on failure or when the wait is exhausted"""
        deadline = time.monotonic() + max_wait_ms / 1000
        self.logger.info(f"Polling Reducto job {job_id} (max {max_wait_ms}ms)")

        while True:
            try:
                job = await self.request_json("GET", f"{self.base_url}/job/{job_id}", headers=headers)
            except ServiceUnavailableError as e:
                self.logger.warning(f"Poll error for job {job_id}: {e}")
            else:
                status = str(job.get("status", "")).lower()
                if status == "completed":
                    self.logger.info(f"Reducto job {job_id} completed")
                    return {**job, "job_id": job_id}
                if status == "failed":
                    raise ExecutionError(f"Reducto job {job_id} failed: {job.get('reason') or job.get('error') or 'unknown error'}")

            if time.monotonic() + poll_interval_ms / 1000 > deadline:
                raise ExecutionError(f"Reducto job {job_id} timed out after {max_wait_ms}ms")
            await asyncio.sleep(poll_interval_ms / 1000)

    @staticmethod
    def _format(mode: str, body: Mapping[str, Any]) -> Dict[str, Any]:
        result = body.get("result")
        job_id = body.get("job_id")

        if mode == "extract":
            return {"job_id": job_id, "extracted": result}

        result = result if isinstance(result, Mapping) else {}
        chunks = _chunks(result)
        usage = body.get("usage") or {}
        return {
            "job_id": job_id,
            "text": "\n\n".join(c["content"] for c in chunks if c["content"]),
            "chunks": chunks,
            "pages": usage.get("num_pages"),
        }
