# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Email delivery through Resend.

- ``NotifyHandler`` runs ``external-notify`` nodes. Without configured
  content it mails a report built from upstream findings.
- ``EmailApprovalNotifier`` plugs into the approval gate and mails the
  approve/reject links.
"""

import html
import json
from typing import Any, Dict, List, Optional, Union

import httpx

from flowgate.core.config import Config, get_resend_api_key
from flowgate.core.errors import ServiceUnavailableError, ValidationError
from flowgate.workflow.approval import ApprovalNotifier
from flowgate.workflow.findings import extract_findings, render_findings_html, render_findings_text

from .base import BaseHandler, config_value, require_secret


RESEND_API_URL = "https://api.resend.com"


class ResendClient(BaseHandler):
    """Minimal Resend emails API client"""

    service = "resend"

    def __init__(
        self,
        config: Optional[Config] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        base_url: str = RESEND_API_URL,
    ):
        super().__init__(config, http_client)
        self.base_url = base_url.rstrip("/")

    async def send(
        self,
        to: Union[str, List[str]],
        subject: str,
        html_body: Optional[str] = None,
        text_body: Optional[str] = None,
    ) -> Optional[str]:
        """
        Send one email.

        Returns:
            The Resend message id

        Raises:
            ConfigurationError: If RESEND_API_KEY is not set
            ServiceUnavailableError: If Resend rejects the message
        """
        api_key = require_secret(get_resend_api_key(), "RESEND_API_KEY", "sending email")
        recipients = to if isinstance(to, list) else [addr.strip() for addr in to.split(",") if addr.strip()]

        payload: Dict[str, Any] = {
            "from": self.config.email_from,
            "to": recipients,
            "subject": subject,
            "html": html_body or text_body or "No content",
        }
        if text_body:
            payload["text"] = text_body

        self.logger.info(f"Sending email to {', '.join(recipients)}: {subject}")
        data = await self.request_json(
            "POST",
            f"{self.base_url}/emails",
            json=payload,
            headers={"Authorization": f"Bearer {api_key}"},
        )
        if data.get("error"):
            raise ServiceUnavailableError(f"Resend rejected the email: {data['error']}", service="resend")
        return data.get("id")


class NotifyHandler:
    """Handler for ``external-notify`` nodes"""

    def __init__(self, client: ResendClient):
        self.client = client

    async def __call__(
        self,
        config: Dict[str, Any],
        inputs: Dict[str, Any],
        trigger_data: Dict[str, Any],
        business_context: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        render = self.client.render
        to = render(config.get("to"), trigger_data, inputs)
        if not to:
            raise ValidationError("Recipient 'to' is required for external-notify nodes", field="to")

        subject = render(config.get("subject") or "Workflow Report", trigger_data, inputs)
        content_html = render(config_value(config, "content_html", "contentHtml"), trigger_data, inputs)
        content_text = render(config_value(config, "content_text", "contentText"), trigger_data, inputs)

        auto_generated = not content_html
        if auto_generated:
            findings = extract_findings(inputs)
            content_html = render_findings_html(findings, title=subject)
            content_text = content_text or render_findings_text(findings)

        message_id = await self.client.send(to, subject, content_html, content_text)
        return {
            "message_id": message_id,
            "to": to,
            "subject": subject,
            "auto_generated": auto_generated,
        }


def render_approval_email(
    findings: Dict[str, Any],
    approve_url: str,
    reject_url: str,
) -> Dict[str, str]:
    """HTML and plain-text bodies of an approval request"""
    if findings:
        items = "".join(
            f"<li><strong>{html.escape(str(key))}:</strong> "
            f"{html.escape(value if isinstance(value, str) else json.dumps(value, default=str))}</li>"
            for key, value in findings.items()
        )
        lines = "\n".join(
            f"- {key}: {value if isinstance(value, str) else json.dumps(value, default=str)}"
            for key, value in findings.items()
        )
    else:
        items = "<li>No additional data</li>"
        lines = "- No additional data"

    html_body = (
        "<!DOCTYPE html><html><body style=\"font-family:sans-serif;max-width:600px;margin:0 auto\">"
        "<h1>Approval Required</h1><p>A workflow is waiting for your approval.</p>"
        f"<h2>Proposed Changes</h2><ul>{items}</ul>"
        f"<p><a href=\"{html.escape(approve_url)}\">Approve</a> | "
        f"<a href=\"{html.escape(reject_url)}\">Reject</a></p>"
        "</body></html>"
    )
    text_body = (
        "APPROVAL REQUIRED\n\n"
        "A workflow is waiting for your approval.\n\n"
        f"Proposed Changes:\n{lines}\n\n"
        f"To APPROVE, click: {approve_url}\n\n"
        f"To REJECT, click: {reject_url}"
    )
    return {"html": html_body, "text": text_body}


class EmailApprovalNotifier(ApprovalNotifier):
    """
    Mails approval requests.

    The recipient comes from the payload's ``to`` (set by the approval node)
    or the configured ``approval.notify_to``. With neither, the request is
    only logged.
    """

    def __init__(self, client: ResendClient):
        self.client = client

    async def notify(
        self,
        approval_id: str,
        payload: Dict[str, Any],
        approve_url: str,
        reject_url: str
    ) -> None:
        to = payload.get("to") or self.client.config.approval_notify_to
        if not to:
            self.client.logger.warning(f"No recipient for approval {approval_id}; links: {approve_url} {reject_url}")
            return

        subject = payload.get("subject") or self.client.config.approval_subject
        bodies = render_approval_email(payload.get("findings") or {}, approve_url, reject_url)
        await self.client.send(to, subject, bodies["html"], bodies["text"])
