# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Tests for email delivery and approval notifications
"""

import json

import httpx
import pytest

from flowgate.core.config import Config
from flowgate.core.errors import ConfigurationError, ServiceUnavailableError, ValidationError
from flowgate.executors.notify import (
    RESEND_API_URL,
    EmailApprovalNotifier,
    NotifyHandler,
    ResendClient,
    render_approval_email,
)


def resend_ok(request):
    return httpx.Response(200, json={"id": "msg_123"})


@pytest.fixture
def transport(mock_http):
    return mock_http(resend_ok)


@pytest.fixture
def client(config, transport, secrets):
    return ResendClient(config, http_client=transport.client())


def sent(transport, index=0):
    return json.loads(transport.requests[index].content)


@pytest.mark.asyncio
async def test_send(client, transport, config):
    message_id = await client.send("a@example.com, b@example.com", "Hello", "<p>Hi</p>", "Hi")

    assert message_id == "msg_123"
    request = transport.requests[0]
    assert str(request.url) == f"{RESEND_API_URL}/emails"
    assert request.headers["Authorization"] == "Bearer re_test_key_123456"
    assert sent(transport) == {
        "from": config.email_from,
        "to": ["a@example.com", "b@example.com"],
        "subject": "Hello",
        "html": "<p>Hi</p>",
        "text": "Hi",
    }


@pytest.mark.asyncio
async def test_send_requires_api_key(config, monkeypatch):
    monkeypatch.delenv("RESEND_API_KEY", raising=False)

    with pytest.raises(ConfigurationError, match="RESEND_API_KEY"):
        await ResendClient(config).send("a@example.com", "Hi", "x")


@pytest.mark.asyncio
async def test_send_rejected(config, mock_http, secrets):
    transport = mock_http(lambda request: httpx.Response(422, json={"message": "Invalid from"}))

    with pytest.raises(ServiceUnavailableError, match="HTTP 422"):
        await ResendClient(config, http_client=transport.client()).send("a@example.com", "Hi", "x")


@pytest.mark.asyncio
async def test_notify_with_configured_content(client, transport):
    result = await NotifyHandler(client)(
        {"to": "{{email}}", "subject": "Report for {{ticker}}", "contentHtml": "<p>{{ai.response}}</p>"},
        {"ai": {"response": "Hold"}},
        {"email": "cfo@example.com", "ticker": "ACME"},
    )

    assert result == {
        "message_id": "msg_123",
        "to": "cfo@example.com",
        "subject": "Report for ACME",
        "auto_generated": False,
    }
    assert sent(transport)["html"] == "<p>Hold</p>"
    assert "text" not in sent(transport)


@pytest.mark.asyncio
async def test_notify_auto_generates_report(client, transport):
    result = await NotifyHandler(client)(
        {"to": "cfo@example.com"},
        {"ai": {"response": "Sell <now>"}},
        {},
    )

    assert result["auto_generated"] is True
    assert result["subject"] == "Workflow Report"
    body = sent(transport)
    assert "Sell &lt;now&gt;" in body["html"]
    assert body["text"] == "AI Analysis\nSell <now>"


@pytest.mark.asyncio
async def test_notify_requires_recipient(client):
    with pytest.raises(ValidationError, match="Recipient"):
        await NotifyHandler(client)({}, {}, {})


def test_render_approval_email():
    bodies = render_approval_email(
        {"AI Analysis": "Cut spend", "Extracted Data": {"revenue": 1}},
        "https://flows.example.com/approve/x",
        "https://flows.example.com/reject/x",
    )

    assert "<li><strong>AI Analysis:</strong> Cut spend</li>" in bodies["html"]
    assert "href=\"https://flows.example.com/approve/x\"" in bodies["html"]
    assert "- Extracted Data: {\"revenue\": 1}" in bodies["text"]
    assert "To REJECT, click: https://flows.example.com/reject/x" in bodies["text"]


def test_render_approval_email_without_findings():
    bodies = render_approval_email({}, "a", "r")
    assert "No additional data" in bodies["html"]
    assert "- No additional data" in bodies["text"]


@pytest.mark.asyncio
async def test_email_approval_notifier(client, transport):
    await EmailApprovalNotifier(client).notify(
        "run_1_gate",
        {"to": "ops@example.com", "subject": "Approve?", "findings": {"AI Analysis": "Go"}},
        "https://x/approve",
        "https://x/reject",
    )

    body = sent(transport)
    assert body["to"] == ["ops@example.com"]
    assert body["subject"] == "Approve?"
    assert "https://x/approve" in body["text"]


@pytest.mark.asyncio
async def test_email_approval_notifier_uses_configured_defaults(mock_http, secrets):
    transport = mock_http(resend_ok)
    config = Config(log_format="text", approval_notify_to="fallback@example.com")
    notifier = EmailApprovalNotifier(ResendClient(config, http_client=transport.client()))

    await notifier.notify("id", {}, "a", "r")

    assert sent(transport)["to"] == ["fallback@example.com"]
    assert sent(transport)["subject"] == config.approval_subject


@pytest.mark.asyncio
async def test_email_approval_notifier_without_recipient(client, transport):
    await EmailApprovalNotifier(client).notify("id", {}, "a", "r")
    assert transport.requests == []
