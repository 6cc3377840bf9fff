# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Tests for the error hierarchy and message sanitizing
"""

from flowgate.core.errors import (
    ConfigurationError,
    FlowgateError,
    NotFoundError,
    ServiceUnavailableError,
    sanitize_error_for_user,
)
from flowgate.workflow.exceptions import GraphLevelingError, NodeTimeoutException


def test_to_dict():
    error = ServiceUnavailableError("Resend returned 500", service="resend", details={"status": 500})

    assert error.to_dict() == {
        "error": "ServiceUnavailableError",
        "message": "Resend returned 500",
        "status_code": 503,
        "details": {"status": 500},
    }
    assert error.service == "resend"


def test_not_found_message():
    error = NotFoundError("Approval", "run_1_gate")
    assert str(error) == "Approval not found: run_1_gate"
    assert error.status_code == 404


def test_workflow_exceptions_share_base():
    assert isinstance(GraphLevelingError(["a", "b"]), FlowgateError)
    assert isinstance(NodeTimeoutException("a", "action", 1.5), FlowgateError)
    assert isinstance(ConfigurationError("missing key", config_key="OPENAI_API_KEY"), FlowgateError)


def test_sanitize_redacts_keys():
    error = RuntimeError("Auth failed for sk-abcdefghijklmnop with header Bearer re_1234567890abcd")
    message = sanitize_error_for_user(error)

    assert message.startswith("RuntimeError: ")
    assert "abcdefghijklmnop" not in message
    assert "sk-***" in message
    assert "Bearer ***" in message


def test_sanitize_truncates():
    message = sanitize_error_for_user(ValueError("x" * 800), include_type=False)
    assert message == "x" * 500 + "..."
