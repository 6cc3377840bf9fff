# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Tests for condition nodes
"""

import pytest

from flowgate.core.errors import ValidationError
from flowgate.executors.condition import execute_condition


def test_reads_inputs_trigger_and_context():
    result = execute_condition(
        {"expression": "inputs['fetch-1'].total_results > 0 && trigger.amount >= 100 && context.trend == 'down'"},
        {"fetch-1": {"total_results": 2}},
        {"amount": 150},
        {"trend": "down"},
    )
    assert result == {"result": True}


def test_false_result():
    assert execute_condition({"expression": "trigger.amount > 1000"}, {}, {"amount": 5}) == {"result": False}


def test_missing_context_is_empty():
    assert execute_condition({"expression": "context.trend == null"}, {}, {}) == {"result": True}


def test_missing_expression():
    with pytest.raises(ValidationError, match="expression"):
        execute_condition({}, {}, {})


def test_unsafe_expression_raises():
    with pytest.raises(ValueError):
        execute_condition({"expression": "__import__('os')"}, {}, {})
