# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit tests for placeholder interpolation
"""

from flowgate.workflow.interpolation import (
    interpolate,
    interpolate_config,
    interpolate_qualified,
    interpolate_simple,
)
from flowgate.workflow.models import ExecutionResult, NodeStatus


def result(node_id, data, status=NodeStatus.SUCCESS):
    return ExecutionResult(node_id=node_id, status=status, data=data)


class TestSimple:
    def test_replaces_field(self):
        assert interpolate_simple("Hi {{name}}", {"name": "Ann"}) == "Hi Ann"

    def test_missing_field_renders_empty(self):
        assert interpolate_simple("Hi {{name}}!", {}) == "Hi !"

    def test_non_string_values_are_stringified(self):
        assert interpolate_simple("{{n}} / {{ok}} / {{none}}", {"n": 3, "ok": True, "none": None}) == "3 / true / "

    def test_no_placeholder_returns_input(self):
        template = "plain text"
        assert interpolate_simple(template, {"x": 1}) is template

    def test_non_string_template_unchanged(self):
        assert interpolate_simple(42, {"x": 1}) == 42
        assert interpolate_simple(None, {"x": 1}) is None

    def test_qualified_tokens_left_alone(self):
        assert interpolate_simple("{{a.b}}", {"a": {"b": 1}}) == "{{a.b}}"

    def test_missing_context(self):
        assert interpolate_simple("{{x}}", None) == ""


class TestQualified:
    def test_reads_result_data(self):
        results = {"fetch": result("fetch", {"title": "Q3 results"})}
        assert interpolate_qualified("News: {{fetch.title}}", results) == "News: Q3 results"

    def test_reads_plain_inputs_map(self):
        assert interpolate_qualified("{{ai.response}}", {"ai": {"response": "Buy"}}) == "Buy"

    def test_nested_path(self):
        inputs = {"parse": {"extracted": {"revenue": {"q3": 120}}}}
        assert interpolate_qualified("{{parse.extracted.revenue.q3}}", inputs) == "120"

    def test_hyphenated_node_id(self):
        assert interpolate_qualified("{{fetch-1.url}}", {"fetch-1": {"url": "https://x.io"}}) == "https://x.io"

    def test_failed_node_renders_empty(self):
        results = {"a": result("a", None, status=NodeStatus.ERROR)}
        assert interpolate_qualified("[{{a.value}}]", results) == "[]"

    def test_unknown_node_renders_empty(self):
        assert interpolate_qualified("[{{ghost.value}}]", {}) == "[]"

    def test_dict_value_rendered_as_json(self):
        assert interpolate_qualified("{{a.obj}}", {"a": {"obj": {"k": 1}}}) == '{"k": 1}'

    def test_simple_tokens_left_alone(self):
        assert interpolate_qualified("{{name}}", {"name": "x"}) == "{{name}}"


def test_interpolate_runs_both_passes():
    text = interpolate(
        "{{ticker}}: {{ai.response}}",
        {"ticker": "ACME"},
        {"ai": {"response": "hold"}},
    )
    assert text == "ACME: hold"


def test_interpolate_config_recurses():
    config = {
        "url": "https://api.example.com/{{ticker}}",
        "body": {"summary": "{{ai.response}}", "tags": ["{{ticker}}", 7]},
        "retries": 3,
    }
    rendered = interpolate_config(config, {"ticker": "ACME"}, {"ai": {"response": "hold"}})

    assert rendered == {
        "url": "https://api.example.com/ACME",
        "body": {"summary": "hold", "tags": ["ACME", 7]},
        "retries": 3,
    }
    assert config["url"] == "https://api.example.com/{{ticker}}"
