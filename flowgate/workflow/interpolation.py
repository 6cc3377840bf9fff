# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Placeholder interpolation for node configuration.

Two independent passes, each reading a different scope:

- ``{{field}}`` is looked up in a flat context (usually the trigger payload).
- ``{{nodeId.field}}`` is looked up in upstream results, narrowing to
  ``results[nodeId].data[field]``. Deeper paths (``{{nodeId.a.b}}``) walk
  nested dicts.

Anything missing renders as an empty string. The functions never raise and
leave strings without placeholders untouched.
"""

import json
import re
from typing import Any, Mapping, Optional

from .models import ExecutionResult


SIMPLE_PATTERN = re.compile(r"\{\{([\w-]+)\}\}")
QUALIFIED_PATTERN = re.compile(r"\{\{([\w-]+)((?:\.[\w-]+)+)\}\}")


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list, bool)):
        return json.dumps(value, default=str)
    return str(value)


def _get_nested_value(obj: Any, path: str) -> Any:
    """Get nested value using dot notation"""
    current = obj
    for part in path.split("."):
        if isinstance(current, Mapping):
            current = current.get(part)
        else:
            return None
    return current


def _node_data(results: Mapping[str, Any], node_id: str) -> Any:
    entry = results.get(node_id)
    if isinstance(entry, ExecutionResult):
        return entry.data
    return entry


def interpolate_simple(template: Any, context: Optional[Mapping[str, Any]]) -> Any:
    """Replace ``{{field}}`` tokens with values from a flat context."""
    if not isinstance(template, str) or "{{" not in template:
        return template
    context = context if isinstance(context, Mapping) else {}
    return SIMPLE_PATTERN.sub(lambda m: _stringify(context.get(m.group(1))), template)


def interpolate_qualified(template: Any, results: Optional[Mapping[str, Any]]) -> Any:
    """
    Replace ``{{nodeId.field}}`` tokens with upstream node output.

    ``results`` may be a run's results map (``ExecutionResult`` values) or a
    gathered inputs map (``{node_id: data}``).
    """
    if not isinstance(template, str) or "{{" not in template:
        return template
    results = results if isinstance(results, Mapping) else {}

    def replace(match: "re.Match[str]") -> str:
        data = _node_data(results, match.group(1))
        return _stringify(_get_nested_value(data, match.group(2)[1:]))

    return QUALIFIED_PATTERN.sub(replace, template)


def interpolate(
    template: Any,
    context: Optional[Mapping[str, Any]] = None,
    results: Optional[Mapping[str, Any]] = None,
) -> Any:
    """Simple pass against ``context`` followed by the qualified pass against ``results``."""
    return interpolate_qualified(interpolate_simple(template, context), results)


def interpolate_config(
    value: Any,
    context: Optional[Mapping[str, Any]] = None,
    results: Optional[Mapping[str, Any]] = None,
) -> Any:
    """Interpolate every string inside a (possibly nested) config value."""
    if isinstance(value, str):
        return interpolate(value, context, results)
    if isinstance(value, dict):
        return {key: interpolate_config(item, context, results) for key, item in value.items()}
    if isinstance(value, list):
        return [interpolate_config(item, context, results) for item in value]
    return value
