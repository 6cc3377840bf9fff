# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Safe Condition Evaluator

AST-based evaluation of the boolean expressions carried by condition nodes.
Prevents arbitrary code execution while allowing comparisons, boolean logic
and lookups into upstream data, e.g.::

    inputs.trigger.amount > 100 and context.trend == "down"
    inputs['ai-1'].response != null && !trigger.test

JavaScript spellings (``&&``, ``||``, ``!``, ``===``, ``!==``, ``true``,
``false``, ``null``, ``undefined``) are accepted for graphs authored in the
visual editor.
"""

import ast
import operator
from typing import Dict, Any, Mapping


# Allowed operators for safe evaluation
SAFE_OPERATORS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.Mod: operator.mod,
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.Not: operator.not_,
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
    ast.In: lambda x, y: x in y,
    ast.NotIn: lambda x, y: x not in y,
    ast.Is: operator.is_,
    ast.IsNot: operator.is_not,
}


# Allowed functions for safe evaluation
SAFE_FUNCTIONS = {
    'len': len,
    'str': str,
    'int': int,
    'float': float,
    'bool': bool,
    'abs': abs,
    'min': min,
    'max': max,
}


JS_CONSTANTS = {
    'true': True,
    'false': False,
    'null': None,
    'undefined': None,
}


class SafeEvaluator(ast.NodeVisitor):
    """
    AST-based safe evaluator for boolean expressions.

    Restricts evaluation to:
    - Basic arithmetic and comparison operators
    - Logical operators (and, or, not)
    - Safe built-in functions (len, str, int, etc.)
    - Variable references from provided context, with attribute and
      subscript access into dicts and lists
    """

    def __init__(self, variables: Mapping[str, Any]):
        self.variables = variables

    def visit_Expression(self, node):
        return self.visit(node.body)

    def visit_Constant(self, node):
        return node.value

    def visit_Name(self, node):
        if node.id in self.variables:
            return self.variables[node.id]
        elif node.id in JS_CONSTANTS:
            return JS_CONSTANTS[node.id]
        elif node.id in SAFE_FUNCTIONS:
            return SAFE_FUNCTIONS[node.id]
        else:
            raise ValueError(f"Undefined variable: {node.id}")

    def visit_Attribute(self, node):
        # inputs.trigger.amount - attribute access reads dict keys only
        if node.attr.startswith("_"):
            raise ValueError(f"Attribute not allowed: {node.attr}")
        return _lookup(self.visit(node.value), node.attr)

    def visit_Subscript(self, node):
        return _lookup(self.visit(node.value), self.visit(node.slice))

    def visit_List(self, node):
        return [self.visit(item) for item in node.elts]

    def visit_Tuple(self, node):
        return tuple(self.visit(item) for item in node.elts)

    def visit_BinOp(self, node):
        left = self.visit(node.left)
        right = self.visit(node.right)
        op_type = type(node.op)

        if op_type not in SAFE_OPERATORS:
            raise ValueError(f"Operator not allowed: {op_type.__name__}")

        return SAFE_OPERATORS[op_type](left, right)

    def visit_UnaryOp(self, node):
        operand = self.visit(node.operand)
        op_type = type(node.op)

        if op_type not in SAFE_OPERATORS:
            raise ValueError(f"Operator not allowed: {op_type.__name__}")

        return SAFE_OPERATORS[op_type](operand)

    def visit_Compare(self, node):
        left = self.visit(node.left)

        for op, comparator in zip(node.ops, node.comparators):
            right = self.visit(comparator)
            op_type = type(op)

            if op_type not in SAFE_OPERATORS:
                raise ValueError(f"Operator not allowed: {op_type.__name__}")

            try:
                result = SAFE_OPERATORS[op_type](left, right)
            except TypeError:
                # Missing upstream data (None) never satisfies an ordering
                if left is None or right is None:
                    return False
                raise

            if not result:
                return False

            left = right

        return True

    def visit_BoolOp(self, node):
        if isinstance(node.op, ast.And):
            for value in node.values:
                if not self.visit(value):
                    return False
            return True
        elif isinstance(node.op, ast.Or):
            for value in node.values:
                if self.visit(value):
                    return True
            return False
        else:
            raise ValueError(f"Boolean operator not allowed: {type(node.op).__name__}")

    def visit_Call(self, node):
        func = self.visit(node.func)

        if func not in SAFE_FUNCTIONS.values():
            raise ValueError(f"Function not allowed: {getattr(node.func, 'id', 'unknown')}")

        args = [self.visit(arg) for arg in node.args]
        kwargs = {kw.arg: self.visit(kw.value) for kw in node.keywords}

        return func(*args, **kwargs)

    def generic_visit(self, node):
        raise ValueError(f"AST node type not allowed: {type(node).__name__}")


def _lookup(container: Any, key: Any) -> Any:
    """Dict key or list index lookup; anything missing reads as None"""
    if isinstance(container, Mapping):
        return container.get(key)
    if isinstance(container, (list, tuple)) and isinstance(key, int):
        return container[key] if -len(container) <= key < len(container) else None
    return None


def translate_js_operators(expression: str) -> str:
    """
    Rewrite JavaScript boolean/equality operators to Python, leaving string
    literals untouched.
    """
    out = []
    i = 0
    quote = None
    length = len(expression)

    while i < length:
        ch = expression[i]

        if quote:
            out.append(ch)
            if ch == "\\" and i + 1 < length:
                out.append(expression[i + 1])
                i += 2
                continue
            if ch == quote:
                quote = None
            i += 1
            continue

        if ch in ("'", '"'):
            quote = ch
            out.append(ch)
            i += 1
            continue

        three = expression[i:i + 3]
        two = expression[i:i + 2]
        if three == "===":
            out.append("==")
            i += 3
        elif three == "!==":
            out.append("!=")
            i += 3
        elif two == "&&":
            out.append(" and ")
            i += 2
        elif two == "||":
            out.append(" or ")
            i += 2
        elif ch == "!" and two != "!=":
            out.append(" not ")
            i += 1
        else:
            out.append(ch)
            i += 1

    return "".join(out)


def evaluate_condition(condition: str, variables: Dict[str, Any]) -> bool:
    """
    Safely evaluate a boolean condition string.

    Args:
        condition: Expression string (e.g., "inputs.trigger.amount > 100")
        variables: Variable context mapping names to values

    Returns:
        Boolean result of evaluation

    Raises:
        ValueError: If condition is invalid or uses unsafe operations
        SyntaxError: If condition has syntax errors

    Examples:
        >>> evaluate_condition("amount > 5", {"amount": 10})
        True
        >>> evaluate_condition("ok && len(items) > 0", {"ok": True, "items": [1, 2, 3]})
        True
    """
    if not isinstance(condition, str) or not condition.strip():
        raise ValueError("Condition expression is empty")

    try:
        tree = ast.parse(translate_js_operators(condition).strip(), mode='eval')
    except SyntaxError as e:
        raise SyntaxError(f"Invalid condition syntax: {e}")

    try:
        evaluator = SafeEvaluator(variables)
        return bool(evaluator.visit(tree))
    except Exception as e:
        raise ValueError(f"Condition evaluation failed: {e}")
