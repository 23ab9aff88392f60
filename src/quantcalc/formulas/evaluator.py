"""Tree-walking evaluator for parsed formula ASTs.

Evaluation is pure: the same AST and context always produce the same
float.  Division by zero yields ``0.0`` instead of raising.
"""

from __future__ import annotations

from collections.abc import Mapping

from quantcalc.formulas.ast import BinaryOp, Expr, FunctionCall, Identifier, Literal
from quantcalc.formulas.errors import FormulaDepthError, FormulaError, FormulaRefError
from quantcalc.formulas.parser import DEFAULT_MAX_DEPTH, clamp_depth
from quantcalc.functions import get_function


def evaluate_formula(
    expr: Expr,
    context: Mapping[str, float],
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> float:
    """Evaluate a formula AST against a numeric context.

    Args:
        expr: AST from ``parse_formula()`` or ``transport.from_payload()``.
        context: Mapping of identifier names to their values.
        max_depth: Maximum tree depth walked before giving up.  Values above
            ``MAX_DEPTH_CEILING`` are lowered to it.

    Returns:
        The computed value.

    Raises:
        FormulaRefError: If an identifier is missing from *context*.
        FormulaFunctionError: If a function is unknown or called with the
            wrong number of arguments.
        FormulaDepthError: If the tree is deeper than *max_depth*.
    """
    return _eval(expr, context, 1, clamp_depth(max_depth))


def _eval(node: Expr, ctx: Mapping[str, float], depth: int, max_depth: int) -> float:
    """Recursively evaluate *node*, which sits at *depth* in the tree."""
    if depth > max_depth:
        raise FormulaDepthError(max_depth, where="AST")

    if isinstance(node, Literal):
        return node.value

    if isinstance(node, Identifier):
        if node.name not in ctx:
            raise FormulaRefError(node.name, available=sorted(ctx.keys()))
        return float(ctx[node.name])

    if isinstance(node, BinaryOp):
        # Both sides are always evaluated, left first.
        left = _eval(node.left, ctx, depth + 1, max_depth)
        right = _eval(node.right, ctx, depth + 1, max_depth)
        if node.op == "+":
            return left + right
        if node.op == "-":
            return left - right
        if node.op == "*":
            return left * right
        if node.op == "/":
            if right == 0.0:
                return 0.0
            return left / right
        raise FormulaError(f"Unknown operator: {node.op!r}")

    if isinstance(node, FunctionCall):
        args = [_eval(arg, ctx, depth + 1, max_depth) for arg in node.args]
        spec = get_function(node.name, len(args))
        return float(spec.fn(args))

    raise FormulaError(f"Unknown node type: {type(node).__name__}")
