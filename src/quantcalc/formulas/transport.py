"""Plain-data transport format for formula ASTs.

An AST can be parsed in one call and evaluated in a later one, so the
wire shape is fixed.  Each node is a single-key object whose key is the
node tag::

    {"literal": 2.5}
    {"identifier": "revenue"}
    {"call": {"name": "max", "args": [<node>, ...]}}
    {"binaryOp": {"op": "+", "left": <node>, "right": <node>}}
"""

from __future__ import annotations

import json
from typing import Any

from quantcalc.formulas.ast import (
    OPERATORS,
    BinaryOp,
    Expr,
    FunctionCall,
    Identifier,
    Literal,
)
from quantcalc.formulas.errors import FormulaDepthError, MalformedAstError
from quantcalc.formulas.parser import (
    DEFAULT_MAX_DEPTH,
    MAX_DEPTH_CEILING,
    clamp_depth,
)

TAG_LITERAL = "literal"
TAG_IDENTIFIER = "identifier"
TAG_CALL = "call"
TAG_BINARY_OP = "binaryOp"

_TAGS = (TAG_LITERAL, TAG_IDENTIFIER, TAG_CALL, TAG_BINARY_OP)


def to_payload(expr: Expr) -> dict[str, Any]:
    """Serialize an AST to the tagged plain-data shape."""
    if isinstance(expr, Literal):
        return {TAG_LITERAL: expr.value}
    if isinstance(expr, Identifier):
        return {TAG_IDENTIFIER: expr.name}
    if isinstance(expr, FunctionCall):
        return {
            TAG_CALL: {
                "name": expr.name,
                "args": list(map(to_payload, expr.args)),
            }
        }
    if isinstance(expr, BinaryOp):
        return {
            TAG_BINARY_OP: {
                "op": expr.op,
                "left": to_payload(expr.left),
                "right": to_payload(expr.right),
            }
        }
    raise TypeError(f"Not an AST node: {type(expr).__name__}")


def from_payload(data: Any, *, max_depth: int = DEFAULT_MAX_DEPTH) -> Expr:
    """Rebuild an AST from its tagged plain-data shape.

    Args:
        data: Decoded payload (dicts, lists, numbers, strings).
        max_depth: Maximum nesting accepted.

    Returns:
        The root AST node.

    Raises:
        MalformedAstError: If any node does not match the transport shape.
        FormulaDepthError: If the payload nests deeper than *max_depth*.
    """
    return _decode(data, "", 1, clamp_depth(max_depth))


def _decode(data: Any, path: str, depth: int, max_depth: int) -> Expr:
    if depth > max_depth:
        raise FormulaDepthError(max_depth, where="AST payload")
    if not isinstance(data, dict) or len(data) != 1:
        raise MalformedAstError("expected an object with exactly one tag key", path)

    (tag, body), = data.items()
    if tag not in _TAGS:
        raise MalformedAstError(
            f"unknown tag {tag!r}; expected one of {list(_TAGS)}", path
        )
    here = f"{path}/{tag}"

    if tag == TAG_LITERAL:
        if isinstance(body, bool) or not isinstance(body, (int, float)):
            raise MalformedAstError("literal must be a number", here)
        try:
            value = float(body)
        except OverflowError:
            raise MalformedAstError("literal out of range", here) from None
        return Literal(value=value)

    if tag == TAG_IDENTIFIER:
        if not isinstance(body, str):
            raise MalformedAstError("identifier must be a string", here)
        return Identifier(name=body)

    if tag == TAG_CALL:
        _require_fields(body, ("name", "args"), here)
        if not isinstance(body["name"], str):
            raise MalformedAstError("call name must be a string", f"{here}/name")
        if not isinstance(body["args"], list):
            raise MalformedAstError("call args must be an array", f"{here}/args")
        args = []
        for i, arg in enumerate(body["args"]):
            args.append(_decode(arg, f"{here}/args/{i}", depth + 1, max_depth))
        return FunctionCall(name=body["name"], args=tuple(args))

    _require_fields(body, ("op", "left", "right"), here)
    if body["op"] not in OPERATORS:
        raise MalformedAstError(
            f"op must be one of {list(OPERATORS)}, got {body['op']!r}", f"{here}/op"
        )
    left = _decode(body["left"], f"{here}/left", depth + 1, max_depth)
    right = _decode(body["right"], f"{here}/right", depth + 1, max_depth)
    return BinaryOp(op=body["op"], left=left, right=right)


def _require_fields(body: Any, fields: tuple[str, ...], path: str) -> None:
    if not isinstance(body, dict):
        raise MalformedAstError("expected an object", path)
    missing = [f for f in fields if f not in body]
    if missing:
        raise MalformedAstError(f"missing field(s) {missing}", path)
    extra = sorted(set(body) - set(fields))
    if extra:
        raise MalformedAstError(f"unexpected field(s) {extra}", path)


def dumps(expr: Expr) -> str:
    """Serialize an AST to a JSON string."""
    try:
        return json.dumps(to_payload(expr))
    except RecursionError as exc:
        raise FormulaDepthError(MAX_DEPTH_CEILING, where="AST") from exc


def loads(text: str, *, max_depth: int = DEFAULT_MAX_DEPTH) -> Expr:
    """Deserialize a JSON string produced by ``dumps()``."""
    try:
        data = json.loads(text)
    except RecursionError as exc:
        raise FormulaDepthError(clamp_depth(max_depth), where="AST payload") from exc
    except ValueError as exc:
        # JSONDecodeError, or an integer beyond the int-to-str digit limit
        raise MalformedAstError(f"invalid JSON: {exc}") from exc
    return from_payload(data, max_depth=max_depth)
