"""Immutable AST node models for parsed formulas.

Four node kinds form a closed tree: ``Literal``, ``Identifier``,
``FunctionCall`` and ``BinaryOp``.  Nodes are frozen Pydantic models,
so two parses of the same text compare equal and can be hashed.
"""

from __future__ import annotations

from collections.abc import Iterator

from pydantic import BaseModel, ConfigDict, field_validator

OPERATORS: tuple[str, ...] = ("+", "-", "*", "/")


class _Node(BaseModel):
    model_config = ConfigDict(frozen=True, strict=True)


class Literal(_Node):
    """A numeric constant."""

    value: float


class Identifier(_Node):
    """A reference to a context value."""

    name: str


class FunctionCall(_Node):
    """A built-in function applied to zero or more argument expressions."""

    name: str
    args: tuple[Expr, ...] = ()


class BinaryOp(_Node):
    """An arithmetic operator applied to two sub-expressions."""

    op: str
    left: Expr
    right: Expr

    @field_validator("op")
    @classmethod
    def _check_op(cls, v: str) -> str:
        if v not in OPERATORS:
            raise ValueError(f"unknown operator {v!r}")
        return v


Expr = Literal | Identifier | FunctionCall | BinaryOp

FunctionCall.model_rebuild()
BinaryOp.model_rebuild()


def children(node: Expr) -> tuple[Expr, ...]:
    """Return the direct sub-expressions of *node*, left to right."""
    if isinstance(node, BinaryOp):
        return (node.left, node.right)
    if isinstance(node, FunctionCall):
        return node.args
    return ()


def walk(expr: Expr) -> Iterator[Expr]:
    """Yield every node of *expr* in pre-order without recursing."""
    stack = [expr]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(children(node)))


def ast_depth(expr: Expr) -> int:
    """Depth of the tree rooted at *expr*; a lone leaf has depth 1."""
    deepest = 0
    stack = [(expr, 1)]
    while stack:
        node, depth = stack.pop()
        if depth > deepest:
            deepest = depth
        for child in children(node):
            stack.append((child, depth + 1))
    return deepest
