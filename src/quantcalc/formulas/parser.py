"""Lark-based parser for arithmetic formulas.

Supports:
- Numeric literals with optional sign, fraction and exponent: ``-2.5``, ``3e4``
- Identifiers resolved against the evaluation context: ``revenue``
- Function calls: ``max(a, b, 3)``
- ``+ - * /`` with the usual precedence, all left-associative
- Parentheses
"""

from __future__ import annotations

from lark import Lark, Transformer_NonRecursive
from lark.exceptions import UnexpectedCharacters, UnexpectedInput, UnexpectedToken

from quantcalc.formulas.ast import (
    BinaryOp,
    Expr,
    FunctionCall,
    Identifier,
    Literal,
    ast_depth,
    walk,
)
from quantcalc.formulas.errors import FormulaDepthError, FormulaParseError

DEFAULT_MAX_DEPTH = 200

# Upper bound on any requested depth; the evaluator and transport codec
# recurse once per level and must stay inside the interpreter stack.
MAX_DEPTH_CEILING = 500

# LALR(1) grammar.  Operator precedence (lowest to highest):
#   1. Addition/subtraction: + -
#   2. Multiplication/division: * /
#   3. Atoms: number, function call, identifier, parenthesized expr
# There is no unary operator; a sign is only valid as part of a number.
GRAMMAR = r"""
?start: expr

?expr: term
    | expr "+" term   -> add
    | expr "-" term   -> sub

?term: factor
    | term "*" factor  -> mul
    | term "/" factor  -> div

?factor: SIGNED_NUMBER          -> number
    | NAME "(" args ")"         -> func_call
    | NAME                      -> identifier
    | "(" expr ")"

args: expr ("," expr)*
    |

NAME: /[A-Za-z_][A-Za-z0-9_]*/

%import common.SIGNED_NUMBER
%import common.WS
%ignore WS
"""

_parser = Lark(GRAMMAR, parser="lalr", start="start")

_TERMINAL_NAMES = {
    "PLUS": "'+'",
    "MINUS": "'-'",
    "STAR": "'*'",
    "SLASH": "'/'",
    "LPAR": "'('",
    "RPAR": "')'",
    "COMMA": "','",
    "NAME": "identifier",
    "SIGNED_NUMBER": "number",
    "$END": "end of formula",
}


class _AstBuilder(Transformer_NonRecursive):
    """Convert the Lark parse tree into AST nodes without recursing."""

    def number(self, children: list) -> Literal:
        return Literal(value=float(children[0]))

    def identifier(self, children: list) -> Identifier:
        return Identifier(name=str(children[0]))

    def args(self, children: list) -> tuple:
        return tuple(children)

    def func_call(self, children: list) -> FunctionCall:
        name, args = children
        return FunctionCall(name=str(name), args=args)

    def add(self, children: list) -> BinaryOp:
        return BinaryOp(op="+", left=children[0], right=children[1])

    def sub(self, children: list) -> BinaryOp:
        return BinaryOp(op="-", left=children[0], right=children[1])

    def mul(self, children: list) -> BinaryOp:
        return BinaryOp(op="*", left=children[0], right=children[1])

    def div(self, children: list) -> BinaryOp:
        return BinaryOp(op="/", left=children[0], right=children[1])


def parse_formula(text: str, *, max_depth: int = DEFAULT_MAX_DEPTH) -> Expr:
    """Parse formula text into an AST.

    The entire input must form one expression; surrounding whitespace is
    ignored.

    Args:
        text: The formula text, e.g. ``"revenue * (1 - tax_rate)"``.
        max_depth: Maximum allowed tree depth.  Values above
            ``MAX_DEPTH_CEILING`` are lowered to it.

    Returns:
        The root AST node.

    Raises:
        FormulaParseError: If the formula has invalid syntax or trailing input.
        FormulaDepthError: If the expression nests deeper than *max_depth*.
    """
    try:
        tree = _parser.parse(text)
    except UnexpectedInput as exc:
        raise _syntax_error(text, exc) from exc

    expr = _AstBuilder().transform(tree)
    max_depth = clamp_depth(max_depth)
    if ast_depth(expr) > max_depth:
        raise FormulaDepthError(max_depth, where="Formula")
    return expr


def clamp_depth(max_depth: int) -> int:
    """Return *max_depth* bounded by ``MAX_DEPTH_CEILING``."""
    return min(max_depth, MAX_DEPTH_CEILING)


def _syntax_error(text: str, exc: UnexpectedInput) -> FormulaParseError:
    """Translate a Lark error into a FormulaParseError with position info."""
    if isinstance(exc, UnexpectedToken) and exc.token.type == "$END":
        return FormulaParseError(
            f"unexpected end of formula; expected {_expected(exc.expected)}",
            position=len(text),
        )

    pos = exc.pos_in_stream
    if pos and _parses(text[:pos]):
        remainder = text[pos:]
        return FormulaParseError(
            f"unconsumed input after expression: {remainder!r}",
            position=pos,
            remainder=remainder,
        )

    if isinstance(exc, UnexpectedToken):
        message = (
            f"unexpected token {str(exc.token)!r}; "
            f"expected {_expected(exc.expected)}"
        )
    elif isinstance(exc, UnexpectedCharacters):
        message = f"unexpected character {exc.char!r}"
    else:
        message = str(exc)
    return FormulaParseError(message, position=pos)


def _parses(prefix: str) -> bool:
    """Return True if *prefix* alone is a complete expression."""
    try:
        _parser.parse(prefix)
    except UnexpectedInput:
        return False
    return True


def _expected(terminals: set[str]) -> str:
    names = sorted(_TERMINAL_NAMES.get(t, t) for t in terminals)
    return "one of " + ", ".join(names) if len(names) > 1 else "".join(names)


def extract_identifiers(expr: Expr) -> set[str]:
    """Collect every identifier name referenced by *expr*."""
    return {node.name for node in walk(expr) if isinstance(node, Identifier)}


def extract_functions(expr: Expr) -> set[str]:
    """Collect every function name called by *expr*."""
    return {node.name for node in walk(expr) if isinstance(node, FunctionCall)}
