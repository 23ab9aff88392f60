"""Arithmetic formula parsing and evaluation.

Public API::

    from quantcalc.formulas import parse_formula, evaluate_formula
"""

from quantcalc.formulas.ast import (
    BinaryOp,
    Expr,
    FunctionCall,
    Identifier,
    Literal,
    ast_depth,
)
from quantcalc.formulas.errors import (
    ENGINE_ERRORS,
    ComputeLengthError,
    FormulaDepthError,
    FormulaError,
    FormulaFunctionError,
    FormulaParseError,
    FormulaRefError,
    MalformedAstError,
)
from quantcalc.formulas.evaluator import evaluate_formula
from quantcalc.formulas.parser import (
    DEFAULT_MAX_DEPTH,
    MAX_DEPTH_CEILING,
    clamp_depth,
    extract_functions,
    extract_identifiers,
    parse_formula,
)
from quantcalc.formulas.transport import dumps, from_payload, loads, to_payload

__all__ = [
    "BinaryOp",
    "ComputeLengthError",
    "DEFAULT_MAX_DEPTH",
    "ENGINE_ERRORS",
    "MAX_DEPTH_CEILING",
    "Expr",
    "FormulaDepthError",
    "FormulaError",
    "FormulaFunctionError",
    "FormulaParseError",
    "FormulaRefError",
    "FunctionCall",
    "Identifier",
    "Literal",
    "MalformedAstError",
    "ast_depth",
    "clamp_depth",
    "dumps",
    "evaluate_formula",
    "extract_functions",
    "extract_identifiers",
    "from_payload",
    "loads",
    "parse_formula",
    "to_payload",
]
