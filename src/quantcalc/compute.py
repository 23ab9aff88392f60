"""Batch compute: evaluate several named formulas against one context.

Every formula sees only the base context.  Computed values are never
visible to other formulas in the same call, and the first failing
formula aborts the whole call.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from uuid import uuid4

from quantcalc.formulas import (
    DEFAULT_MAX_DEPTH,
    ComputeLengthError,
    Expr,
    FormulaDepthError,
    FormulaError,
    FormulaFunctionError,
    FormulaParseError,
    FormulaRefError,
    MalformedAstError,
    evaluate_formula,
    parse_formula,
)
from quantcalc.logging.events import (
    COMPUTE_LENGTH_MISMATCH,
    FORMULA_DEPTH_ERROR,
    FORMULA_FUNCTION_ERROR,
    FORMULA_PARSE_ERROR,
    FORMULA_REF_ERROR,
    MALFORMED_AST_PAYLOAD,
    EventLevel,
    EventType,
    emit,
    make_compute_event,
)

logger = logging.getLogger(__name__)

_ERROR_CODES: dict[type[FormulaError], str] = {
    FormulaParseError: FORMULA_PARSE_ERROR,
    FormulaRefError: FORMULA_REF_ERROR,
    FormulaFunctionError: FORMULA_FUNCTION_ERROR,
    FormulaDepthError: FORMULA_DEPTH_ERROR,
    ComputeLengthError: COMPUTE_LENGTH_MISMATCH,
    MalformedAstError: MALFORMED_AST_PAYLOAD,
}


def error_code_for(exc: FormulaError) -> str | None:
    """Map a formula error to its structured log error code."""
    for cls, code in _ERROR_CODES.items():
        if isinstance(exc, cls):
            return code
    return None


def compute(
    context_names: Sequence[str],
    context_values: Sequence[float],
    computed_names: Sequence[str],
    computed_formulas: Sequence[str],
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> dict[str, float]:
    """Evaluate named formulas against a shared context.

    Args:
        context_names: Names of the base context values.
        context_values: Values paired by position with *context_names*.
            Repeated names keep the last value.
        computed_names: Names for the computed results.
        computed_formulas: Formula text paired with *computed_names*.
        max_depth: Nesting limit passed to parse and evaluate.

    Returns:
        Computed results in input order, followed by the base context.
        A context name overwrites a computed result of the same name.

    Raises:
        ComputeLengthError: If either pair of sequences differs in length.
            Checked before any formula is parsed.
        FormulaError: The first parse or evaluation error, with a note
            naming the failing formula.
    """
    compute_id = str(uuid4())
    try:
        _check_lengths(context_names, context_values, computed_names, computed_formulas)
        base = build_context(context_names, context_values)
        computed: list[tuple[str, float]] = []
        for name, formula in zip(computed_names, computed_formulas):
            expr = _parse_one(name, formula, max_depth)
            computed.append((name, _evaluate_one(name, formula, expr, base, max_depth)))
    except FormulaError as exc:
        emit(make_compute_event(
            EventType.compute_failed,
            EventLevel.error,
            f"Compute failed: {exc}",
            compute_id=compute_id,
            formula_name=exc.formula_name,
            error_code=error_code_for(exc),
        ))
        raise

    result = assemble_result(computed, base)
    logger.debug("compute %s: %d formula(s), %d value(s)", compute_id, len(computed), len(result))
    emit(make_compute_event(
        EventType.compute_completed,
        EventLevel.info,
        f"Compute completed: {len(computed)} formula(s)",
        compute_id=compute_id,
        extra={"computed": [name for name, _ in computed]},
    ))
    return result


def compute_mapping(
    context: Mapping[str, float],
    formulas: Mapping[str, str],
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> dict[str, float]:
    """Mapping form of ``compute``: ``{name: value}`` and ``{name: formula}``."""
    return compute(
        list(context.keys()),
        list(context.values()),
        list(formulas.keys()),
        list(formulas.values()),
        max_depth=max_depth,
    )


# ---------------------------------------------------------------------------
# Steps (shared with quantcalc.records)
# ---------------------------------------------------------------------------


def _check_lengths(
    context_names: Sequence[str],
    context_values: Sequence[float],
    computed_names: Sequence[str],
    computed_formulas: Sequence[str],
) -> None:
    if len(context_names) != len(context_values):
        raise ComputeLengthError("context", len(context_names), len(context_values))
    if len(computed_names) != len(computed_formulas):
        raise ComputeLengthError("computed", len(computed_names), len(computed_formulas))


def build_context(names: Sequence[str], values: Sequence[float]) -> dict[str, float]:
    """Pair names with values; a repeated name keeps its last value."""
    context: dict[str, float] = {}
    for name, value in zip(names, values):
        context[name] = float(value)
    return context


def compile_formulas(
    names: Sequence[str],
    formulas: Sequence[str],
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> list[tuple[str, str, Expr]]:
    """Parse each formula, in order, into ``(name, formula, ast)`` triples."""
    compiled: list[tuple[str, str, Expr]] = []
    for name, formula in zip(names, formulas):
        compiled.append((name, formula, _parse_one(name, formula, max_depth)))
    return compiled


def evaluate_compiled(
    compiled: Sequence[tuple[str, str, Expr]],
    base: Mapping[str, float],
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> list[tuple[str, float]]:
    """Evaluate every compiled formula against *base* only."""
    results: list[tuple[str, float]] = []
    for name, formula, expr in compiled:
        results.append((name, _evaluate_one(name, formula, expr, base, max_depth)))
    return results


def assemble_result(
    computed: Sequence[tuple[str, float]],
    base: Mapping[str, float],
) -> dict[str, float]:
    """Write computed values, then the base context over them."""
    result: dict[str, float] = {}
    for name, value in computed:
        result[name] = value
    for name, value in base.items():
        result[name] = value
    return result


def _parse_one(name: str, formula: str, max_depth: int) -> Expr:
    try:
        return parse_formula(formula, max_depth=max_depth)
    except FormulaError as exc:
        _annotate(exc, name, formula)
        raise


def _evaluate_one(
    name: str, formula: str, expr: Expr, base: Mapping[str, float], max_depth: int
) -> float:
    try:
        return evaluate_formula(expr, base, max_depth=max_depth)
    except FormulaError as exc:
        _annotate(exc, name, formula)
        raise


def _annotate(exc: FormulaError, name: str, formula: str) -> None:
    exc.formula_name = name
    exc.add_note(f"while computing {name!r} = {formula!r}")
