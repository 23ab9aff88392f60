"""Apply computed fields to tabular records.

Each record's numeric fields form the context for one ``compute`` pass
and the results are merged back into the record.  Formulas are parsed
once per call and evaluated per record.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any
from uuid import uuid4

import polars as pl

from quantcalc.compute import (
    assemble_result,
    compile_formulas,
    error_code_for,
    evaluate_compiled,
)
from quantcalc.formulas import DEFAULT_MAX_DEPTH, FormulaError
from quantcalc.logging.events import (
    EventLevel,
    EventType,
    emit,
    emit_info,
    make_compute_event,
)


def numeric_fields(record: Mapping[str, Any]) -> dict[str, float]:
    """Return the int/float fields of *record* (booleans and None excluded)."""
    return {
        key: float(value)
        for key, value in record.items()
        if isinstance(value, (int, float)) and not isinstance(value, bool)
    }


def compute_records(
    records: Iterable[Mapping[str, Any]],
    formulas: Mapping[str, str],
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> list[dict[str, Any]]:
    """Evaluate *formulas* for every record.

    Args:
        records: Row mappings; non-numeric fields are carried through.
        formulas: Mapping of computed field name to formula text.
        max_depth: Nesting limit passed to parse and evaluate.

    Returns:
        New record dicts with computed fields merged in.  An existing
        numeric field keeps its value when a formula shares its name.

    Raises:
        FormulaError: The first failure; its note names the record index.
    """
    batch_id = str(uuid4())
    rows = list(records)
    emit_info(
        EventType.batch_started,
        f"Record compute started: {len(rows)} record(s)",
        {"compute_id": batch_id, "total": len(rows), "formulas": list(formulas)},
    )

    index = -1
    try:
        compiled = compile_formulas(list(formulas), list(formulas.values()), max_depth=max_depth)
        out: list[dict[str, Any]] = []
        for index, record in enumerate(rows):
            base = numeric_fields(record)
            computed = evaluate_compiled(compiled, base, max_depth=max_depth)
            merged = dict(record)
            merged.update(assemble_result(computed, base))
            out.append(merged)
    except FormulaError as exc:
        if index >= 0:
            exc.add_note(f"in record {index}")
        emit(make_compute_event(
            EventType.compute_failed,
            EventLevel.error,
            f"Record compute failed: {exc}",
            compute_id=batch_id,
            formula_name=exc.formula_name,
            error_code=error_code_for(exc),
            extra={"record_index": index},
        ))
        raise

    emit_info(
        EventType.batch_completed,
        f"Record compute completed: {len(out)} record(s)",
        {"compute_id": batch_id, "total": len(out)},
    )
    return out


def compute_frame(
    df: pl.DataFrame,
    formulas: Mapping[str, str],
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> pl.DataFrame:
    """Evaluate *formulas* for every row of a Polars DataFrame.

    Numeric columns form each row's context.  Computed columns are
    appended as ``Float64`` in formula order; a formula whose name matches
    an existing column leaves that column unchanged.
    """
    numeric_cols = [name for name, dtype in df.schema.items() if dtype.is_numeric()]
    if numeric_cols:
        rows = df.select(numeric_cols).to_dicts()
    else:
        rows = [{} for _ in range(df.height)]
    computed = compute_records(rows, formulas, max_depth=max_depth)

    new_cols = [name for name in formulas if name not in df.columns]
    if not new_cols:
        return df
    return df.with_columns([
        pl.Series(name, [row[name] for row in computed], dtype=pl.Float64)
        for name in new_cols
    ])


def load_records_csv(path: Path) -> pl.DataFrame:
    """Load records from a CSV file with inferred column types."""
    return pl.read_csv(path)
