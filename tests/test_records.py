"""Tests for per-record compute over dict rows and Polars frames."""

from __future__ import annotations

from pathlib import Path

import polars as pl
import pytest

from quantcalc.formulas import FormulaRefError
from quantcalc.records import (
    compute_frame,
    compute_records,
    load_records_csv,
    numeric_fields,
)


class TestNumericFields:
    def test_keeps_numbers_only(self) -> None:
        record = {"a": 1, "b": 2.5, "name": "x", "flag": True, "none": None}
        assert numeric_fields(record) == {"a": 1.0, "b": 2.5}


class TestComputeRecords:
    def test_per_record_results(self) -> None:
        records = [
            {"region": "north", "revenue": 100.0, "cost": 60.0},
            {"region": "south", "revenue": 50.0, "cost": 0.0},
        ]
        out = compute_records(records, {"margin": "(revenue - cost) / revenue", "markup": "revenue / cost"})
        assert out[0]["region"] == "north"
        assert out[0]["margin"] == pytest.approx(0.4)
        assert out[1]["markup"] == 0.0

    def test_input_records_not_mutated(self) -> None:
        records = [{"a": 1.0}]
        compute_records(records, {"b": "a + 1"})
        assert records == [{"a": 1.0}]

    def test_numeric_field_wins_collision(self) -> None:
        out = compute_records([{"a": 2.0}], {"a": "a * 10"})
        assert out == [{"a": 2.0}]

    def test_non_numeric_field_is_overwritten(self) -> None:
        out = compute_records([{"a": 2.0, "label": "x"}], {"label": "a * 10"})
        assert out[0]["label"] == 20.0

    def test_empty_records(self) -> None:
        assert compute_records([], {"x": "1"}) == []

    def test_failure_names_record(self) -> None:
        records = [{"a": 1.0, "b": 2.0}, {"a": 1.0}]
        with pytest.raises(FormulaRefError) as exc_info:
            compute_records(records, {"s": "a + b"})
        err = exc_info.value
        assert err.formula_name == "s"
        assert "in record 1" in err.__notes__

    def test_formulas_parsed_before_first_record(self) -> None:
        from quantcalc.formulas import FormulaParseError

        with pytest.raises(FormulaParseError) as exc_info:
            compute_records([{"a": 1.0}], {"bad": "a +"})
        assert not any(note.startswith("in record") for note in exc_info.value.__notes__)


class TestComputeFrame:
    def test_appends_float_columns(self) -> None:
        df = pl.DataFrame({"name": ["x", "y"], "a": [1, 2], "b": [0.5, 4.0]})
        out = compute_frame(df, {"s": "a + b", "r": "b / a"})
        assert out.columns == ["name", "a", "b", "s", "r"]
        assert out.schema["s"] == pl.Float64
        assert out["s"].to_list() == [1.5, 6.0]
        assert out["r"].to_list() == [0.5, 2.0]

    def test_existing_column_kept(self) -> None:
        df = pl.DataFrame({"a": [1.0, 2.0]})
        out = compute_frame(df, {"a": "a * 100", "b": "a * 2"})
        assert out["a"].to_list() == [1.0, 2.0]
        assert out["b"].to_list() == [2.0, 4.0]

    def test_frame_without_numeric_columns(self) -> None:
        df = pl.DataFrame({"name": ["x", "y", "z"]})
        out = compute_frame(df, {"one": "1"})
        assert out["one"].to_list() == [1.0, 1.0, 1.0]

    def test_missing_column_raises(self) -> None:
        df = pl.DataFrame({"a": [1.0]})
        with pytest.raises(FormulaRefError):
            compute_frame(df, {"x": "missing * 2"})


class TestLoadCsv:
    def test_load_and_compute(self, tmp_path: Path) -> None:
        csv = tmp_path / "data.csv"
        csv.write_text("id,price,qty\nA,2.5,4\nB,10,3\n")
        df = load_records_csv(csv)
        out = compute_frame(df, {"total": "price * qty"})
        assert out["total"].to_list() == [10.0, 30.0]
        assert out["id"].to_list() == ["A", "B"]
