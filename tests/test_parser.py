"""Tests for formula parsing: grammar, AST shape and syntax errors."""

from __future__ import annotations

import pytest

from quantcalc.formulas import (
    BinaryOp,
    FormulaDepthError,
    FormulaParseError,
    FunctionCall,
    Identifier,
    Literal,
    ast_depth,
    evaluate_formula,
    extract_functions,
    extract_identifiers,
    parse_formula,
)


def _num(v: float) -> Literal:
    return Literal(value=v)


# ────────────────────────────────────────────────────────────────
# Grammar
# ────────────────────────────────────────────────────────────────


class TestGrammar:
    def test_single_number(self) -> None:
        assert parse_formula("42") == _num(42.0)

    def test_number_forms(self) -> None:
        assert parse_formula("-2.5") == _num(-2.5)
        assert parse_formula("3e4") == _num(30000.0)
        assert parse_formula(".5") == _num(0.5)
        assert parse_formula("+7") == _num(7.0)

    def test_identifier(self) -> None:
        assert parse_formula("revenue_2024") == Identifier(name="revenue_2024")

    def test_identifier_leading_underscore(self) -> None:
        assert parse_formula("_x") == Identifier(name="_x")

    def test_multiplication_binds_tighter(self) -> None:
        """2+3*4 groups as 2+(3*4)."""
        expected = BinaryOp(
            op="+",
            left=_num(2.0),
            right=BinaryOp(op="*", left=_num(3.0), right=_num(4.0)),
        )
        assert parse_formula("2+3*4") == expected

    def test_parentheses_override_precedence(self) -> None:
        expected = BinaryOp(
            op="*",
            left=BinaryOp(op="+", left=_num(2.0), right=_num(3.0)),
            right=_num(4.0),
        )
        assert parse_formula("(2+3)*4") == expected

    def test_subtraction_left_associative(self) -> None:
        """10-3-2 groups as (10-3)-2."""
        expected = BinaryOp(
            op="-",
            left=BinaryOp(op="-", left=_num(10.0), right=_num(3.0)),
            right=_num(2.0),
        )
        assert parse_formula("10-3-2") == expected

    def test_division_left_associative(self) -> None:
        tree = parse_formula("20/4/5")
        assert isinstance(tree, BinaryOp)
        assert tree.op == "/"
        assert tree.right == _num(5.0)

    def test_sign_belongs_to_literal(self) -> None:
        expected = BinaryOp(op="*", left=_num(2.0), right=_num(-3.0))
        assert parse_formula("2*-3") == expected

    def test_minus_between_numbers_is_subtraction(self) -> None:
        expected = BinaryOp(op="-", left=_num(10.0), right=_num(3.0))
        assert parse_formula("10-3") == expected
        assert parse_formula("10 - 3") == expected

    def test_whitespace_is_insignificant(self) -> None:
        assert parse_formula("  a +  b*2 ") == parse_formula("a+b*2")

    def test_same_text_gives_equal_and_hashable_trees(self) -> None:
        a = parse_formula("max(x, 1) / 2")
        b = parse_formula("max(x, 1) / 2")
        assert a == b
        assert hash(a) == hash(b)


class TestFunctionCalls:
    def test_call_with_args(self) -> None:
        tree = parse_formula("max(a, b, 3)")
        assert tree == FunctionCall(
            name="max",
            args=(Identifier(name="a"), Identifier(name="b"), _num(3.0)),
        )

    def test_call_without_args(self) -> None:
        assert parse_formula("now()") == FunctionCall(name="now", args=())

    def test_whitespace_before_paren(self) -> None:
        assert parse_formula("sqrt (4)") == parse_formula("sqrt(4)")

    def test_nested_calls(self) -> None:
        tree = parse_formula("pow(sqrt(x), 2)")
        assert isinstance(tree, FunctionCall)
        assert tree.args[0] == FunctionCall(name="sqrt", args=(Identifier(name="x"),))

    def test_expression_args(self) -> None:
        tree = parse_formula("min(a + 1, b * 2)")
        assert isinstance(tree, FunctionCall)
        assert [type(arg) for arg in tree.args] == [BinaryOp, BinaryOp]

    def test_names_are_case_sensitive(self) -> None:
        assert parse_formula("Max(1)") == FunctionCall(name="Max", args=(_num(1.0),))


# ────────────────────────────────────────────────────────────────
# Syntax errors
# ────────────────────────────────────────────────────────────────


class TestSyntaxErrors:
    def test_empty_input(self) -> None:
        with pytest.raises(FormulaParseError) as exc_info:
            parse_formula("")
        assert exc_info.value.position == 0
        assert exc_info.value.remainder is None

    def test_whitespace_only(self) -> None:
        with pytest.raises(FormulaParseError):
            parse_formula("   ")

    def test_dangling_operator(self) -> None:
        with pytest.raises(FormulaParseError) as exc_info:
            parse_formula("1 +")
        assert exc_info.value.position == 3
        assert "end of formula" in exc_info.value.message

    def test_unclosed_paren(self) -> None:
        with pytest.raises(FormulaParseError):
            parse_formula("(1 + 2")

    def test_trailing_input_reports_remainder(self) -> None:
        with pytest.raises(FormulaParseError) as exc_info:
            parse_formula("1 + 2 3")
        err = exc_info.value
        assert err.remainder == "3"
        assert err.position == 6

    def test_juxtaposed_identifiers(self) -> None:
        with pytest.raises(FormulaParseError) as exc_info:
            parse_formula("a b")
        assert exc_info.value.remainder == "b"

    def test_extra_close_paren(self) -> None:
        with pytest.raises(FormulaParseError) as exc_info:
            parse_formula("1 + 2)")
        assert exc_info.value.remainder == ")"
        assert exc_info.value.position == 5

    def test_unexpected_operator(self) -> None:
        with pytest.raises(FormulaParseError) as exc_info:
            parse_formula("1 + * 2")
        err = exc_info.value
        assert err.position == 4
        assert err.remainder is None

    def test_unknown_character_at_start(self) -> None:
        with pytest.raises(FormulaParseError) as exc_info:
            parse_formula("$x")
        assert exc_info.value.position == 0

    def test_no_exponent_operator(self) -> None:
        with pytest.raises(FormulaParseError):
            parse_formula("2^3")

    def test_no_unary_minus_on_identifier(self) -> None:
        with pytest.raises(FormulaParseError):
            parse_formula("-x")

    def test_message_mentions_position(self) -> None:
        with pytest.raises(FormulaParseError, match="position 6"):
            parse_formula("1 + 2 3")


# ────────────────────────────────────────────────────────────────
# Depth limits
# ────────────────────────────────────────────────────────────────


class TestDepth:
    def test_leaf_depth(self) -> None:
        assert ast_depth(parse_formula("x")) == 1

    def test_parentheses_do_not_add_depth(self) -> None:
        assert ast_depth(parse_formula("((((1))))")) == 1

    def test_chain_depth(self) -> None:
        assert ast_depth(parse_formula("1+2+3")) == 3

    def test_long_chain_within_limit(self) -> None:
        text = "1" + "+1" * 150
        assert evaluate_formula(parse_formula(text), {}) == 151.0

    def test_long_chain_exceeds_limit(self) -> None:
        text = "1" + "+1" * 300
        with pytest.raises(FormulaDepthError) as exc_info:
            parse_formula(text)
        assert exc_info.value.max_depth == 200

    def test_deep_nested_calls(self) -> None:
        text = "abs(" * 250 + "1" + ")" * 250
        with pytest.raises(FormulaDepthError):
            parse_formula(text)

    def test_custom_limit(self) -> None:
        with pytest.raises(FormulaDepthError):
            parse_formula("1+2+3", max_depth=2)
        assert parse_formula("1+2", max_depth=2) is not None


# ────────────────────────────────────────────────────────────────
# Reference extraction
# ────────────────────────────────────────────────────────────────


class TestExtraction:
    def test_extract_identifiers(self) -> None:
        tree = parse_formula("a + max(b, c * a) - 2")
        assert extract_identifiers(tree) == {"a", "b", "c"}

    def test_extract_functions(self) -> None:
        tree = parse_formula("max(sqrt(x), abs(y)) + 1")
        assert extract_functions(tree) == {"max", "sqrt", "abs"}

    def test_constant_has_no_refs(self) -> None:
        tree = parse_formula("1 + 2")
        assert extract_identifiers(tree) == set()
        assert extract_functions(tree) == set()
