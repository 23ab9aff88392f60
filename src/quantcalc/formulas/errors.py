"""Error types for formula parsing, evaluation and batch compute."""

from __future__ import annotations


class FormulaError(Exception):
    """Base class for all formula-related errors.

    Attributes:
        formula_name: Computed field whose formula failed, when raised
            from a batch compute.
    """

    formula_name: str | None = None


class FormulaParseError(FormulaError):
    """Syntax error in a formula expression.

    Attributes:
        message: Human-readable description.
        position: 0-based character offset where the error was detected.
        remainder: Unconsumed input when a complete expression was
            followed by trailing text, else ``None``.
    """

    def __init__(
        self,
        message: str,
        position: int | None = None,
        remainder: str | None = None,
    ) -> None:
        self.message = message
        self.position = position
        self.remainder = remainder
        full = f"Formula parse error: {message}"
        if position is not None:
            full += f" (at position {position})"
        super().__init__(full)


class FormulaRefError(FormulaError):
    """Reference to a name missing from the evaluation context.

    Attributes:
        ref_name: The unresolved reference.
        available: Names that are currently available.
    """

    def __init__(self, ref_name: str, available: list[str] | None = None) -> None:
        self.ref_name = ref_name
        self.available = available or []
        msg = f"Unknown reference: {ref_name!r}"
        if self.available:
            msg += f". Available: {self.available}"
        super().__init__(msg)


class FormulaFunctionError(FormulaError):
    """Unknown function or wrong number of arguments.

    Attributes:
        func_name: The function that caused the error.
        provided_count: Number of arguments the call supplied.
    """

    def __init__(
        self,
        func_name: str,
        provided_count: int,
        message: str | None = None,
    ) -> None:
        self.func_name = func_name
        self.provided_count = provided_count
        msg = message or (
            f"Unknown function {func_name!r} or wrong number of arguments "
            f"({provided_count} given)"
        )
        super().__init__(msg)


class FormulaDepthError(FormulaError):
    """Expression nesting exceeds the configured depth limit."""

    def __init__(self, max_depth: int, where: str = "expression") -> None:
        self.max_depth = max_depth
        super().__init__(f"{where} nesting exceeds maximum depth of {max_depth}")


class MalformedAstError(FormulaError):
    """A serialized AST payload does not match the transport shape.

    Attributes:
        path: JSON-pointer style location of the offending node.
    """

    def __init__(self, message: str, path: str = "") -> None:
        self.path = path
        self.message = message
        super().__init__(f"Malformed AST payload at {path or '/'}: {message}")


class ComputeLengthError(FormulaError):
    """Parallel input sequences passed to ``compute`` differ in length.

    Attributes:
        pair: ``"context"`` (names/values) or ``"computed"`` (names/formulas).
    """

    def __init__(self, pair: str, left_len: int, right_len: int) -> None:
        self.pair = pair
        self.left_len = left_len
        self.right_len = right_len
        if pair == "context":
            what = "context names and values"
        else:
            what = "computed names and formulas"
        super().__init__(
            f"Length mismatch between {what}: {left_len} != {right_len}"
        )


ENGINE_ERRORS: tuple[type[Exception], ...] = (
    FormulaParseError,
    FormulaRefError,
    FormulaFunctionError,
    FormulaDepthError,
    MalformedAstError,
    ComputeLengthError,
)
