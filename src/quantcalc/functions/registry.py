"""Central registry for built-in formula functions."""

from __future__ import annotations

from typing import Callable


class FunctionSpec:
    """A registered function together with its accepted argument counts.

    Attributes:
        name: The lookup name used in formulas.
        fn: Callable taking the evaluated arguments as a list of floats.
        arity: Exact argument count, or ``None`` for variadic functions.
        min_args: Minimum argument count for variadic functions.
    """

    def __init__(
        self,
        name: str,
        fn: Callable[[list[float]], float],
        arity: int | None,
        min_args: int,
    ) -> None:
        self.name = name
        self.fn = fn
        self.arity = arity
        self.min_args = min_args

    def accepts(self, count: int) -> bool:
        if self.arity is not None:
            return count == self.arity
        return count >= self.min_args

    def signature(self) -> str:
        if self.arity is not None:
            return str(self.arity)
        return f">={self.min_args}"


_FUNCTIONS: dict[str, FunctionSpec] = {}


def register_function(
    name: str, *, arity: int | None = 1, min_args: int = 1
) -> Callable:
    """Decorator that registers a built-in function by name.

    Args:
        name: The lookup name for this function.
        arity: Exact number of arguments, or ``None`` for a variadic function.
        min_args: Minimum number of arguments when *arity* is ``None``.

    Returns:
        The original function, unmodified.
    """

    def decorator(fn: Callable) -> Callable:
        _FUNCTIONS[name] = FunctionSpec(name, fn, arity, min_args)
        return fn

    return decorator


def get_function(name: str, count: int) -> FunctionSpec:
    """Look up a registered function for a call with *count* arguments.

    Args:
        name: The function name (case-sensitive).
        count: Number of arguments supplied by the call.

    Returns:
        The matching FunctionSpec.

    Raises:
        FormulaFunctionError: If *name* is unknown or does not accept *count*
            arguments.
    """
    # Local import to avoid circular dependency
    from quantcalc.formulas.errors import FormulaFunctionError

    spec = _FUNCTIONS.get(name)
    if spec is None or not spec.accepts(count):
        raise FormulaFunctionError(name, count)
    return spec


def list_functions() -> list[FunctionSpec]:
    """Return all registered functions sorted by name."""
    return [_FUNCTIONS[name] for name in sorted(_FUNCTIONS)]
