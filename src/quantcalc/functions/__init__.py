"""Built-in function table for formula evaluation."""

from quantcalc.functions import builtins as _builtins  # noqa: F401  (registers functions)
from quantcalc.functions.registry import (
    FunctionSpec,
    get_function,
    list_functions,
    register_function,
)

__all__ = [
    "FunctionSpec",
    "get_function",
    "list_functions",
    "register_function",
]
