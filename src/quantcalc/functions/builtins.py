"""Built-in math functions available to formulas.

Every function takes the evaluated argument list and returns a float.
None of them raise for numeric domain reasons: invalid inputs produce
NaN and overflow produces infinity, following IEEE-754.
"""

from __future__ import annotations

import math

from quantcalc.functions.registry import register_function


def _is_odd_integer(x: float) -> bool:
    return math.isfinite(x) and x == math.floor(x) and math.fmod(x, 2.0) != 0.0


@register_function("pow", arity=2)
def fn_pow(args: list[float]) -> float:
    """Raise ``args[0]`` to the power ``args[1]``."""
    base, exponent = args
    try:
        return math.pow(base, exponent)
    except OverflowError:
        if base < 0 and _is_odd_integer(exponent):
            return -math.inf
        return math.inf
    except ValueError:
        # 0 to a negative power, or a negative base to a fractional power
        if base == 0.0:
            if _is_odd_integer(exponent):
                return math.copysign(math.inf, base)
            return math.inf
        return math.nan


@register_function("sqrt")
def fn_sqrt(args: list[float]) -> float:
    x = args[0]
    if x < 0:
        return math.nan
    return math.sqrt(x)


@register_function("max", arity=None, min_args=1)
def fn_max(args: list[float]) -> float:
    """Largest argument; NaN arguments are skipped."""
    result = -math.inf
    for v in args:
        if v > result:
            result = v
    return result


@register_function("min", arity=None, min_args=1)
def fn_min(args: list[float]) -> float:
    """Smallest argument; NaN arguments are skipped."""
    result = math.inf
    for v in args:
        if v < result:
            result = v
    return result


@register_function("abs")
def fn_abs(args: list[float]) -> float:
    return abs(args[0])


@register_function("round")
def fn_round(args: list[float]) -> float:
    """Round to the nearest integer, halves away from zero (``round(2.5) == 3``)."""
    x = args[0]
    if not math.isfinite(x):
        return x
    whole = math.trunc(x)
    if abs(x - whole) >= 0.5:
        whole += 1 if x > 0 else -1
    return math.copysign(float(whole), x)


@register_function("ceil")
def fn_ceil(args: list[float]) -> float:
    x = args[0]
    if not math.isfinite(x):
        return x
    return math.copysign(float(math.ceil(x)), x)


@register_function("floor")
def fn_floor(args: list[float]) -> float:
    x = args[0]
    if not math.isfinite(x):
        return x
    return math.copysign(float(math.floor(x)), x)


@register_function("sin")
def fn_sin(args: list[float]) -> float:
    x = args[0]
    if math.isinf(x):
        return math.nan
    return math.sin(x)


@register_function("cos")
def fn_cos(args: list[float]) -> float:
    x = args[0]
    if math.isinf(x):
        return math.nan
    return math.cos(x)


@register_function("tan")
def fn_tan(args: list[float]) -> float:
    x = args[0]
    if math.isinf(x):
        return math.nan
    return math.tan(x)


def _log_domain(x: float) -> float | None:
    """Result for inputs outside ``math.log``'s domain, else ``None``."""
    if x == 0.0:
        return -math.inf
    if x < 0:
        return math.nan
    return None


@register_function("log")
def fn_log(args: list[float]) -> float:
    """Natural logarithm."""
    x = args[0]
    special = _log_domain(x)
    if special is not None:
        return special
    return math.log(x)


@register_function("log10")
def fn_log10(args: list[float]) -> float:
    x = args[0]
    special = _log_domain(x)
    if special is not None:
        return special
    return math.log10(x)


@register_function("exp")
def fn_exp(args: list[float]) -> float:
    try:
        return math.exp(args[0])
    except OverflowError:
        return math.inf
