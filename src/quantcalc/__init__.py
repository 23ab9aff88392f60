"""quantcalc -- deterministic formula engine for numeric contexts."""

__version__ = "0.1.0"

from quantcalc.compute import compute, compute_mapping  # noqa: E402
from quantcalc.formulas import evaluate_formula, parse_formula  # noqa: E402

__all__ = [
    "__version__",
    "compute",
    "compute_mapping",
    "evaluate_formula",
    "parse_formula",
]
