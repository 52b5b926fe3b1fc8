"""Regularized least squares with the ZeroFPR solver."""

from importlib import metadata

from .operators import (
    AbstractOperator,
    AffineOperator,
    LinearOperator,
    as_operator,
    function_operator,
    identity_operator,
    matrix_operator,
)
from .optim import (
    HaltingPredicateError,
    NonFiniteError,
    SolverConfig,
    Verbosity,
    ZeroFPRError,
    ZeroFPRResult,
    minimize,
    solve,
)
from .prox import IndBox, NormL0, NormL1, ProximableFunction, SqrNormL2, Zero

__all__ = [
    # Operators
    "AbstractOperator",
    "AffineOperator",
    "LinearOperator",
    "as_operator",
    "function_operator",
    "identity_operator",
    "matrix_operator",
    # Prox
    "IndBox",
    "NormL0",
    "NormL1",
    "ProximableFunction",
    "SqrNormL2",
    "Zero",
    # Optim
    "HaltingPredicateError",
    "NonFiniteError",
    "SolverConfig",
    "Verbosity",
    "ZeroFPRError",
    "ZeroFPRResult",
    "minimize",
    "solve",
]


def __getattr__(name: str) -> str:
    """Expose package metadata attributes lazily."""
    if name == "__version__":
        try:
            return metadata.version("regls")
        except metadata.PackageNotFoundError:
            return "unknown"
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
