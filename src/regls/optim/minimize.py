from __future__ import annotations

from typing import Any, Optional

import lineax as lx
from jaxtyping import Array, ArrayLike

from ..operators import AbstractOperator, as_operator
from ..prox import ProximableFunction, Zero
from ..utils import Vector
from .state import SolverConfig
from .zerofpr import ZeroFPRResult, solve

# =============================================================================
# REGULARIZED LEAST SQUARES INTERFACE
# =============================================================================


def minimize(
    A: AbstractOperator | lx.AbstractLinearOperator | ArrayLike,
    g: Optional[ProximableFunction] = None,
    x0: Optional[Vector] = None,
    b: Optional[Vector | Array] = None,
    config: Optional[SolverConfig] = None,
    **config_options: Any,
) -> tuple[Vector, ZeroFPRResult]:
    """
    Minimize ``1/2 ||A x - b||^2 + g(x)`` with ZeroFPR.

    Parameters
    ----------
    A : AbstractOperator, lineax operator or 2-D array
        Operator of the least-squares term.
    g : ProximableFunction, optional
        Regularizer accessed through its proximal operator. Defaults to ``Zero()``.
    x0 : PyTree, optional
        Starting point. Defaults to zeros shaped like the input of ``A``.
    b : PyTree, optional
        Data term. When given, the smooth term uses the affine operator ``A x - b``.
    config : SolverConfig, optional
        Solver options. Mutually exclusive with ``**config_options``.
    **config_options
        Fields of :class:`SolverConfig` (``tol``, ``max_iter``, ``memory_size``,
        ``verbose``, ...), used when ``config`` is not given.

    Returns
    -------
    tuple[PyTree, ZeroFPRResult]
        Final forward-backward point and run diagnostics.

    Example
    -------
    >>> x, result = minimize(jnp.eye(2), NormL1(1.0), b=jnp.array([3.0, 0.0]), verbose=0)
    >>> x
    Array([2., 0.], dtype=float64)
    """
    if config is not None and config_options:
        raise ValueError(
            f"Pass either config or keyword options, not both (got {sorted(config_options)})"
        )
    if config is None:
        config = SolverConfig(**config_options)

    operator = as_operator(A, b)
    return solve(operator, g if g is not None else Zero(), x0=x0, config=config)
