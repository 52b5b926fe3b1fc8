"""
ZeroFPR solver for regularized least squares.

This package provides:
- The ZeroFPR solver loop with gamma and tau backtracking line searches
- A limited-memory BFGS direction provider over PyTree variables
- The forward-backward envelope evaluator
- A ``minimize`` front end assembling operators, offsets and options

Example usage:
    >>> from regls.optim import minimize
    >>> from regls.prox import NormL1
    >>>
    >>> x, result = minimize(
    ...     A=matrix,
    ...     g=NormL1(0.1),
    ...     b=data,
    ...     tol=1e-10,
    ... )
    >>> result.status
    'converged'
"""

from .envelope import Envelope, forward_backward_envelope, forward_backward_step
from .errors import HaltingPredicateError, NonFiniteError, ZeroFPRError
from .lbfgs import LBFGSState, lbfgs_apply, lbfgs_init, lbfgs_update
from .linesearch import gamma_linesearch, tau_linesearch
from .minimize import minimize
from .state import BETA, SolverConfig, SolverState, Verbosity, halt_default
from .zerofpr import ZeroFPRResult, estimate_gamma, solve

__all__ = [
    "BETA",
    "Envelope",
    "HaltingPredicateError",
    "LBFGSState",
    "NonFiniteError",
    "SolverConfig",
    "SolverState",
    "Verbosity",
    "ZeroFPRError",
    "ZeroFPRResult",
    "estimate_gamma",
    "forward_backward_envelope",
    "forward_backward_step",
    "gamma_linesearch",
    "halt_default",
    "lbfgs_apply",
    "lbfgs_init",
    "lbfgs_update",
    "minimize",
    "solve",
    "tau_linesearch",
]
