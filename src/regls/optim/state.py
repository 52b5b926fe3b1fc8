"""
Configuration and per-call state of the ZeroFPR solver.

``SolverConfig`` is immutable and may be shared between calls.
``SolverState`` is created by a single ``solve`` call, mutated in place by the
solver loop and the line searches, and discarded when the call returns.
"""

from __future__ import annotations

import math
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import IntEnum
from time import perf_counter
from typing import Any, Optional

from ..prox import ProximableFunction
from ..utils import Vector
from .envelope import Envelope, forward_backward_step
from .lbfgs import LBFGSState

# Safety factor of the step size: gamma = (1 - BETA) / L, sigma = BETA / (4 gamma).
BETA = 0.05


class Verbosity(IntEnum):
    OFF = 0
    PERIODIC = 1
    EVERY_ITERATION = 2


HaltFn = Callable[["SolverState", float, float, float], Any]


def halt_default(state: SolverState, normfpr0: float, fbe: float, fbe_prev: float) -> bool:
    """Stop once the fixed-point residual dropped below ``tol`` relative to the
    residual of the first iteration.

    ``normfpr0`` is NaN until the first iteration has run, so this never
    stops before it.
    """
    return state.normfpr <= state.config.tol * normfpr0


@dataclass(frozen=True)
class SolverConfig:
    """ZeroFPR options.

    Attributes
    ----------
    tol : float
        Tolerance of the default halting predicate.
    max_iter : int
        Maximum number of iterations. 0 returns the first forward-backward step.
    memory_size : int
        L-BFGS memory.
    verbose : Verbosity
        OFF, PERIODIC (every ``print_every`` iterations) or EVERY_ITERATION.
    print_every : int
        Reporting period in PERIODIC mode.
    halt : callable, optional
        ``halt(state, normfpr0, fbe, fbe_prev) -> bool``. Defaults to
        :func:`halt_default`.
    gamma : float, optional
        Initial step size. ``None`` estimates it from a finite-difference
        upper bound on the Lipschitz constant of the gradient.
    linesearch : bool
        Backtrack on ``gamma`` until the quadratic upper bound holds.
    max_linesearch_steps : int
        Maximum number of trials of each line search.
    """

    tol: float = 1e-8
    max_iter: int = 10000
    memory_size: int = 5
    verbose: Verbosity = Verbosity.PERIODIC
    print_every: int = 100
    halt: Optional[HaltFn] = None
    gamma: Optional[float] = None
    linesearch: bool = True
    max_linesearch_steps: int = 32

    def __post_init__(self) -> None:
        if not self.tol > 0:
            raise ValueError("tol must be positive")
        if self.max_iter < 0:
            raise ValueError("max_iter must be >= 0")
        if self.memory_size < 0:
            raise ValueError("memory_size must be >= 0")
        if self.print_every < 1:
            raise ValueError("print_every must be >= 1")
        if self.gamma is not None and not (self.gamma > 0 and math.isfinite(self.gamma)):
            raise ValueError("gamma must be a positive finite number or None")
        if self.max_linesearch_steps < 1:
            raise ValueError("max_linesearch_steps must be >= 1")
        object.__setattr__(self, "verbose", Verbosity(int(self.verbose)))

    @property
    def halting_predicate(self) -> HaltFn:
        return self.halt if self.halt is not None else halt_default


@dataclass
class SolverState:
    """Buffers, scalars and counters of one ``solve`` call.

    Vectors are immutable JAX PyTrees; updating a buffer rebinds the attribute.
    Only :meth:`matvec` and :meth:`prox_step` perform external calls, and each
    increments its counter exactly once.
    """

    config: SolverConfig
    x: Vector
    it: int = 0
    gamma: float = math.nan
    sigma: float = math.nan
    tau: float = 1.0

    # vectors
    xbar: Vector = None
    xbar_prev: Vector = None
    r: Vector = None
    rbar: Vector = None
    rbar_prev: Vector = None
    gradx: Vector = None
    gradxbar: Vector = None
    resx: Vector = None
    resxbar: Vector = None
    d: Vector = None
    Ad: Vector = None
    ATAd: Vector = None
    lbfgs: Optional[LBFGSState] = None

    # scalars
    fx: float = math.nan
    fxbar: float = math.nan
    gxbar: float = math.nan
    normfpr: float = math.inf
    uppbnd: float = math.nan
    fbe: float = math.nan
    fbe_prev: float = math.nan
    cost: float = math.nan

    # counters
    cnt_matvec: int = 0
    cnt_prox: int = 0
    gamma_ls_failures: int = 0
    tau_ls_failures: int = 0

    # last finite diagnostics, attached to NonFiniteError
    valid_gamma: float = math.nan
    valid_normfpr: float = math.nan

    t_start: float = field(default_factory=perf_counter)
    time: float = 0.0

    def matvec(self, fn: Callable[[Vector], Vector], v: Vector) -> Vector:
        """Apply ``fn`` (an operator apply or adjoint apply) to ``v``."""
        self.cnt_matvec += 1
        return fn(v)

    def prox_step(self, g: ProximableFunction, x: Vector, gradx: Vector) -> tuple[Vector, float]:
        """Forward-backward step from ``x`` at the current ``gamma``."""
        self.cnt_prox += 1
        return forward_backward_step(g, x, gradx, self.gamma)

    def set_envelope(self, xbar: Vector, gxbar: float, env: Envelope) -> None:
        """Store a new ``xbar`` together with the quantities derived from it."""
        self.xbar = xbar
        self.gxbar = gxbar
        self.r = env.r
        self.normfpr = env.normfpr
        self.uppbnd = env.uppbnd

    def elapsed(self) -> float:
        return perf_counter() - self.t_start

    def shrink_gamma(self) -> None:
        """Halve ``gamma`` and double ``sigma``, keeping ``sigma * gamma`` fixed."""
        self.gamma *= 0.5
        self.sigma *= 2.0

    def set_gamma(self, gamma: float) -> None:
        self.gamma = gamma
        self.sigma = BETA / (4 * gamma)

    def mark_valid(self) -> None:
        """Remember the current ``gamma`` and ``normfpr`` if they are finite."""
        if math.isfinite(self.gamma):
            self.valid_gamma = self.gamma
        if math.isfinite(self.normfpr):
            self.valid_normfpr = self.normfpr
