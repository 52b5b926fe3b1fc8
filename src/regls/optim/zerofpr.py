"""
ZeroFPR: forward-backward splitting with L-BFGS directions.

Solves ``minimize 1/2 ||A x||^2 + g(x)`` where ``A`` is linear or affine and
``g`` is only accessed through its proximal operator (convex or not).

Each iteration, with ``x`` and its forward-backward step ``xbar``:

1. check the halting predicate;
2. ``resxbar = A xbar``;
3. backtrack on ``gamma`` until ``f(xbar) <= uppbnd`` (optional);
4-6. record the envelope ``FBE(x)`` and the cost ``f(xbar) + g(xbar)``, report;
7. forward-backward step from ``xbar``: ``rbar = xbar - xbarbar``;
8. L-BFGS direction ``d`` from the pairs ``(xbar, rbar)``;
9. keep ``(xbar, rbar)`` for the next secant pair;
10. backtrack on ``tau`` so that ``FBE(xbar + tau d) <= FBE(x) - sigma ||r||^2``.

Buffer order: ``resxbar`` and ``gradxbar`` always belong to ``xbar_prev`` while
the tau line search runs, and are recomputed for the new ``xbar`` at step 2
and step 7 of the next iteration.
"""

from __future__ import annotations

import math
from typing import Literal, Optional

import equinox as eqx
import jax
import jax.numpy as jnp
import numpy as np
import optax.tree_utils as otu
from jaxtyping import PyTree

from .. import logging_utils as log
from ..operators import AbstractOperator
from ..prox import ProximableFunction
from ..utils import (
    Vector,
    as_inexact,
    check_structure,
    machine_eps,
    sqrt_eps,
    tree_isfinite,
    tree_norm,
    tree_size,
    tree_sqnorm,
    zeros_from_structure,
)
from .envelope import forward_backward_envelope
from .errors import HaltingPredicateError, NonFiniteError
from .lbfgs import lbfgs_apply, lbfgs_init, lbfgs_update
from .linesearch import gamma_linesearch, tau_linesearch
from .state import BETA, SolverConfig, SolverState, Verbosity

# =============================================================================
# RESULT
# =============================================================================


class ZeroFPRResult(eqx.Module):
    """Outcome of a ZeroFPR run.

    Attributes
    ----------
    x : PyTree
        Final forward-backward point ``xbar``.
    iterations : int
        Number of completed iterations.
    normfpr : float
        Final fixed-point residual norm.
    cost : float
        Last cost estimate ``f(xbar) + g(xbar)`` (NaN if no iteration ran).
    time : float
        Wall-clock time in seconds.
    gamma : float
        Final step size.
    cnt_matvec : int
        Number of applications of ``A`` or its adjoint.
    cnt_prox : int
        Number of proximal evaluations.
    gamma_ls_failures, tau_ls_failures : int
        Line searches that ran out of trials.
    status : str
        ``"converged"`` if the halting predicate fired, ``"max_iter"`` otherwise.
    """

    x: PyTree
    iterations: int
    normfpr: float
    cost: float
    time: float
    gamma: float
    cnt_matvec: int
    cnt_prox: int
    gamma_ls_failures: int
    tau_ls_failures: int
    status: Literal["converged", "max_iter"]

    @property
    def converged(self) -> bool:
        return self.status == "converged"

    def summary(self) -> str:
        return (
            f"ZeroFPR {self.status}: it={self.iterations} normfpr={self.normfpr:.4e} "
            f"cost={self.cost:.4e} time={self.time:.3f}s "
            f"matvec={self.cnt_matvec} prox={self.cnt_prox}"
        )


# =============================================================================
# HELPERS
# =============================================================================


def _check_finite(state: SolverState, what: str, *values) -> None:
    """Raise ``NonFiniteError`` with the last finite diagnostics, or record the
    current ones as valid."""
    for value in values:
        finite = math.isfinite(value) if isinstance(value, float) else tree_isfinite(value)
        if not finite:
            raise NonFiniteError(
                f"Non-finite {what}",
                iteration=state.it,
                gamma=state.valid_gamma,
                normfpr=state.valid_normfpr,
            )
    state.mark_valid()


def _call_halt(state: SolverState, normfpr0: float) -> bool:
    halt = state.config.halting_predicate
    try:
        out = halt(state, normfpr0, state.fbe, state.fbe_prev)
    except Exception as exc:
        raise HaltingPredicateError(
            f"Halting predicate raised {type(exc).__name__}: {exc}",
            iteration=state.it,
            gamma=state.gamma,
            normfpr=state.normfpr,
        ) from exc

    if isinstance(out, bool | np.bool_):
        return bool(out)
    if isinstance(out, jax.Array) and out.shape == () and out.dtype == jnp.bool_:
        return bool(out)
    raise HaltingPredicateError(
        f"Halting predicate returned {type(out).__name__}, expected bool",
        iteration=state.it,
        gamma=state.gamma,
        normfpr=state.normfpr,
    )


def _report(state: SolverState, force: bool = False) -> None:
    verbose = state.config.verbose
    if verbose == Verbosity.OFF:
        return
    periodic = verbose == Verbosity.PERIODIC and state.it % state.config.print_every == 0
    if force or periodic or verbose == Verbosity.EVERY_ITERATION:
        log.info(
            log.format_status(
                state.it, state.gamma, state.normfpr, state.tau, state.cost, state.elapsed()
            )
        )


def estimate_gamma(state: SolverState, A: AbstractOperator) -> float:
    """Step size from a finite-difference upper bound on the Lipschitz constant.

    ``L = ||grad f(x) - grad f(x + e)|| / ||e||`` with every entry of ``e``
    equal to ``sqrt(eps)``; ``gamma = (1 - BETA) / L``. If ``L`` is not a
    usable positive number (e.g. ``A = 0``, where ``f`` is constant) the
    estimate falls back to ``L = 1``.
    """
    delta = sqrt_eps(state.x)
    x_eps = jax.tree.map(lambda leaf: leaf + delta, state.x)
    resx_eps = state.matvec(A.apply, x_eps)
    gradx_eps = state.matvec(A.apply_adjoint, resx_eps)
    lipschitz = tree_norm(otu.tree_sub(state.gradx, gradx_eps)) / (
        delta * math.sqrt(tree_size(state.x))
    )

    if not math.isfinite(lipschitz) or lipschitz <= machine_eps(state.x):
        if state.config.verbose > Verbosity.OFF:
            log.warning(
                f"Degenerate Lipschitz estimate ({lipschitz:.3e}); using L = 1 for the initial step size"
            )
        lipschitz = 1.0
    return (1 - BETA) / lipschitz


# =============================================================================
# SOLVER
# =============================================================================


def solve(
    A: AbstractOperator,
    g: ProximableFunction,
    x0: Optional[Vector] = None,
    config: Optional[SolverConfig] = None,
) -> tuple[Vector, ZeroFPRResult]:
    """Run ZeroFPR on ``1/2 ||A x||^2 + g(x)``.

    Parameters
    ----------
    A : AbstractOperator
        Linear or affine operator of the least-squares term.
    g : ProximableFunction
        Proximable term.
    x0 : PyTree, optional
        Starting point. Defaults to zeros shaped like ``A.in_structure()``.
    config : SolverConfig, optional
        Solver options; defaults to ``SolverConfig()``.

    Returns
    -------
    xbar : PyTree
        Final forward-backward point.
    result : ZeroFPRResult
        Diagnostics of the run.

    Raises
    ------
    ValueError
        If ``x0`` does not match the input structure of ``A``.
    NonFiniteError
        If the smooth term, its gradient or the envelope stop being finite.
    HaltingPredicateError
        If the halting predicate raises or returns a non-boolean.
    """
    config = config if config is not None else SolverConfig()

    if x0 is None:
        x0 = zeros_from_structure(A.in_structure())
    x0 = as_inexact(x0)
    check_structure(x0, A.in_structure(), name="x0")

    state = SolverState(config=config, x=x0)
    state.lbfgs = lbfgs_init(x0, config.memory_size)

    if config.verbose > Verbosity.OFF:
        log.banner(f"ZeroFPR\n{log.STATUS_HEADER}")

    # INIT
    state.resx = state.matvec(A.apply, state.x)
    state.fx = 0.5 * tree_sqnorm(state.resx)
    state.gradx = state.matvec(A.apply_adjoint, state.resx)
    _check_finite(state, "smooth term at x0", state.fx, state.gradx)

    # ESTIMATE_LIPSCHITZ
    state.set_gamma(config.gamma if config.gamma is not None else estimate_gamma(state, A))

    xbar, gxbar = state.prox_step(g, state.x, state.gradx)
    env = forward_backward_envelope(state.x, xbar, gxbar, state.fx, state.gradx, state.gamma)
    state.set_envelope(xbar, gxbar, env)
    state.fbe = env.fbe
    _check_finite(state, "envelope at x0", state.fbe)

    # ITERATE
    normfpr0 = math.nan
    halted = False
    for it in range(1, config.max_iter + 1):
        if _call_halt(state, normfpr0):
            halted = True
            break
        state.it = it
        state.fbe_prev = state.fbe

        state.resxbar = state.matvec(A.apply, state.xbar)
        state.fxbar = 0.5 * tree_sqnorm(state.resxbar)

        if config.linesearch and not gamma_linesearch(state, A, g):
            if config.verbose == Verbosity.EVERY_ITERATION:
                log.debug(f"gamma line search exhausted at iteration {it}")

        if it == 1:
            normfpr0 = state.normfpr

        state.fbe = state.uppbnd + state.gxbar
        state.cost = state.fxbar + state.gxbar
        _check_finite(state, "envelope", state.fxbar, state.fbe)
        _report(state)

        state.gradxbar = state.matvec(A.apply_adjoint, state.resxbar)
        xbarbar, _ = state.prox_step(g, state.xbar, state.gradxbar)
        state.rbar = otu.tree_sub(state.xbar, xbarbar)

        if it == 1:
            state.d = otu.tree_scale(-1.0, state.rbar)
        else:
            state.lbfgs = lbfgs_update(
                state.lbfgs, state.xbar, state.xbar_prev, state.rbar, state.rbar_prev
            )
            state.d = lbfgs_apply(state.lbfgs, state.rbar)

        state.rbar_prev = state.rbar
        state.xbar_prev = state.xbar

        level = state.fbe - state.sigma * state.normfpr**2
        if not tau_linesearch(state, A, g, level):
            if config.verbose == Verbosity.EVERY_ITERATION:
                log.debug(f"tau line search exhausted at iteration {it}")
        _check_finite(
            state, "smooth term or envelope", state.fx, state.gradx, state.uppbnd + state.gxbar
        )

    state.time = state.elapsed()
    status = "converged" if halted else "max_iter"

    if config.verbose > Verbosity.OFF:
        _report(state, force=True)
        if halted:
            log.success(f"Converged in {state.it} iterations ({state.time:.3f}s)")
        else:
            log.warning(f"Maximum number of iterations reached ({config.max_iter})")
            log.hint("Increase max_iter or relax tol")

    result = ZeroFPRResult(
        x=state.xbar,
        iterations=state.it,
        normfpr=state.normfpr,
        cost=state.cost,
        time=state.time,
        gamma=state.gamma,
        cnt_matvec=state.cnt_matvec,
        cnt_prox=state.cnt_prox,
        gamma_ls_failures=state.gamma_ls_failures,
        tau_ls_failures=state.tau_ls_failures,
        status=status,
    )
    return state.xbar, result
