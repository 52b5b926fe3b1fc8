"""
The two backtracking line searches of ZeroFPR.

Both mutate the ``SolverState`` they are given and return whether their
acceptance condition was met. Running out of trials is not an error: the last
trial is kept and the matching failure counter is incremented.
"""

from __future__ import annotations

from ..operators import AbstractOperator
from ..prox import ProximableFunction
from ..utils import tree_axpy, tree_sqnorm
from .envelope import forward_backward_envelope
from .state import SolverState

TAU_DECREASE = 0.4


def gamma_linesearch(state: SolverState, A: AbstractOperator, g: ProximableFunction) -> bool:
    """Halve ``gamma`` until ``f(xbar) <= uppbnd``.

    Expects ``xbar``, ``resxbar``, ``fxbar`` and ``uppbnd`` to be consistent
    with the current ``x`` and ``gamma``. Each trial costs one prox step and one
    application of ``A``.
    """
    for _ in range(state.config.max_linesearch_steps):
        if state.fxbar <= state.uppbnd:
            return True
        state.shrink_gamma()
        xbar, gxbar = state.prox_step(g, state.x, state.gradx)
        env = forward_backward_envelope(state.x, xbar, gxbar, state.fx, state.gradx, state.gamma)
        state.set_envelope(xbar, gxbar, env)
        state.resxbar = state.matvec(A.apply, xbar)
        state.fxbar = 0.5 * tree_sqnorm(state.resxbar)

    if state.fxbar <= state.uppbnd:
        return True
    state.gamma_ls_failures += 1
    return False


def tau_linesearch(
    state: SolverState, A: AbstractOperator, g: ProximableFunction, level: float
) -> bool:
    """Backtrack on ``tau`` along ``d`` until the envelope drops below ``level``.

    The candidate is ``x = xbar_prev + tau d``. Since ``A`` is affine, the
    residual and gradient at the candidate are updated from the products
    ``A_lin d`` and ``A_lin^T A_lin d``, which are computed once here.
    """
    state.Ad = state.matvec(A.linear_part().apply, state.d)
    state.ATAd = state.matvec(A.apply_adjoint, state.Ad)

    tau = 1.0
    for _ in range(state.config.max_linesearch_steps):
        state.tau = tau
        state.x = tree_axpy(tau, state.d, state.xbar_prev)
        state.resx = tree_axpy(tau, state.Ad, state.resxbar)
        state.fx = 0.5 * tree_sqnorm(state.resx)
        state.gradx = tree_axpy(tau, state.ATAd, state.gradxbar)
        xbar, gxbar = state.prox_step(g, state.x, state.gradx)
        env = forward_backward_envelope(state.x, xbar, gxbar, state.fx, state.gradx, state.gamma)
        state.set_envelope(xbar, gxbar, env)
        if env.fbe <= level:
            return True
        tau *= TAU_DECREASE

    state.tau_ls_failures += 1
    return False
