"""
Forward-Backward Envelope.

For ``f(x) = 1/2 ||A x||^2`` and a step size ``gamma``, the forward-backward
step is ``xbar = prox_{gamma g}(x - gamma grad f(x))`` and the envelope is

    FBE(x) = f(x) - <grad f(x), r> + ||r||^2 / (2 gamma) + g(xbar),   r = x - xbar.

The first three terms (``uppbnd``) are the quadratic model of ``f`` around
``x`` evaluated at ``xbar``; both line searches compare against them.
"""

from __future__ import annotations

from typing import NamedTuple

import optax.tree_utils as otu

from ..prox import ProximableFunction
from ..utils import Vector, tree_axpy, tree_norm, tree_real_vdot


class Envelope(NamedTuple):
    r: Vector
    normfpr: float
    uppbnd: float
    fbe: float


def forward_backward_step(
    g: ProximableFunction, x: Vector, gradx: Vector, gamma: float
) -> tuple[Vector, float]:
    """Return ``xbar = prox_{gamma g}(x - gamma gradx)`` and ``g(xbar)``."""
    xbar, gxbar = g.prox(tree_axpy(-gamma, gradx, x), gamma)
    return xbar, float(gxbar)


def forward_backward_envelope(
    x: Vector,
    xbar: Vector,
    gxbar: float,
    fx: float,
    gradx: Vector,
    gamma: float,
) -> Envelope:
    """Fixed-point residual, quadratic upper bound and envelope value.

    Pure function of its inputs.
    """
    r = otu.tree_sub(x, xbar)
    normfpr = tree_norm(r)
    uppbnd = fx - tree_real_vdot(gradx, r) + normfpr**2 / (2 * gamma)
    return Envelope(r=r, normfpr=normfpr, uppbnd=uppbnd, fbe=uppbnd + gxbar)
