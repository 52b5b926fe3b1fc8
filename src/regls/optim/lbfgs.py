"""
Limited-memory BFGS direction provider.

The history of secant pairs ``(s, y)`` lives in fixed-size circular buffers:
every leaf of the variable gets a ``(memory_size, *leaf.shape)`` array, the
same layout optax uses for ``scale_by_lbfgs``. Pairs that would break the
positive-definiteness of the approximation are skipped instead of stored.

Example:
    >>> state = lbfgs_init(x, memory_size=5)
    >>> state = lbfgs_update(state, xbar, xbar_prev, rbar, rbar_prev)
    >>> d = lbfgs_apply(state, rbar)  # approximately -H^{-1} rbar
"""

from __future__ import annotations

import math
from typing import NamedTuple

import jax
import jax.numpy as jnp
import optax.tree_utils as otu
from jaxtyping import Array, Float

from ..utils import Vector, tree_isfinite, tree_norm, tree_real_vdot

# Pairs with s'y <= _SY_EPSILON * ||s|| ||y|| are considered non-positive curvature.
_SY_EPSILON = 1e-10


class LBFGSState(NamedTuple):
    s_memory: Vector
    y_memory: Vector
    rho_memory: Float[Array, " M"]
    memory_size: int
    head: int
    size: int
    rejected: int


def lbfgs_init(x: Vector, memory_size: int) -> LBFGSState:
    """Empty history shaped after ``x``."""
    if memory_size < 0:
        raise ValueError("memory_size must be >= 0")
    memory = jax.tree.map(lambda leaf: jnp.zeros((memory_size, *leaf.shape), leaf.dtype), x)
    return LBFGSState(
        s_memory=memory,
        y_memory=memory,
        rho_memory=jnp.zeros(memory_size),
        memory_size=memory_size,
        head=0,
        size=0,
        rejected=0,
    )


def _slot(memory: Vector, i: int) -> Vector:
    return jax.tree.map(lambda m: m[i], memory)


def lbfgs_update(
    state: LBFGSState,
    xbar: Vector,
    xbar_prev: Vector,
    r: Vector,
    r_prev: Vector,
) -> LBFGSState:
    """Record ``s = xbar - xbar_prev``, ``y = r - r_prev``, evicting the oldest pair.

    Degenerate pairs (non-finite, vanishing, or with non-positive curvature)
    are skipped and counted in ``rejected``.
    """
    if state.memory_size == 0:
        return state

    s = otu.tree_sub(xbar, xbar_prev)
    y = otu.tree_sub(r, r_prev)
    sy = tree_real_vdot(s, y)
    norm_s = tree_norm(s)
    norm_y = tree_norm(y)
    tiny = float(jnp.finfo(state.rho_memory.dtype).tiny)

    if not (tree_isfinite(s) and tree_isfinite(y) and math.isfinite(sy)):
        return state._replace(rejected=state.rejected + 1)
    if norm_s <= tiny or norm_y <= tiny or sy <= _SY_EPSILON * norm_s * norm_y:
        return state._replace(rejected=state.rejected + 1)

    i = state.head
    return state._replace(
        s_memory=jax.tree.map(lambda m, v: m.at[i].set(v), state.s_memory, s),
        y_memory=jax.tree.map(lambda m, v: m.at[i].set(v), state.y_memory, y),
        rho_memory=state.rho_memory.at[i].set(1.0 / sy),
        head=(i + 1) % state.memory_size,
        size=min(state.size + 1, state.memory_size),
    )


def lbfgs_apply(state: LBFGSState, r: Vector) -> Vector:
    """Two-loop recursion: return ``d = -H r``.

    With an empty history, or when the input or the result is not finite,
    this falls back to ``-r``.
    """
    fallback = otu.tree_scale(-1.0, r)
    if state.size == 0 or not tree_isfinite(r):
        return fallback

    # newest pair first
    order = [(state.head - 1 - k) % state.memory_size for k in range(state.size)]

    q = r
    alphas = []
    for i in order:
        rho = float(state.rho_memory[i])
        alpha = rho * tree_real_vdot(_slot(state.s_memory, i), q)
        q = otu.tree_sub(q, otu.tree_scale(alpha, _slot(state.y_memory, i)))
        alphas.append(alpha)

    newest = order[0]
    y_newest = _slot(state.y_memory, newest)
    h0 = 1.0 / (float(state.rho_memory[newest]) * tree_norm(y_newest) ** 2)
    z = otu.tree_scale(h0, q)

    for i, alpha in zip(reversed(order), reversed(alphas)):
        rho = float(state.rho_memory[i])
        beta = rho * tree_real_vdot(_slot(state.y_memory, i), z)
        z = otu.tree_add(z, otu.tree_scale(alpha - beta, _slot(state.s_memory, i)))

    d = otu.tree_scale(-1.0, z)
    if not tree_isfinite(d):
        return fallback
    return d
