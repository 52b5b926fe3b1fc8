"""
PyTree vector algebra shared by the solver components.

Variables, residuals and directions are arbitrary PyTrees of arrays, so every
vector operation goes through ``optax.tree_utils``. Scalars that drive control
flow (norms, inner products) are returned as Python floats.
"""

from __future__ import annotations

import math
from typing import Any

import jax
import jax.numpy as jnp
import optax.tree_utils as otu
from jaxtyping import Array, Float, PyTree

Vector = PyTree[Float[Array, " N"]]
Structure = PyTree[jax.ShapeDtypeStruct]


def tree_axpy(alpha: float, x: Vector, y: Vector) -> Vector:
    """Return ``alpha * x + y``."""
    return otu.tree_add(otu.tree_scale(alpha, x), y)


def tree_norm(x: Vector) -> float:
    return float(otu.tree_norm(x))


def tree_sqnorm(x: Vector) -> float:
    return tree_norm(x) ** 2


def tree_real_vdot(x: Vector, y: Vector) -> float:
    """Real part of the inner product ``<x, y>``."""
    return float(jnp.real(otu.tree_vdot(x, y)))


def tree_size(x: Vector) -> int:
    """Total number of scalar entries in ``x``."""
    return sum(leaf.size for leaf in jax.tree.leaves(x))


def tree_isfinite(x: Any) -> bool:
    """True when every entry of every leaf is finite."""
    return all(bool(jnp.all(jnp.isfinite(leaf))) for leaf in jax.tree.leaves(x))


def as_inexact(x: Any) -> Vector:
    """Convert every leaf to a floating (or complex) JAX array."""

    def _leaf(leaf: Any) -> Array:
        leaf = jnp.asarray(leaf)
        if jnp.issubdtype(leaf.dtype, jnp.inexact):
            return leaf
        return leaf.astype(jnp.result_type(float))

    return jax.tree.map(_leaf, x)


def sqrt_eps(x: Vector) -> float:
    """Square root of the machine epsilon of the first leaf's dtype."""
    leaf = jax.tree.leaves(x)[0]
    return math.sqrt(float(jnp.finfo(leaf.dtype).eps))


def machine_eps(x: Vector) -> float:
    return float(jnp.finfo(jax.tree.leaves(x)[0].dtype).eps)


def zeros_from_structure(structure: Structure) -> Vector:
    return jax.tree.map(lambda s: jnp.zeros(s.shape, s.dtype), structure)


def check_structure(x: Vector, structure: Structure, name: str = "x0") -> None:
    """Raise ``ValueError`` if ``x`` does not match the tree structure and shapes."""
    x_struct = jax.eval_shape(lambda: x)
    if jax.tree.structure(x_struct) != jax.tree.structure(structure):
        raise ValueError(
            f"{name} has tree structure {jax.tree.structure(x_struct)}, "
            f"operator expects {jax.tree.structure(structure)}"
        )
    for got, expected in zip(jax.tree.leaves(x_struct), jax.tree.leaves(structure)):
        if got.shape != expected.shape:
            raise ValueError(f"{name} has shape {got.shape}, operator expects {expected.shape}")
