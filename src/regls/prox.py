"""Proximable functions ``g``.

A proximable function is only ever accessed through

    prox(v, gamma) -> (p, g(p)),    p = argmin_x g(x) + ||x - v||^2 / (2 gamma)

and its value. All functions act entrywise on every leaf of a PyTree.
"""

from __future__ import annotations

import abc

import equinox as eqx
import jax
import jax.numpy as jnp
from jaxtyping import Array, Scalar

from .utils import Vector


def _tree_sum(fn, x: Vector) -> Scalar:
    return sum((jnp.sum(fn(leaf)) for leaf in jax.tree.leaves(x)), jnp.asarray(0.0))


class ProximableFunction(eqx.Module):
    @abc.abstractmethod
    def __call__(self, x: Vector) -> Scalar:
        """Value of ``g`` at ``x``."""

    @abc.abstractmethod
    def prox(self, v: Vector, gamma: float) -> tuple[Vector, Scalar]:
        """Proximal point of ``gamma * g`` at ``v`` and ``g`` evaluated there."""


class Zero(ProximableFunction):
    """``g = 0``; the prox is the identity."""

    def __call__(self, x: Vector) -> Scalar:
        return jnp.asarray(0.0)

    def prox(self, v: Vector, gamma: float) -> tuple[Vector, Scalar]:
        return v, jnp.asarray(0.0)


class NormL1(ProximableFunction):
    """``g(x) = lam * ||x||_1``, prox by soft thresholding."""

    lam: float = 1.0

    def __check_init__(self):
        if self.lam < 0:
            raise ValueError("lam must be non-negative")

    def __call__(self, x: Vector) -> Scalar:
        return self.lam * _tree_sum(jnp.abs, x)

    def prox(self, v: Vector, gamma: float) -> tuple[Vector, Scalar]:
        threshold = gamma * self.lam

        def _soft(leaf: Array) -> Array:
            magnitude = jnp.abs(leaf)
            # sign(v) for complex entries is v / |v|
            scale = jnp.maximum(magnitude - threshold, 0.0) / jnp.where(magnitude > 0, magnitude, 1.0)
            return leaf * scale

        p = jax.tree.map(_soft, v)
        return p, self(p)


class NormL0(ProximableFunction):
    """``g(x) = lam * nnz(x)``; nonconvex, prox by hard thresholding."""

    lam: float = 1.0

    def __check_init__(self):
        if self.lam < 0:
            raise ValueError("lam must be non-negative")

    def __call__(self, x: Vector) -> Scalar:
        return self.lam * _tree_sum(lambda leaf: leaf != 0, x)

    def prox(self, v: Vector, gamma: float) -> tuple[Vector, Scalar]:
        threshold = jnp.sqrt(2.0 * gamma * self.lam)
        p = jax.tree.map(lambda leaf: jnp.where(jnp.abs(leaf) > threshold, leaf, 0.0), v)
        return p, self(p)


class SqrNormL2(ProximableFunction):
    """``g(x) = lam / 2 * ||x||^2``."""

    lam: float = 1.0

    def __check_init__(self):
        if self.lam < 0:
            raise ValueError("lam must be non-negative")

    def __call__(self, x: Vector) -> Scalar:
        return 0.5 * self.lam * _tree_sum(lambda leaf: jnp.abs(leaf) ** 2, x)

    def prox(self, v: Vector, gamma: float) -> tuple[Vector, Scalar]:
        p = jax.tree.map(lambda leaf: leaf / (1.0 + gamma * self.lam), v)
        return p, self(p)


class IndBox(ProximableFunction):
    """Indicator of ``lower <= x <= upper``; the prox is a projection.

    Bounds are scalars (or arrays broadcasting against every leaf); use
    ``-jnp.inf`` / ``jnp.inf`` for one-sided boxes.
    """

    lower: float | Array = -jnp.inf
    upper: float | Array = jnp.inf

    def __call__(self, x: Vector) -> Scalar:
        inside = all(
            bool(jnp.all((leaf >= self.lower) & (leaf <= self.upper))) for leaf in jax.tree.leaves(x)
        )
        return jnp.asarray(0.0 if inside else jnp.inf)

    def prox(self, v: Vector, gamma: float) -> tuple[Vector, Scalar]:
        p = jax.tree.map(lambda leaf: jnp.clip(leaf, self.lower, self.upper), v)
        return p, jnp.asarray(0.0)
