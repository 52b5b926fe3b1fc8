"""Operator capability consumed by the solvers.

The smooth term of every problem is ``f(x) = 1/2 ||A x||^2``. ``A`` is one of
two variants:

- :class:`LinearOperator`: wraps any ``lineax.AbstractLinearOperator``.
- :class:`AffineOperator`: ``A x = L x - b`` for a linear part ``L``. Products
  along search directions go through :meth:`AbstractOperator.linear_part`.

Example:
    >>> import jax.numpy as jnp
    >>> from regls.operators import AffineOperator, matrix_operator
    >>> L = matrix_operator(jnp.eye(2))
    >>> A = AffineOperator(L, jnp.array([3.0, 0.0]))
    >>> A.apply(jnp.zeros(2))
    Array([-3.,  0.], dtype=float64)
"""

from __future__ import annotations

import abc
from collections.abc import Callable
from typing import Any, ClassVar

import equinox as eqx
import jax
import jax.numpy as jnp
import lineax as lx
import optax.tree_utils as otu
from jaxtyping import Array, Float, PyTree

from .utils import Structure, as_inexact, check_structure


class AbstractOperator(eqx.Module):
    """Apply / adjoint-apply pair with consistent in and out structures."""

    is_linear: ClassVar[bool]

    @abc.abstractmethod
    def apply(self, x: PyTree[Float[Array, " N"]]) -> PyTree[Float[Array, " M"]]:
        """Return ``A x``."""

    @abc.abstractmethod
    def apply_adjoint(self, y: PyTree[Float[Array, " M"]]) -> PyTree[Float[Array, " N"]]:
        """Return ``L^H y`` where ``L`` is the linear part of ``A``."""

    @abc.abstractmethod
    def linear_part(self) -> AbstractOperator:
        """The linear operator ``L`` (``self`` for linear operators)."""

    @abc.abstractmethod
    def in_structure(self) -> Structure:
        """Shape/dtype structure of the variable ``x``."""

    @abc.abstractmethod
    def out_structure(self) -> Structure:
        """Shape/dtype structure of the residual ``A x``."""


class LinearOperator(AbstractOperator):
    """Purely linear operator backed by lineax.

    lineax transposes are plain transposes; the Hermitian adjoint used for
    gradients conjugates around them, ``L^H y = conj(L^T conj(y))``.
    """

    operator: lx.AbstractLinearOperator
    adjoint: lx.AbstractLinearOperator
    is_linear: ClassVar[bool] = True

    def __init__(self, operator: lx.AbstractLinearOperator):
        self.operator = operator
        self.adjoint = operator.T

    def apply(self, x: PyTree[Float[Array, " N"]]) -> PyTree[Float[Array, " M"]]:
        return self.operator.mv(x)

    def apply_adjoint(self, y: PyTree[Float[Array, " M"]]) -> PyTree[Float[Array, " N"]]:
        return otu.tree_conj(self.adjoint.mv(otu.tree_conj(y)))

    def linear_part(self) -> LinearOperator:
        return self

    def in_structure(self) -> Structure:
        return self.operator.in_structure()

    def out_structure(self) -> Structure:
        return self.operator.out_structure()


class AffineOperator(AbstractOperator):
    """``A x = L x - b``; the adjoint is the adjoint of ``L``."""

    linear: AbstractOperator
    offset: PyTree[Float[Array, " M"]]
    is_linear: ClassVar[bool] = False

    def __check_init__(self):
        if not self.linear.is_linear:
            raise ValueError("AffineOperator needs a linear operator as its linear part")
        check_structure(self.offset, self.linear.out_structure(), name="b")

    def apply(self, x: PyTree[Float[Array, " N"]]) -> PyTree[Float[Array, " M"]]:
        return otu.tree_sub(self.linear.apply(x), self.offset)

    def apply_adjoint(self, y: PyTree[Float[Array, " M"]]) -> PyTree[Float[Array, " N"]]:
        return self.linear.apply_adjoint(y)

    def linear_part(self) -> AbstractOperator:
        return self.linear

    def in_structure(self) -> Structure:
        return self.linear.in_structure()

    def out_structure(self) -> Structure:
        return self.linear.out_structure()


def matrix_operator(matrix: Any) -> LinearOperator:
    """Linear operator ``x -> M @ x`` for a 2-D array ``M``."""
    matrix = as_inexact(matrix)
    if matrix.ndim != 2:
        raise ValueError(f"Expected a 2-D matrix, got an array of shape {matrix.shape}")
    return LinearOperator(lx.MatrixLinearOperator(matrix))


def identity_operator(x: PyTree[Float[Array, " N"]]) -> LinearOperator:
    """Identity on the structure of ``x``."""
    return LinearOperator(lx.IdentityLinearOperator(jax.eval_shape(lambda: x)))


def function_operator(
    fn: Callable[[PyTree[Float[Array, " N"]]], PyTree[Float[Array, " M"]]],
    x: PyTree[Float[Array, " N"]],
) -> LinearOperator:
    """Matrix-free linear operator from a linear function; the transpose is
    obtained by ``jax.linear_transpose``."""
    return LinearOperator(lx.FunctionLinearOperator(fn, jax.eval_shape(lambda: x)))


def as_operator(A: Any, b: PyTree[Float[Array, " M"]] | None = None) -> AbstractOperator:
    """Coerce ``A`` (operator, lineax operator or matrix) and an optional
    data term ``b`` into an :class:`AbstractOperator`."""
    if isinstance(A, AbstractOperator):
        op = A
    elif isinstance(A, lx.AbstractLinearOperator):
        op = LinearOperator(A)
    elif hasattr(A, "shape") or isinstance(A, list | tuple):
        op = matrix_operator(jnp.asarray(A))
    else:
        raise TypeError(f"Cannot build an operator from {type(A).__name__}")

    if b is None:
        return op
    if not op.is_linear:
        raise ValueError("A data term b can only be attached to a linear operator")
    return AffineOperator(op, as_inexact(b))
