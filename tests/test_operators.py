import jax.numpy as jnp
import lineax as lx
import pytest

from regls.operators import (
    AffineOperator,
    LinearOperator,
    as_operator,
    function_operator,
    identity_operator,
    matrix_operator,
)

M = jnp.array([[1.0, 2.0, 0.0], [0.0, -1.0, 3.0]])


class TestLinearOperator:
    def test_matrix_apply_and_adjoint(self):
        A = matrix_operator(M)
        x = jnp.array([1.0, 1.0, 1.0])
        y = jnp.array([2.0, -1.0])

        assert A.is_linear
        assert jnp.allclose(A.apply(x), M @ x)
        assert jnp.allclose(A.apply_adjoint(y), M.T @ y)
        assert A.linear_part() is A
        assert A.in_structure().shape == (3,)
        assert A.out_structure().shape == (2,)

    def test_matrix_must_be_two_dimensional(self):
        with pytest.raises(ValueError):
            matrix_operator(jnp.ones(3))

    def test_integer_matrix_is_promoted(self):
        A = matrix_operator(jnp.array([[1, 0], [0, 2]]))
        assert jnp.issubdtype(A.in_structure().dtype, jnp.floating)

    def test_identity_on_pytree(self):
        x = {"u": jnp.ones(2), "v": jnp.arange(3.0)}
        A = identity_operator(x)

        out = A.apply(x)
        assert jnp.array_equal(out["u"], x["u"])
        assert jnp.array_equal(A.apply_adjoint(out)["v"], x["v"])

    def test_function_operator_adjoint_is_transpose(self):
        A = function_operator(lambda x: M @ x, jnp.zeros(3))
        y = jnp.array([2.0, -1.0])

        assert jnp.allclose(A.apply_adjoint(y), M.T @ y)

    def test_complex_adjoint_is_conjugate_transpose(self):
        C = jnp.array([[1.0 + 1.0j, 0.5], [0.2j, 2.0 - 0.5j], [1.0, 1.0j]])
        x = jnp.array([0.3 - 1.0j, 2.0 + 0.5j])
        y = jnp.array([1.0 + 0.5j, -1.0j, 2.0])

        for A in (matrix_operator(C), function_operator(lambda v: C @ v, x)):
            assert jnp.allclose(A.apply_adjoint(y), C.conj().T @ y)
            # <A x, y> = <x, A^H y>
            assert jnp.allclose(jnp.vdot(A.apply(x), y), jnp.vdot(x, A.apply_adjoint(y)))


class TestAffineOperator:
    def test_apply_subtracts_offset(self):
        b = jnp.array([1.0, 1.0])
        A = AffineOperator(matrix_operator(M), b)
        x = jnp.array([1.0, 0.0, 1.0])

        assert not A.is_linear
        assert jnp.allclose(A.apply(x), M @ x - b)
        assert jnp.allclose(A.apply_adjoint(b), M.T @ b)
        assert A.linear_part().is_linear

    def test_offset_shape_mismatch(self):
        with pytest.raises(ValueError):
            AffineOperator(matrix_operator(M), jnp.ones(3))

    def test_nested_affine_rejected(self):
        inner = AffineOperator(matrix_operator(M), jnp.ones(2))
        with pytest.raises(ValueError):
            AffineOperator(inner, jnp.ones(2))


class TestAsOperator:
    def test_from_array_and_list(self):
        assert isinstance(as_operator(M), LinearOperator)
        A = as_operator([[1.0, 0.0], [0.0, 2.0]])
        assert jnp.allclose(A.apply(jnp.ones(2)), jnp.array([1.0, 2.0]))

    def test_from_lineax_operator(self):
        A = as_operator(lx.MatrixLinearOperator(M))
        assert isinstance(A, LinearOperator)

    def test_existing_operator_is_returned(self):
        A = matrix_operator(M)
        assert as_operator(A) is A

    def test_with_data_term(self):
        A = as_operator(M, b=jnp.array([1.0, 2.0]))
        assert isinstance(A, AffineOperator)
        assert jnp.allclose(A.apply(jnp.zeros(3)), jnp.array([-1.0, -2.0]))

    def test_data_term_on_affine_rejected(self):
        A = AffineOperator(matrix_operator(M), jnp.ones(2))
        with pytest.raises(ValueError):
            as_operator(A, b=jnp.ones(2))

    def test_unsupported_type(self):
        with pytest.raises(TypeError):
            as_operator("not an operator")
