import math

import jax.numpy as jnp
import pytest

from regls.prox import IndBox, NormL0, NormL1, SqrNormL2, Zero


def test_zero_prox_is_identity():
    v = jnp.array([1.0, -2.0])
    p, value = Zero().prox(v, 3.0)

    assert jnp.array_equal(p, v)
    assert float(value) == 0.0


def test_norm_l1_soft_thresholding():
    g = NormL1(0.5)
    p, value = g.prox(jnp.array([3.0, -0.5, 0.2, -4.0]), 2.0)

    assert jnp.allclose(p, jnp.array([2.0, 0.0, 0.0, -3.0]))
    assert math.isclose(float(value), 0.5 * 5.0)
    assert math.isclose(float(g(p)), float(value))


def test_norm_l1_complex_shrinks_magnitude():
    p, _ = NormL1(1.0).prox(jnp.array([3.0 + 4.0j]), 1.0)
    assert jnp.allclose(p, jnp.array([2.4 + 3.2j]))


def test_norm_l1_pytree():
    v = {"a": jnp.array([2.0, -2.0]), "b": jnp.array(0.5)}
    p, value = NormL1(1.0).prox(v, 1.0)

    assert jnp.allclose(p["a"], jnp.array([1.0, -1.0]))
    assert float(p["b"]) == 0.0
    assert math.isclose(float(value), 2.0)


def test_norm_l0_hard_thresholding():
    # threshold sqrt(2 * gamma * lam) = 1
    g = NormL0(0.25)
    p, value = g.prox(jnp.array([1.5, -0.9, 0.0, -2.0]), 2.0)

    assert jnp.array_equal(p, jnp.array([1.5, 0.0, 0.0, -2.0]))
    assert math.isclose(float(value), 0.5)


def test_sqr_norm_l2_shrinks():
    g = SqrNormL2(2.0)
    p, value = g.prox(jnp.array([3.0, -6.0]), 1.0)

    assert jnp.allclose(p, jnp.array([1.0, -2.0]))
    assert math.isclose(float(value), 5.0)


def test_box_projection():
    g = IndBox(lower=0.0, upper=1.0)
    p, value = g.prox(jnp.array([-1.0, 0.5, 3.0]), 10.0)

    assert jnp.array_equal(p, jnp.array([0.0, 0.5, 1.0]))
    assert float(value) == 0.0
    assert float(g(jnp.array([2.0]))) == math.inf
    assert float(g(p)) == 0.0


@pytest.mark.parametrize("cls", [NormL1, NormL0, SqrNormL2])
def test_negative_weight_rejected(cls):
    with pytest.raises(ValueError):
        cls(-1.0)
