import math

import jax.numpy as jnp

from regls.optim.envelope import forward_backward_envelope, forward_backward_step
from regls.prox import NormL1, Zero


def test_forward_backward_step_soft_thresholds():
    x = jnp.array([1.0, 2.0])
    gradx = jnp.array([0.5, -1.0])

    xbar, gxbar = forward_backward_step(NormL1(0.1), x, gradx, 0.5)

    assert jnp.allclose(xbar, jnp.array([0.7, 2.45]))
    assert math.isclose(gxbar, 0.315)
    assert isinstance(gxbar, float)


def test_envelope_formula():
    x = jnp.array([1.0, 2.0])
    gradx = jnp.array([0.5, -1.0])
    xbar, gxbar = forward_backward_step(NormL1(0.1), x, gradx, 0.5)

    env = forward_backward_envelope(x, xbar, gxbar, 2.0, gradx, 0.5)

    assert jnp.allclose(env.r, jnp.array([0.3, -0.45]))
    assert math.isclose(env.normfpr, math.sqrt(0.2925))
    # 2 - <gradx, r> + ||r||^2 / (2 gamma) = 2 - 0.6 + 0.2925
    assert math.isclose(env.uppbnd, 1.6925)
    assert math.isclose(env.fbe, 1.6925 + 0.315)


def test_envelope_is_deterministic():
    x = jnp.array([0.3, -1.2, 4.0])
    gradx = jnp.array([1.0, 0.0, -2.0])
    xbar, gxbar = forward_backward_step(Zero(), x, gradx, 0.25)

    first = forward_backward_envelope(x, xbar, gxbar, 1.5, gradx, 0.25)
    second = forward_backward_envelope(x, xbar, gxbar, 1.5, gradx, 0.25)

    assert jnp.array_equal(first.r, second.r)
    assert first.normfpr == second.normfpr
    assert first.uppbnd == second.uppbnd
    assert first.fbe == second.fbe


def test_envelope_at_fixed_point():
    x = jnp.array([1.0, -1.0])
    env = forward_backward_envelope(x, x, 0.0, 3.0, jnp.zeros(2), 1.0)

    assert env.normfpr == 0.0
    assert env.fbe == 3.0
