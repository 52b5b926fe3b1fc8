import jax.numpy as jnp
import pytest

from regls import NormL1, SolverConfig, Verbosity, minimize


def test_minimize_with_data_term():
    x, result = minimize(jnp.eye(2), NormL1(1.0), b=jnp.array([3.0, 0.0]), verbose=0)

    assert result.converged
    assert jnp.allclose(x, jnp.array([2.0, 0.0]), atol=1e-6)


def test_minimize_defaults_to_plain_least_squares():
    M = jnp.array([[2.0, 0.0], [0.0, 1.0], [1.0, 1.0]])
    b = jnp.array([2.0, 1.0, 2.0])

    x, result = minimize(M, b=b, tol=1e-10, verbose=0)

    assert result.converged
    assert jnp.allclose(x, jnp.linalg.lstsq(M, b)[0], atol=1e-6)


def test_minimize_complex_least_squares():
    M = jnp.array([[1.0 + 1.0j, 0.5], [0.2j, 2.0 - 0.5j], [1.0, 1.0j]])
    b = jnp.array([1.0 + 0.5j, -1.0j, 2.0])

    x, result = minimize(M, b=b, x0=jnp.zeros(2, dtype=complex), tol=1e-10, verbose=0)

    assert result.converged
    assert jnp.allclose(x, jnp.linalg.lstsq(M, b)[0], atol=1e-6)


def test_minimize_with_config_object():
    config = SolverConfig(max_iter=0, verbose=0)
    _, result = minimize(jnp.eye(3), x0=jnp.ones(3), config=config)

    assert result.iterations == 0
    assert result.status == "max_iter"


def test_config_and_options_are_exclusive():
    with pytest.raises(ValueError):
        minimize(jnp.eye(2), config=SolverConfig(verbose=0), tol=1e-3)


class TestSolverConfig:
    def test_defaults(self):
        config = SolverConfig()
        assert config.tol == 1e-8
        assert config.max_iter == 10000
        assert config.memory_size == 5
        assert config.verbose == Verbosity.PERIODIC
        assert config.linesearch
        assert config.gamma is None
        assert config.max_linesearch_steps == 32

    def test_verbose_is_coerced(self):
        assert SolverConfig(verbose=2).verbose is Verbosity.EVERY_ITERATION

    @pytest.mark.parametrize(
        "options",
        [
            {"tol": 0.0},
            {"max_iter": -1},
            {"memory_size": -1},
            {"print_every": 0},
            {"gamma": -1.0},
            {"max_linesearch_steps": 0},
            {"verbose": 3},
        ],
    )
    def test_invalid_options(self, options):
        with pytest.raises(ValueError):
            SolverConfig(**options)
