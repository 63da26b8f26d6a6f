# tests/sde/test_simulator.py
import math

import numpy as np
import pytest

from stocksim.sde.errors import InvalidParameter, UnsupportedScheme
from stocksim.sde.integrators import rng_with_seed
from stocksim.sde.paths import PathCollection
from stocksim.sde.schemas import RngMode, Scheme, SimulationParameters
from stocksim.sde.simulator import PathSimulator, simulate_paths
from stocksim.sde.steppers import (
    SchemeSteppers,
    euler_stock,
    euler_vol,
    register_scheme,
    unregister_scheme,
)
from stocksim.sde.xi import rk4_xi_step


def _params(**overrides) -> SimulationParameters:
    base = dict(
        dt=0.01,
        sigma0=0.2,
        s0=100.0,
        xi0=0.15,
        mu=0.05,
        p=0.1,
        alpha=2.0,
        T=0.05,
        samples=2,
        seed=42,
    )
    base.update(overrides)
    return SimulationParameters(**base)


def _sentinel_buffer(n_steps: int, samples: int) -> PathCollection:
    shape = (n_steps, samples)
    return PathCollection(
        stock=np.full(shape, -7.0),
        vol=np.full(shape, -7.0),
        xi=np.full(shape, -7.0),
    )


def test_example_scenario_shape_and_initial_row():
    paths = simulate_paths(_params(), "euler")

    assert paths.shape == (5, 2)
    assert paths.vol.shape == (5, 2)
    assert paths.xi.shape == (5, 2)
    assert np.array_equal(paths.stock[0], [100.0, 100.0])
    assert np.array_equal(paths.vol[0], [0.2, 0.2])
    assert np.array_equal(paths.xi[0], [0.15, 0.15])
    assert np.all(np.isfinite(paths.stock))


@pytest.mark.parametrize(
    "T, dt, expected",
    [(1.0, 0.01, 100), (0.05, 0.01, 5), (1.0, 0.4, 3), (0.3, 0.1, 3), (0.1, 0.1, 1)],
)
def test_n_steps_is_rounded_ratio(T, dt, expected):
    paths = simulate_paths(_params(T=T, dt=dt, samples=3), "milstein")
    assert paths.shape == (expected, 3)


@pytest.mark.parametrize("scheme", ["euler", "milstein", "rk"])
def test_reproducible_for_same_seed(scheme):
    prm = _params(T=1.0, samples=4)
    a = simulate_paths(prm, scheme)
    b = simulate_paths(prm, scheme)
    assert np.array_equal(a.stock, b.stock)
    assert np.array_equal(a.vol, b.vol)
    assert np.array_equal(a.xi, b.xi)

    c = simulate_paths(_params(T=1.0, samples=4, seed=43), scheme)
    assert not np.array_equal(a.stock, c.stock)


def test_schemes_differ_after_initial_row():
    prm = _params(T=0.5, samples=3, p=0.5)
    runs = {s: simulate_paths(prm, s) for s in Scheme}

    for a, b in [
        (Scheme.EULER, Scheme.MILSTEIN),
        (Scheme.EULER, Scheme.RK),
        (Scheme.MILSTEIN, Scheme.RK),
    ]:
        pa, pb = runs[a], runs[b]
        assert np.array_equal(pa.stock[0], pb.stock[0])
        assert np.array_equal(pa.vol[0], pb.vol[0])
        assert np.array_equal(pa.xi[0], pb.xi[0])
        assert np.all(pa.stock[1:] != pb.stock[1:])
        assert np.all(pa.vol[1:] != pb.vol[1:])
        # xi at step 1 only depends on row 0
        assert np.array_equal(pa.xi[1], pb.xi[1])


@pytest.mark.parametrize("scheme", ["euler", "milstein", "rk"])
def test_xi_follows_rk4_of_previous_row(scheme):
    prm = _params(T=0.3, samples=3)
    paths = simulate_paths(prm, scheme)
    expected = rk4_xi_step(paths.vol[:-1], paths.xi[:-1], prm.alpha, prm.dt)
    assert np.allclose(paths.xi[1:], expected, rtol=0, atol=1e-15)


def test_sequential_draw_order_matches_scalar_loop():
    prm = _params(T=0.06, samples=3, seed=7)
    n = prm.n_steps
    paths = simulate_paths(prm, "euler")

    rng_stock = rng_with_seed(prm.seed)
    rng_vol = rng_with_seed(prm.seed + 1)
    sq = math.sqrt(prm.dt)
    for s in range(prm.samples):
        S, v, x = prm.s0, prm.sigma0, prm.xi0
        for t in range(1, n):
            phi_s = rng_stock.standard_normal() * sq
            phi_v = rng_vol.standard_normal() * sq
            S, v, x = (
                euler_stock(S, v, prm.mu, prm.dt, phi_s),
                euler_vol(v, x, prm.p, prm.dt, phi_v),
                rk4_xi_step(v, x, prm.alpha, prm.dt),
            )
            assert paths.stock[t, s] == pytest.approx(S, rel=1e-12)
            assert paths.vol[t, s] == pytest.approx(v, rel=1e-12)
            assert paths.xi[t, s] == pytest.approx(x, rel=1e-12)


def test_chunk_size_does_not_change_output():
    prm = _params(T=0.2, samples=7)
    full = simulate_paths(prm, "rk")
    chunked = simulate_paths(prm, "rk", chunk_size=3)
    single = simulate_paths(prm, "rk", chunk_size=1)
    assert np.array_equal(full.stock, chunked.stock)
    assert np.array_equal(full.vol, single.vol)
    assert np.array_equal(full.xi, single.xi)


def test_chunk_size_does_not_change_independent_output():
    prm = _params(T=0.2, samples=7)
    full = simulate_paths(prm, "milstein", rng_mode="independent")
    chunked = simulate_paths(prm, "milstein", rng_mode="independent", chunk_size=3)
    single = simulate_paths(prm, "milstein", rng_mode="independent", chunk_size=1)
    for other in (chunked, single):
        assert np.array_equal(full.stock, other.stock)
        assert np.array_equal(full.vol, other.vol)
        assert np.array_equal(full.xi, other.xi)


def test_independent_mode_many_samples_small_chunks():
    one = simulate_paths(_params(T=0.03, samples=1), "euler", rng_mode="independent")
    many = simulate_paths(
        _params(T=0.03, samples=5000), "euler", rng_mode="independent", chunk_size=64
    )
    assert many.shape == (3, 5000)
    assert np.array_equal(one.stock[:, 0], many.stock[:, 0])
    assert np.array_equal(one.vol[:, 0], many.vol[:, 0])
    assert np.all(np.isfinite(many.stock))


def test_independent_mode_decouples_samples():
    small = simulate_paths(_params(T=0.2, samples=1), "euler", rng_mode="independent")
    large = simulate_paths(_params(T=0.2, samples=4), "euler", rng_mode="independent")
    assert np.array_equal(small.stock[:, 0], large.stock[:, 0])
    assert np.array_equal(small.vol[:, 0], large.vol[:, 0])

    again = simulate_paths(
        _params(T=0.2, samples=4), "euler", rng_mode=RngMode.INDEPENDENT
    )
    assert np.array_equal(large.stock, again.stock)

    seq = simulate_paths(_params(T=0.2, samples=4), "euler")
    assert not np.array_equal(seq.stock, large.stock)


def test_fills_caller_buffer_in_place():
    prm = _params()
    out = PathCollection.allocate(prm.n_steps, prm.samples)
    result = simulate_paths(prm, "milstein", out=out)
    assert result is out
    assert np.array_equal(out.stock, simulate_paths(prm, "milstein").stock)


@pytest.mark.parametrize("alpha", [0.0, -1.0, float("nan")])
def test_non_positive_alpha_raises_before_writing(alpha):
    out = _sentinel_buffer(5, 2)
    with pytest.raises(InvalidParameter):
        simulate_paths(_params(alpha=alpha), "euler", out=out)
    assert np.all(out.stock == -7.0)
    assert np.all(out.vol == -7.0)
    assert np.all(out.xi == -7.0)


@pytest.mark.parametrize(
    "overrides",
    [
        {"dt": 0.0},
        {"dt": -0.01},
        {"samples": 0},
        {"T": 0.0},
        {"T": 0.001},
        {"T": 1e300, "dt": 1e-300},
    ],
)
def test_invalid_parameters_raise(overrides):
    with pytest.raises(InvalidParameter):
        simulate_paths(_params(**overrides), "euler")


def test_unsupported_scheme_raises_before_writing():
    out = _sentinel_buffer(5, 2)
    with pytest.raises(UnsupportedScheme):
        simulate_paths(_params(), "heun", out=out)
    assert np.all(out.stock == -7.0)


def test_mis_shaped_buffer_raises_before_writing():
    out = _sentinel_buffer(4, 2)
    with pytest.raises(InvalidParameter):
        simulate_paths(_params(), "euler", out=out)
    assert np.all(out.stock == -7.0)


def test_invalid_rng_mode_and_chunk_size():
    with pytest.raises(InvalidParameter):
        PathSimulator(_params(), "euler", rng_mode="parallel")
    with pytest.raises(InvalidParameter):
        PathSimulator(_params(), "euler", chunk_size=0)


@pytest.mark.parametrize("chunk_size", [float("nan"), "abc", 2.5, True])
def test_non_integer_chunk_size_raises(chunk_size):
    with pytest.raises(InvalidParameter):
        PathSimulator(_params(), "euler", chunk_size=chunk_size)


def test_xi_matches_exponential_relaxation_with_frozen_vol():
    register_scheme(
        "frozen_vol",
        SchemeSteppers(euler_stock, lambda vol, xi, p, dt, phi: vol),
    )
    try:
        prm = SimulationParameters(
            dt=1e-3,
            sigma0=0.2,
            s0=100.0,
            xi0=0.1,
            mu=0.05,
            p=0.0,
            alpha=1.0,
            T=1.0,
            samples=2,
            seed=1,
        )
        paths = simulate_paths(prm, "frozen_vol")
    finally:
        unregister_scheme("frozen_vol")

    assert np.all(paths.vol == 0.2)
    t = paths.times(prm.dt)[:, None]
    exact = 0.2 + (0.1 - 0.2) * np.exp(-t / prm.alpha)
    assert np.allclose(paths.xi, exact, rtol=0, atol=1e-4)
