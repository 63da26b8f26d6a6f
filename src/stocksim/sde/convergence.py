# src/stocksim/sde/convergence.py
from __future__ import annotations

import logging
from typing import Iterable, Tuple

import numpy as np
import pandas as pd

from stocksim.sde.errors import InvalidParameter
from stocksim.sde.integrators import RandomSource
from stocksim.sde.schemas import RngMode, Scheme, SimulationParameters
from stocksim.sde.steppers import SchemeSteppers, get_steppers
from stocksim.sde.xi import rk4_xi_step

LOGGER = logging.getLogger(__name__)


def _integrate_terminal(
    steppers: SchemeSteppers,
    params: SimulationParameters,
    dt: float,
    phi_stock: np.ndarray,
    phi_vol: np.ndarray,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Run all samples over the given increments (samples, n_incs) and return the final state."""
    samples = phi_stock.shape[0]
    stock = np.full(samples, params.s0, dtype=float)
    vol = np.full(samples, params.sigma0, dtype=float)
    xi = np.full(samples, params.xi0, dtype=float)

    for j in range(phi_stock.shape[1]):
        stock, vol, xi = (
            steppers.stock(stock, vol, params.mu, dt, phi_stock[:, j]),
            steppers.vol(vol, xi, params.p, dt, phi_vol[:, j]),
            rk4_xi_step(vol, xi, params.alpha, dt),
        )
    return stock, vol, xi


def _coarsen(phi: np.ndarray, factor: int) -> np.ndarray:
    """Sum consecutive blocks of `factor` fine increments."""
    samples, n_incs = phi.shape
    return phi.reshape(samples, n_incs // factor, factor).sum(axis=2)


def weak_error_study(
    params: SimulationParameters,
    factors: Iterable[int],
    scheme: Scheme | str = Scheme.EULER,
    reference_scheme: Scheme | str = Scheme.MILSTEIN,
) -> pd.DataFrame:
    """
    Estimate the weak error of `scheme` in the terminal stock price.

    A reference solution is computed with `reference_scheme` on the fine grid
    (params.dt, params.T). For each factor the same Brownian paths are
    re-integrated on a grid `factor` times coarser, whose increments are block
    sums of the fine increments.

    Returns a frame with columns factor, dt, mean_terminal, weak_error where
    weak_error = |E[S_T coarse] - E[S_T reference]|. The reference mean is
    stored in `df.attrs["reference_mean"]`.
    """
    params.validate()
    coarse_steppers = get_steppers(scheme)
    reference_steppers = get_steppers(reference_scheme)

    factors = list(factors)
    if not factors:
        raise InvalidParameter("factors must not be empty")

    n_incs = params.n_steps - 1
    for f in factors:
        if isinstance(f, bool) or int(f) != f or f < 1:
            raise InvalidParameter(f"factors must be positive integers (got {f!r})")
        if n_incs % int(f) != 0:
            raise InvalidParameter(
                f"factor {f} does not divide the {n_incs} fine increments"
            )

    rng = RandomSource(params.seed, params.samples, RngMode.SEQUENTIAL)
    phi_stock, phi_vol = rng.increments(0, params.samples, n_incs, params.dt)

    LOGGER.info(
        "Weak error study: %d samples, %d fine steps, factors=%s",
        params.samples,
        n_incs,
        factors,
    )

    ref_stock, _, _ = _integrate_terminal(
        reference_steppers, params, params.dt, phi_stock, phi_vol
    )
    reference_mean = float(np.mean(ref_stock))

    rows = []
    for f in factors:
        f = int(f)
        dt_coarse = params.dt * f
        stock_T, _, _ = _integrate_terminal(
            coarse_steppers,
            params,
            dt_coarse,
            _coarsen(phi_stock, f),
            _coarsen(phi_vol, f),
        )
        mean_T = float(np.mean(stock_T))
        rows.append(
            {
                "factor": f,
                "dt": dt_coarse,
                "mean_terminal": mean_T,
                "weak_error": abs(mean_T - reference_mean),
            }
        )

    df = pd.DataFrame(rows, columns=["factor", "dt", "mean_terminal", "weak_error"])
    df.attrs["reference_mean"] = reference_mean
    return df


def estimate_order(df: pd.DataFrame) -> float:
    """Slope of log(weak_error) against log(dt)."""
    if len(df) < 2:
        raise ValueError("need at least two timesteps to estimate a convergence order")
    errors = df["weak_error"].to_numpy(dtype=float)
    if np.any(errors <= 0):
        raise ValueError("weak errors must be positive to fit a log-log slope")
    slope, _ = np.polyfit(np.log(df["dt"].to_numpy(dtype=float)), np.log(errors), 1)
    return float(slope)
