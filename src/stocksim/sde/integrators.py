# src/stocksim/sde/integrators.py
from __future__ import annotations

import math
from typing import Tuple

import numpy as np

from stocksim.sde.schemas import RngMode


def rng_with_seed(seed: int | np.random.SeedSequence | None) -> np.random.Generator:
    """Create a Mersenne Twister backed Generator deterministically from seed if provided."""
    return np.random.Generator(np.random.MT19937(seed))


def euler_maruyama_step(x, drift, diffusion, dt: float, dW):
    """
    Single Euler-Maruyama step:
    X_{t+dt} = X_t + a(X_t)*dt + b(X_t)*dW
    Here we pass precomputed drift and diffusion values for speed.
    """
    return x + drift * dt + diffusion * dW


def milstein_step(x, drift, diffusion, diff_derivative, dt: float, dW):
    """
    Single Milstein step:
    X_{t+dt} = X_t + a dt + b dW + 0.5 b b' (dW^2 - dt)
    where diff_derivative is b'(X_t)
    """
    return (
        x
        + drift * dt
        + diffusion * dW
        + 0.5 * diffusion * diff_derivative * (dW * dW - dt)
    )


def platen_step(x, drift, diffusion, diffusion_fn, dt: float, dW):
    """
    Single derivative-free (stochastic Runge-Kutta) step of strong order 1.0:

        x_hat     = X_t + a dt + b sqrt(dt)
        X_{t+dt}  = X_t + a dt + b dW + (b(x_hat) - b) (dW^2 - dt) / (2 sqrt(dt))

    diffusion_fn evaluates b at the supporting value x_hat.
    """
    sqrt_dt = math.sqrt(dt)
    x_hat = x + drift * dt + diffusion * sqrt_dt
    return (
        euler_maruyama_step(x, drift, diffusion, dt, dW)
        + (diffusion_fn(x_hat) - diffusion) * (dW * dW - dt) / (2.0 * sqrt_dt)
    )


def gaussian_increments(rng: np.random.Generator, shape: Tuple[int, int], dt: float):
    """
    Return normal increments with variance dt, shape = (n_paths, n_steps).
    Values are drawn in C order, so a block equals the same number of scalar draws.
    """
    return rng.standard_normal(size=shape) * math.sqrt(dt)


class RandomSource:
    """
    Two streams of Brownian increments, one driving the stock and one the volatility.

    In sequential mode the stock stream is seeded with `seed` and the volatility
    stream with `seed + 1`; both are drawn in sample-major, time-minor order and
    never reset, so blocks must be requested for consecutive samples.

    In independent mode each sample owns two substreams spawned from
    SeedSequence(seed), so a sample's increments do not depend on other samples.
    """

    def __init__(
        self,
        seed: int,
        samples: int,
        mode: RngMode | str = RngMode.SEQUENTIAL,
    ):
        self.seed = seed
        self.samples = samples
        self.mode = RngMode(mode)
        self._next_sample = 0

        if self.mode is RngMode.SEQUENTIAL:
            self._stock = rng_with_seed(seed)
            self._vol = rng_with_seed(seed + 1)
        else:
            self._root = np.random.SeedSequence(seed)

    def _substreams(self, s: int) -> Tuple[np.random.Generator, np.random.Generator]:
        # same streams as SeedSequence(seed).spawn(samples)[s].spawn(2)
        child = np.random.SeedSequence(
            self._root.entropy, spawn_key=self._root.spawn_key + (s,)
        )
        rng_stock, rng_vol = (rng_with_seed(c) for c in child.spawn(2))
        return rng_stock, rng_vol

    def increments(
        self, start: int, stop: int, n_incs: int, dt: float
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Return (phi_stock, phi_vol) for samples [start, stop), each shaped
        (stop - start, n_incs) and scaled by sqrt(dt).
        """
        if not 0 <= start <= stop <= self.samples:
            raise IndexError(
                f"sample range [{start}, {stop}) outside [0, {self.samples})"
            )
        if start != self._next_sample:
            raise RuntimeError(
                f"samples must be drawn in order: expected {self._next_sample}, got {start}"
            )
        self._next_sample = stop

        shape = (stop - start, n_incs)
        if self.mode is RngMode.SEQUENTIAL:
            return (
                gaussian_increments(self._stock, shape, dt),
                gaussian_increments(self._vol, shape, dt),
            )

        phi_stock = np.empty(shape, dtype=float)
        phi_vol = np.empty(shape, dtype=float)
        for row, s in enumerate(range(start, stop)):
            rng_stock, rng_vol = self._substreams(s)
            phi_stock[row] = gaussian_increments(rng_stock, (1, n_incs), dt)[0]
            phi_vol[row] = gaussian_increments(rng_vol, (1, n_incs), dt)[0]
        return phi_stock, phi_vol
