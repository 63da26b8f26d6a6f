# src/stocksim/sde/schemas.py
from __future__ import annotations

import math
import numbers
from dataclasses import dataclass
from enum import Enum

from stocksim.sde.errors import InvalidParameter


class Scheme(str, Enum):
    """Numerical schemes available for the stock and volatility SDEs."""

    EULER = "euler"
    MILSTEIN = "milstein"
    RK = "rk"


class RngMode(str, Enum):
    """
    How random streams are assigned to samples.

    SEQUENTIAL: two global streams (seed, seed + 1) drawn sample after sample.
    INDEPENDENT: two seed-derived substreams per sample.
    """

    SEQUENTIAL = "sequential"
    INDEPENDENT = "independent"


def n_steps_for(T: float, dt: float) -> int:
    """Number of grid points per path, round(T / dt) with halves rounded away from zero."""
    ratio = T / dt
    return int(math.copysign(math.floor(abs(ratio) + 0.5), ratio))


@dataclass(frozen=True)
class SimulationParameters:
    """
    Model and grid parameters for one simulation run.

        dS     = mu S dt + sigma S dW_1
        dsigma = -(sigma - xi) dt + p sigma dW_2
        dxi    = (sigma - xi) / alpha dt

    dt: timestep size
    sigma0, s0, xi0: initial conditions
    mu: stock drift
    p: volatility-of-volatility coefficient
    alpha: mean-reversion time constant of xi (> 0)
    T: horizon
    samples: number of Monte-Carlo paths
    seed: RNG seed; stream B is seeded with seed + 1
    """

    dt: float
    sigma0: float
    s0: float
    xi0: float
    mu: float
    p: float
    alpha: float
    T: float
    samples: int
    seed: int = 0

    @property
    def n_steps(self) -> int:
        return n_steps_for(self.T, self.dt)

    @property
    def shape(self) -> tuple[int, int]:
        return self.n_steps, self.samples

    def validate(self) -> "SimulationParameters":
        """Check numeric constraints. Returns self so calls can be chained."""
        # `not (x > 0)` also rejects NaN
        if not (self.alpha > 0):
            raise InvalidParameter(f"alpha must be larger than zero (got {self.alpha})")
        if not (0 < self.dt < math.inf):
            raise InvalidParameter(f"dt must be positive and finite (got {self.dt})")
        if not (0 < self.T < math.inf):
            raise InvalidParameter(f"T must be positive and finite (got {self.T})")
        if isinstance(self.samples, bool) or not isinstance(self.samples, numbers.Integral):
            raise InvalidParameter(f"samples must be an integer (got {self.samples!r})")
        if self.samples < 1:
            raise InvalidParameter(f"samples must be positive (got {self.samples})")
        if isinstance(self.seed, bool) or not isinstance(self.seed, numbers.Integral):
            raise InvalidParameter(f"seed must be an integer (got {self.seed!r})")
        if self.seed < 0:
            raise InvalidParameter(f"seed must be non-negative (got {self.seed})")
        if not math.isfinite(self.T / self.dt):
            raise InvalidParameter(f"T / dt must be finite (T={self.T}, dt={self.dt})")
        if self.n_steps < 1:
            raise InvalidParameter(
                f"T / dt must round to at least one step (T={self.T}, dt={self.dt})"
            )
        return self
