# src/stocksim/sde/simulator.py
from __future__ import annotations

import logging
import numbers
from typing import Optional

from stocksim.sde.errors import InvalidParameter
from stocksim.sde.integrators import RandomSource
from stocksim.sde.paths import PathCollection
from stocksim.sde.schemas import RngMode, Scheme, SimulationParameters
from stocksim.sde.steppers import get_steppers
from stocksim.sde.xi import rk4_xi_step

LOGGER = logging.getLogger(__name__)


class PathSimulator:
    """
    Generates stock, volatility and xi paths for a fixed parameter set and scheme.

    All checks (parameters, scheme, rng mode, chunk size) run in the constructor,
    so a simulator that exists can only fail on a mis-shaped output buffer, which
    `run` checks before writing anything.

    Samples are processed in chunks of `chunk_size` columns; within a chunk the
    time loop is vectorized across samples. Increments are drawn per chunk in
    sample-major, time-minor order, so the chunk size does not change the output.
    """

    def __init__(
        self,
        params: SimulationParameters,
        scheme: Scheme | str = Scheme.EULER,
        rng_mode: RngMode | str = RngMode.SEQUENTIAL,
        chunk_size: Optional[int] = None,
    ):
        self.params = params.validate()
        self.steppers = get_steppers(scheme)
        self.scheme = scheme

        try:
            self.rng_mode = RngMode(rng_mode)
        except ValueError as e:
            raise InvalidParameter(
                f"rng_mode must be one of {[m.value for m in RngMode]} (got {rng_mode!r})"
            ) from e

        if chunk_size is not None and (
            isinstance(chunk_size, bool)
            or not isinstance(chunk_size, numbers.Integral)
            or chunk_size < 1
        ):
            raise InvalidParameter(f"chunk_size must be a positive integer (got {chunk_size})")
        if chunk_size is not None:
            chunk_size = int(chunk_size)
        self.chunk_size = chunk_size

    def run(self, out: Optional[PathCollection] = None) -> PathCollection:
        """Fill `out` (allocated here when omitted) and return it."""
        n_steps, samples = self.params.shape
        if out is None:
            out = PathCollection.allocate(n_steps, samples)
        else:
            out.check_shape(n_steps, samples)

        LOGGER.info(
            "Simulating %d paths of %d steps (scheme=%s, rng_mode=%s)",
            samples,
            n_steps,
            self.scheme.value if isinstance(self.scheme, Scheme) else self.scheme,
            self.rng_mode.value,
        )

        rng = RandomSource(self.params.seed, samples, self.rng_mode)
        chunk = self.chunk_size or samples
        for start in range(0, samples, chunk):
            stop = min(start + chunk, samples)
            LOGGER.debug("Simulating samples [%d, %d)", start, stop)
            self._run_chunk(out, rng, start, stop)

        return out

    def _run_chunk(
        self, out: PathCollection, rng: RandomSource, start: int, stop: int
    ) -> None:
        prm = self.params
        n_steps = prm.n_steps
        cols = slice(start, stop)
        step_stock = self.steppers.stock
        step_vol = self.steppers.vol

        out.stock[0, cols] = prm.s0
        out.vol[0, cols] = prm.sigma0
        out.xi[0, cols] = prm.xi0

        phi_stock, phi_vol = rng.increments(start, stop, n_steps - 1, prm.dt)

        for t in range(1, n_steps):
            stock_prev = out.stock[t - 1, cols]
            vol_prev = out.vol[t - 1, cols]
            xi_prev = out.xi[t - 1, cols]

            out.stock[t, cols] = step_stock(
                stock_prev, vol_prev, prm.mu, prm.dt, phi_stock[:, t - 1]
            )
            out.vol[t, cols] = step_vol(
                vol_prev, xi_prev, prm.p, prm.dt, phi_vol[:, t - 1]
            )
            out.xi[t, cols] = rk4_xi_step(vol_prev, xi_prev, prm.alpha, prm.dt)


def simulate_paths(
    params: SimulationParameters,
    scheme: Scheme | str = Scheme.EULER,
    out: Optional[PathCollection] = None,
    rng_mode: RngMode | str = RngMode.SEQUENTIAL,
    chunk_size: Optional[int] = None,
) -> PathCollection:
    """
    Generate `params.samples` paths of length round(T / dt).

    Returns a PathCollection whose matrices are shaped (n_steps, samples).
    Raises InvalidParameter / UnsupportedScheme before any draw or write.
    """
    simulator = PathSimulator(params, scheme, rng_mode=rng_mode, chunk_size=chunk_size)
    return simulator.run(out)
