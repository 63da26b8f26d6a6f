# src/stocksim/sde/paths.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np
import pandas as pd

from stocksim.sde.errors import InvalidParameter


@dataclass
class PathCollection:
    """
    Output buffers of a simulation run.

    stock, vol, xi: float arrays shaped (n_steps, samples); column s holds
    sample s in time order and row 0 holds the initial condition.
    """

    stock: np.ndarray
    vol: np.ndarray
    xi: np.ndarray

    @classmethod
    def allocate(cls, n_steps: int, samples: int) -> "PathCollection":
        shape = (n_steps, samples)
        return cls(
            stock=np.zeros(shape, dtype=float),
            vol=np.zeros(shape, dtype=float),
            xi=np.zeros(shape, dtype=float),
        )

    @property
    def shape(self) -> tuple[int, int]:
        return self.stock.shape

    @property
    def n_steps(self) -> int:
        return self.stock.shape[0]

    @property
    def samples(self) -> int:
        return self.stock.shape[1]

    def check_shape(self, n_steps: int, samples: int) -> None:
        """Raise InvalidParameter unless all three matrices are (n_steps, samples)."""
        expected = (n_steps, samples)
        for name in ("stock", "vol", "xi"):
            arr = getattr(self, name)
            if not isinstance(arr, np.ndarray) or arr.ndim != 2:
                raise InvalidParameter(f"{name} buffer must be a 2D numpy array")
            if arr.shape != expected:
                raise InvalidParameter(
                    f"{name} buffer has shape {arr.shape}, expected {expected}"
                )
            if not np.issubdtype(arr.dtype, np.floating):
                raise InvalidParameter(
                    f"{name} buffer must have a floating dtype (got {arr.dtype})"
                )
            if not arr.flags.writeable:
                raise InvalidParameter(f"{name} buffer is read-only")

        for a, b in (("stock", "vol"), ("stock", "xi"), ("vol", "xi")):
            if np.shares_memory(getattr(self, a), getattr(self, b)):
                raise InvalidParameter(f"{a} and {b} buffers share memory")

    def times(self, dt: float) -> np.ndarray:
        return np.arange(self.n_steps, dtype=float) * dt

    def sample(self, s: int) -> pd.DataFrame:
        """Single path as a frame with columns stock, vol, xi."""
        return pd.DataFrame(
            {"stock": self.stock[:, s], "vol": self.vol[:, s], "xi": self.xi[:, s]}
        )

    def averages(self, dt: Optional[float] = None) -> pd.DataFrame:
        """
        Mean over samples at every time step.

        Returns a frame with columns stock, vol, xi; indexed by time when dt is given.
        """
        df = pd.DataFrame(
            {
                "stock": self.stock.mean(axis=1),
                "vol": self.vol.mean(axis=1),
                "xi": self.xi.mean(axis=1),
            }
        )
        if dt is not None:
            df.index = pd.Index(self.times(dt), name="t")
        return df

    def terminal(self) -> pd.DataFrame:
        """Last row of every matrix, one row per sample."""
        return pd.DataFrame(
            {"stock": self.stock[-1], "vol": self.vol[-1], "xi": self.xi[-1]}
        )
