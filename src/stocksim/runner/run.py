from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

import numpy as np
import pandas as pd

from stocksim import __version__
from stocksim.runner.config.loader import load_config
from stocksim.runner.config.models import SimulationConfig
from stocksim.sde.paths import PathCollection
from stocksim.sde.schemas import SimulationParameters
from stocksim.sde.simulator import PathSimulator

LOGGER = logging.getLogger(__name__)


# ======================================================================
# Result container
# ======================================================================


@dataclass
class SimulationResult:
    config: SimulationConfig
    params: SimulationParameters
    paths: PathCollection
    averages: pd.DataFrame

    def summary(self) -> Dict[str, Any]:
        terminal = self.paths.terminal()
        return {
            "name": self.config.name,
            "version": __version__,
            "scheme": self.config.scheme,
            "rng_mode": self.config.rng_mode.value,
            "seed": self.params.seed,
            "samples": self.params.samples,
            "n_steps": self.params.n_steps,
            "dt": self.params.dt,
            "T": self.params.T,
            "terminal_mean": {k: float(v) for k, v in terminal.mean().items()},
            "terminal_std": {
                k: float(v) for k, v in terminal.std(ddof=0).items()
            },
        }


# ======================================================================
# Main entrypoints
# ======================================================================


def run_config(
    cfg: SimulationConfig,
    save_dir: str | Path | None = None,
) -> SimulationResult:
    if save_dir is not None:
        cfg.save.directory = str(save_dir)

    params = cfg.to_parameters()

    LOGGER.info("Building simulator '%s' (scheme=%s)…", cfg.name, cfg.scheme)
    simulator = PathSimulator(
        params,
        cfg.scheme,
        rng_mode=cfg.rng_mode,
        chunk_size=cfg.chunk_size,
    )

    LOGGER.info("Running simulation…")
    paths = simulator.run()

    result = SimulationResult(
        config=cfg,
        params=params,
        paths=paths,
        averages=paths.averages(dt=params.dt),
    )

    if cfg.save.directory:
        _persist_results(cfg, result)

    return result


def run_from_config(
    path: str | Path,
    save_dir: str | Path | None = None,
) -> SimulationResult:
    LOGGER.info("Loading config: %s", path)
    cfg = load_config(path)
    return run_config(cfg, save_dir=save_dir)


# ======================================================================
# Save outputs
# ======================================================================


def _matrix_frame(matrix: np.ndarray, dt: float) -> pd.DataFrame:
    df = pd.DataFrame(
        matrix,
        index=pd.Index(np.arange(matrix.shape[0]) * dt, name="t"),
        columns=[f"sample_{s}" for s in range(matrix.shape[1])],
    )
    return df


def _persist_results(cfg: SimulationConfig, result: SimulationResult) -> None:
    out_dir = Path(cfg.save.directory)
    out_dir.mkdir(parents=True, exist_ok=True)

    LOGGER.info("Saving results to: %s", out_dir)

    dt = result.params.dt
    if cfg.save.save_paths:
        _matrix_frame(result.paths.stock, dt).to_csv(out_dir / "stock.csv")
        _matrix_frame(result.paths.vol, dt).to_csv(out_dir / "vol.csv")
        _matrix_frame(result.paths.xi, dt).to_csv(out_dir / "xi.csv")

    if cfg.save.save_averages:
        result.averages.to_csv(out_dir / "averages.csv")

    with open(out_dir / "summary.json", "w") as f:
        json.dump(result.summary(), f, indent=2)
