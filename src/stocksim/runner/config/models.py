from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from stocksim.sde.schemas import RngMode, SimulationParameters


# ============================================================
# Model parameters
# ============================================================


class ModelSettings(BaseModel):
    """
    Initial conditions and coefficients of the stock / volatility / xi system.
    """

    model_config = ConfigDict(extra="forbid")

    s0: float = Field(..., description="Initial stock price.")
    sigma0: float = Field(..., description="Initial volatility.")
    xi0: float = Field(..., description="Initial value of xi.")
    mu: float = Field(default=0.0, description="Stock drift.")
    p: float = Field(default=0.0, description="Volatility-of-volatility coefficient.")
    alpha: float = Field(default=1.0, description="Mean-reversion time constant of xi.")


# ============================================================
# Time grid
# ============================================================


class GridSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    dt: float = Field(..., gt=0.0)
    T: float = Field(..., gt=0.0)
    samples: int = Field(default=1, ge=1)


# ============================================================
# Save Settings
# ============================================================


class SaveSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    directory: Optional[str] = None
    save_paths: bool = True
    save_averages: bool = True


# ============================================================
# Top-level SimulationConfig
# ============================================================


class SimulationConfig(BaseModel):
    """
    Configuration of one simulation run.

    Types are checked here; numeric ranges (alpha > 0, dt > 0, ...) are
    checked by SimulationParameters.validate() when the run starts.
    """

    model_config = ConfigDict(extra="forbid")

    name: str = "default_run"
    seed: int = 0
    scheme: str = "euler"
    rng_mode: RngMode = RngMode.SEQUENTIAL
    chunk_size: Optional[int] = None

    model: ModelSettings
    grid: GridSettings
    save: SaveSettings = Field(default_factory=SaveSettings)

    def to_parameters(self) -> SimulationParameters:
        return SimulationParameters(
            dt=self.grid.dt,
            sigma0=self.model.sigma0,
            s0=self.model.s0,
            xi0=self.model.xi0,
            mu=self.model.mu,
            p=self.model.p,
            alpha=self.model.alpha,
            T=self.grid.T,
            samples=self.grid.samples,
            seed=self.seed,
        )
