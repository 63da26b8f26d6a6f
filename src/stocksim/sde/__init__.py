from stocksim.sde.errors import InvalidParameter, StocksimError, UnsupportedScheme
from stocksim.sde.paths import PathCollection
from stocksim.sde.schemas import RngMode, Scheme, SimulationParameters
from stocksim.sde.simulator import PathSimulator, simulate_paths

__all__ = [
    "InvalidParameter",
    "PathCollection",
    "PathSimulator",
    "RngMode",
    "Scheme",
    "SimulationParameters",
    "StocksimError",
    "UnsupportedScheme",
    "simulate_paths",
]
