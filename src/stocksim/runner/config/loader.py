from __future__ import annotations

import json
from pathlib import Path

import yaml
from pydantic import ValidationError

from stocksim.runner.config.models import SimulationConfig


def load_config(path: str | Path) -> SimulationConfig:
    """
    Load a SimulationConfig from YAML or JSON.

    Automatically validates using Pydantic v2.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file does not exist: {path}")

    text = path.read_text()

    if path.suffix.lower() in {".yaml", ".yml"}:
        parse = yaml.safe_load
    elif path.suffix.lower() == ".json":
        parse = json.loads
    else:
        raise ValueError("Config path must be YAML or JSON.")

    try:
        raw = parse(text)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ValueError(f"Failed to parse config: {e}") from e

    try:
        return SimulationConfig.model_validate(raw)
    except ValidationError as e:
        raise ValueError(f"Invalid SimulationConfig: {e}") from e
