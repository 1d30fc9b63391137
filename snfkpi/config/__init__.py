from .loader import load_config
from .defaults import DEFAULT_CONFIG
from .engine_config import (
    BenchmarkConfig,
    CalculationConfig,
    EngineConfig,
    load_engine_config,
)

__all__ = [
    "load_config",
    "DEFAULT_CONFIG",
    "BenchmarkConfig",
    "CalculationConfig",
    "EngineConfig",
    "load_engine_config",
]
