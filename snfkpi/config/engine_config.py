from dataclasses import dataclass, field
from typing import Any, Dict, List


# -------------------------------------------------
# KPI CALCULATION CONFIG
# -------------------------------------------------
@dataclass(frozen=True)
class CalculationConfig:
    """
    Knobs for the KPI calculator.

    nursing_wage_share / blended_hourly_rate only matter when nursing
    hours have to be estimated from nursing expenses.
    """
    default_days_in_month: int = 30
    nursing_wage_share: float = 0.70
    blended_hourly_rate: float = 35.0


# -------------------------------------------------
# BENCHMARK CONFIG
# -------------------------------------------------
# Floor for non-"all" cohorts: a single contributor is never published.
MIN_COHORT_SIZE = 2


@dataclass(frozen=True)
class BenchmarkConfig:
    min_cohort_size: int = MIN_COHORT_SIZE
    cohorts: List[str] = field(
        default_factory=lambda: ["state", "region", "setting"]
    )


# -------------------------------------------------
# ENGINE CONFIG
# -------------------------------------------------
@dataclass(frozen=True)
class EngineConfig:
    calculation: CalculationConfig = field(default_factory=CalculationConfig)
    benchmarks: BenchmarkConfig = field(default_factory=BenchmarkConfig)
    payer_aliases: Dict[str, str] = field(default_factory=dict)


def load_engine_config(cfg: Dict[str, Any]) -> EngineConfig:
    calc = cfg.get("calculation") or {}
    bench = cfg.get("benchmarks") or {}

    return EngineConfig(
        calculation=CalculationConfig(
            default_days_in_month=int(calc.get("default_days_in_month", 30)),
            nursing_wage_share=float(calc.get("nursing_wage_share", 0.70)),
            blended_hourly_rate=float(calc.get("blended_hourly_rate", 35.0)),
        ),
        benchmarks=BenchmarkConfig(
            min_cohort_size=max(
                MIN_COHORT_SIZE, int(bench.get("min_cohort_size", MIN_COHORT_SIZE))
            ),
            cohorts=list(bench.get("cohorts", ["state", "region", "setting"])),
        ),
        payer_aliases=dict(cfg.get("payer_aliases") or {}),
    )
