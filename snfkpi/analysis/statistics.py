"""
Descriptive statistics over KPI histories.

Correlation, OLS slope, trend classification and trailing-twelve-month
summaries. Everything here is descriptive only: no significance testing
and no forecasting.
"""

import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from snfkpi.core.types import KPIResult, _Record

STRONG, MODERATE, WEAK, NONE = "strong", "moderate", "weak", "none"
DIRECTION_DEAD_ZONE = 0.1
STABLE_SLOPE_SHARE = 0.02
YOY_WINDOW = 12


@dataclass(frozen=True)
class CorrelationResult(_Record):
    r: float
    strength: str
    direction: str
    data_points: int


@dataclass(frozen=True)
class TrendResult(_Record):
    direction: str          # improving | declining | stable
    change_percent: float
    slope: float
    volatility: float


@dataclass(frozen=True)
class HighLowPoint(_Record):
    value: float
    period_id: str
    index: int


@dataclass(frozen=True)
class TrailingStats(_Record):
    current: float
    average: float
    min: HighLowPoint
    max: HighLowPoint
    std_dev: float
    trend: TrendResult
    mom_change: Optional[float]
    yoy_change: Optional[float]


# -------------------------------------------------
# CORRELATION
# -------------------------------------------------
def classify_correlation_strength(r: float) -> str:
    abs_r = abs(r)
    if abs_r >= 0.7:
        return STRONG
    if abs_r >= 0.4:
        return MODERATE
    if abs_r >= 0.2:
        return WEAK
    return NONE


def pearson_correlation(x_values: Sequence[float], y_values: Sequence[float]) -> CorrelationResult:
    """
    Pearson r between two equally long series.

    Fewer than 3 pairs or mismatched lengths give a neutral result with
    zero data points; a flat series gives a neutral result that still
    reports how many pairs were seen.
    """
    if len(x_values) != len(y_values) or len(x_values) < 3:
        return CorrelationResult(0.0, NONE, NONE, 0)

    x = np.asarray(x_values, dtype=float)
    y = np.asarray(y_values, dtype=float)
    n = int(x.size)

    dx = x - x.mean()
    dy = y - y.mean()
    denominator = math.sqrt(float((dx * dx).sum()) * float((dy * dy).sum()))
    if denominator == 0:
        return CorrelationResult(0.0, NONE, NONE, n)

    r = float((dx * dy).sum()) / denominator

    if r > DIRECTION_DEAD_ZONE:
        direction = "positive"
    elif r < -DIRECTION_DEAD_ZONE:
        direction = "negative"
    else:
        direction = NONE

    return CorrelationResult(
        r=round(r, 3),
        strength=classify_correlation_strength(r),
        direction=direction,
        data_points=n,
    )


# -------------------------------------------------
# DISPERSION & SLOPE
# -------------------------------------------------
def standard_deviation(values: Sequence[float]) -> float:
    """Population standard deviation; 0 for fewer than two values."""
    if len(values) < 2:
        return 0.0
    return float(np.std(np.asarray(values, dtype=float), ddof=0))


def linear_slope(values: Sequence[float]) -> float:
    """OLS slope of the values against their index position."""
    n = len(values)
    if n < 2:
        return 0.0

    x = np.arange(n, dtype=float)
    y = np.asarray(values, dtype=float)
    dx = x - x.mean()
    denominator = float((dx * dx).sum())
    if denominator == 0:
        return 0.0
    return float((dx * (y - y.mean())).sum()) / denominator


# -------------------------------------------------
# TREND
# -------------------------------------------------
def detect_trend(values: Sequence[float], higher_is_better: bool = True) -> TrendResult:
    if len(values) < 2:
        return TrendResult("stable", 0.0, 0.0, 0.0)

    slope = linear_slope(values)
    mean = float(np.mean(values))
    volatility = standard_deviation(values) / abs(mean) * 100 if mean != 0 else 0.0

    first, last = float(values[0]), float(values[-1])
    change = (last - first) / abs(first) * 100 if first != 0 else 0.0

    if abs(slope) < abs(mean) * STABLE_SLOPE_SHARE:
        direction = "stable"
    elif (slope > 0) == higher_is_better:
        direction = "improving"
    else:
        direction = "declining"

    return TrendResult(
        direction=direction,
        change_percent=round(change, 1),
        slope=round(slope, 3),
        volatility=round(volatility, 1),
    )


def trailing_stats(
    history: Iterable[Tuple[str, float]],
    higher_is_better: bool = True,
) -> Optional[TrailingStats]:
    """
    Trailing-window summary of an ordered (period_id, value) history,
    oldest first. Typically fed the last twelve months.
    """
    points = [(p, float(v)) for p, v in history]
    if not points:
        return None

    values = [v for _, v in points]
    min_idx = int(np.argmin(values))
    max_idx = int(np.argmax(values))

    mom = values[-1] - values[-2] if len(values) >= 2 else None
    yoy = values[-1] - values[-YOY_WINDOW] if len(values) >= YOY_WINDOW else None

    return TrailingStats(
        current=values[-1],
        average=float(np.mean(values)),
        min=HighLowPoint(values[min_idx], points[min_idx][0], min_idx),
        max=HighLowPoint(values[max_idx], points[max_idx][0], max_idx),
        std_dev=standard_deviation(values),
        trend=detect_trend(values, higher_is_better),
        mom_change=mom,
        yoy_change=yoy,
    )


# -------------------------------------------------
# SERIES HELPERS
# -------------------------------------------------
def kpi_history(results: Iterable[KPIResult], kpi_id: str) -> List[Tuple[str, float]]:
    """Non-null values of one KPI ordered by period."""
    rows = {
        r.period_id: r.value
        for r in results
        if r.kpi_id == kpi_id and r.value is not None and math.isfinite(r.value)
    }
    return sorted(rows.items())


def align_kpi_series(
    results: Iterable[KPIResult],
    x_kpi: str,
    y_kpi: str,
) -> Dict[str, List]:
    """
    Pair two KPI histories on the periods where both have a value.

    Returns {"period_ids": [...], "x": [...], "y": [...]} ready for
    pearson_correlation.
    """
    results = list(results)
    x = pd.Series(dict(kpi_history(results, x_kpi)), dtype=float)
    y = pd.Series(dict(kpi_history(results, y_kpi)), dtype=float)

    paired = pd.concat({"x": x, "y": y}, axis=1).dropna().sort_index()
    return {
        "period_ids": [str(p) for p in paired.index],
        "x": paired["x"].tolist(),
        "y": paired["y"].tolist(),
    }
