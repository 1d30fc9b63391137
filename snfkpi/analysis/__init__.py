from .statistics import (
    CorrelationResult,
    TrailingStats,
    TrendResult,
    align_kpi_series,
    classify_correlation_strength,
    detect_trend,
    kpi_history,
    linear_slope,
    pearson_correlation,
    standard_deviation,
    trailing_stats,
)

__all__ = [
    "CorrelationResult",
    "TrailingStats",
    "TrendResult",
    "align_kpi_series",
    "classify_correlation_strength",
    "detect_trend",
    "kpi_history",
    "linear_slope",
    "pearson_correlation",
    "standard_deviation",
    "trailing_stats",
]
