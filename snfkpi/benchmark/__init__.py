"""Cohort benchmarks and percentile scoring."""

from .engine import (
    calculate_benchmark_stats,
    generate_benchmarks,
    get_benchmarks_for_facility,
    get_percentile_rank,
    get_performance_label,
    score_against_benchmarks,
)

__all__ = [
    "calculate_benchmark_stats",
    "generate_benchmarks",
    "get_benchmarks_for_facility",
    "get_percentile_rank",
    "get_performance_label",
    "score_against_benchmarks",
]
