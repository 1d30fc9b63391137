"""
snfkpi v1.0

Fact-to-KPI normalization and benchmarking for skilled nursing and
senior living facilities.
"""

from .__version__ import __version__

# Keep package init lightweight: storage, automation and the CLI are
# imported explicitly by callers.

from .core.denominators import resolve_denominators
from .kpi.calculator import calculate_all_kpis, calculate_mvp_kpis
from .kpi.registry import KPI_REGISTRY, get_kpi
from .benchmark.engine import (
    calculate_benchmark_stats,
    generate_benchmarks,
    get_benchmarks_for_facility,
    get_percentile_rank,
    get_performance_label,
)

__all__ = [
    "__version__",
    "resolve_denominators",
    "calculate_all_kpis",
    "calculate_mvp_kpis",
    "KPI_REGISTRY",
    "get_kpi",
    "calculate_benchmark_stats",
    "generate_benchmarks",
    "get_benchmarks_for_facility",
    "get_percentile_rank",
    "get_performance_label",
]
