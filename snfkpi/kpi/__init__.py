"""KPI registry and calculator."""

from .calculator import KPICalculation, calculate_all_kpis, calculate_kpi, calculate_mvp_kpis
from .registry import (
    KPI_REGISTRY,
    CompositeKPI,
    KPIDefinition,
    MarginKPI,
    RatioKPI,
    get_kpi,
    get_kpi_glossary,
    get_kpis_for_setting,
    get_mvp_kpis,
    is_higher_better,
)

__all__ = [
    "KPICalculation",
    "calculate_all_kpis",
    "calculate_kpi",
    "calculate_mvp_kpis",
    "KPI_REGISTRY",
    "CompositeKPI",
    "KPIDefinition",
    "MarginKPI",
    "RatioKPI",
    "get_kpi",
    "get_kpi_glossary",
    "get_kpis_for_setting",
    "get_mvp_kpis",
    "is_higher_better",
]
