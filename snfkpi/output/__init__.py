from .bundle import (
    bundle_from_store,
    generate_facility_month_bundle,
    write_bundle_to_file,
    write_combined_kpi_table,
)
from .formatters import fmt_currency, fmt_hours, fmt_percent, format_kpi_value

__all__ = [
    "bundle_from_store",
    "generate_facility_month_bundle",
    "write_bundle_to_file",
    "write_combined_kpi_table",
    "fmt_currency",
    "fmt_hours",
    "fmt_percent",
    "format_kpi_value",
]
