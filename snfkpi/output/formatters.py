from typing import Optional

from snfkpi.core.types import Unit

MISSING = "-"


def fmt_currency(value: Optional[float], compact: bool = False) -> str:
    """
    Canonical currency formatter for KPI displays.

    PPD/PSD values keep cents; compact=True abbreviates statement-sized
    amounts ($1.25M, $350.0K).
    """
    if value is None:
        return MISSING

    value = float(value)

    if compact:
        if abs(value) >= 1_000_000:
            return f"${value/1_000_000:.2f}M"
        if abs(value) >= 1_000:
            return f"${value/1_000:.1f}K"
        return f"${value:,.0f}"

    if value < 0:
        return f"-${abs(value):,.2f}"
    return f"${value:,.2f}"


def fmt_percent(value: Optional[float], decimals: int = 1) -> str:
    # KPI percentages are stored on the 0-100 scale
    if value is None:
        return MISSING
    return f"{float(value):.{decimals}f}%"


def fmt_hours(value: Optional[float], decimals: int = 2) -> str:
    if value is None:
        return MISSING
    return f"{float(value):.{decimals}f} hrs"


def fmt_number(value: Optional[float], decimals: int = 1) -> str:
    if value is None:
        return MISSING
    return f"{float(value):,.{decimals}f}"


def format_kpi_value(value: Optional[float], unit) -> str:
    unit = Unit(unit)
    if unit is Unit.CURRENCY:
        return fmt_currency(value)
    if unit is Unit.PERCENTAGE:
        return fmt_percent(value)
    if unit is Unit.HOURS:
        return fmt_hours(value)
    return fmt_number(value)
