from .loaders import (
    load_census_facts_csv,
    load_facilities_csv,
    load_finance_facts_csv,
    load_occupancy_facts_csv,
)
from .store import KPIStore

__all__ = [
    "KPIStore",
    "load_census_facts_csv",
    "load_facilities_csv",
    "load_finance_facts_csv",
    "load_occupancy_facts_csv",
]
