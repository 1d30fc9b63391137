import pytest

from snfkpi.core.types import (
    CensusFact,
    Facility,
    FinanceFact,
    OccupancyFact,
    PayerCategory,
    SettingType,
)
from snfkpi.database.store import KPIStore

FACILITY = "101"
PERIOD = "2024-11"


def census(payer, days, facility_id=FACILITY, period_id=PERIOD, is_vent=False):
    return CensusFact(
        facility_id=facility_id,
        period_id=period_id,
        payer_category=PayerCategory(payer),
        days=days,
        is_skilled=payer in ("MEDICARE_A", "MEDICARE_ADVANTAGE", "COMMERCIAL", "VA", "ISNP"),
        is_vent=is_vent,
        source_file="test.xlsx",
    )


def finance(category, subcategory, amount, payer=None, department=None,
            facility_id=FACILITY, period_id=PERIOD):
    return FinanceFact(
        facility_id=facility_id,
        period_id=period_id,
        account_category=category,
        account_subcategory=subcategory,
        amount=amount,
        department=department,
        payer_category=PayerCategory(payer) if payer else None,
        source_file="test.xlsx",
    )


def snf_census(facility_id=FACILITY, period_id=PERIOD, scale=1.0):
    return [
        census("MEDICARE_A", 100 * scale, facility_id, period_id),
        census("MEDICARE_ADVANTAGE", 50 * scale, facility_id, period_id),
        census("VA", 25 * scale, facility_id, period_id),
        census("MEDICAID", 200 * scale, facility_id, period_id),
        census("PRIVATE_PAY", 125 * scale, facility_id, period_id),
    ]


def snf_finance(facility_id=FACILITY, period_id=PERIOD, scale=1.0):
    rows = [
        ("Revenue", "Total", 500000, None, None),
        ("Revenue", "Total Skilled", 350000, None, None),
        ("Revenue", "Skilled", 200000, "MEDICARE_A", None),
        ("Revenue", "Skilled", 100000, "MEDICARE_ADVANTAGE", None),
        ("Revenue", "Non-Skilled", 120000, "MEDICAID", None),
        ("Expense", "Total Operating", 400000, None, None),
        ("Expense", "Total Nursing", 150000, None, "711"),
        ("Expense", "Nursing Contract Labor", 30000, None, "711"),
        ("Expense", "Total Therapy", 50000, None, "683"),
        ("Expense", "Total Ancillary", 40000, None, "700"),
        ("Expense", "Total Dietary", 60000, None, "831"),
    ]
    return [
        finance(cat, sub, amount * scale, payer, dept, facility_id, period_id)
        for cat, sub, amount, payer, dept in rows
    ]


@pytest.fixture
def census_facts():
    return snf_census()


@pytest.fixture
def finance_facts():
    return snf_finance()


@pytest.fixture
def occupancy_fact():
    return OccupancyFact(
        facility_id="201",
        period_id=PERIOD,
        operational_beds=100,
        licensed_beds=110,
        total_patient_days=2700,
        total_unit_days=2685,
        second_occupant_days=15,
        operational_occupancy=None,
    )


@pytest.fixture
def facilities():
    return [
        Facility("101", "Alder Creek", "ID", SettingType.SNF, region="West"),
        Facility("102", "Birch Grove", "ID", SettingType.SNF, region="West"),
        Facility("103", "Cedar Point", "WA", SettingType.SNF, region="West"),
        Facility("104", "Dogwood Manor", "OR", SettingType.SNF, region=None),
    ]


@pytest.fixture
def store(tmp_path):
    return KPIStore(tmp_path / "kpi.db")


@pytest.fixture
def populated_store(store, facilities):
    """Four SNFs, one period, with cost scaled per facility."""
    store.upsert_facilities(facilities)
    for i, facility in enumerate(facilities):
        scale = 1.0 + 0.1 * i
        store.add_census_facts(snf_census(facility.facility_id))
        store.add_finance_facts(snf_finance(facility.facility_id, scale=scale))
    return store


@pytest.fixture
def make_census():
    return census


@pytest.fixture
def make_finance():
    return finance


@pytest.fixture
def make_snf_facts():
    """(finance_facts, census_facts) for one facility/period."""
    def _make(facility_id=FACILITY, period_id=PERIOD, scale=1.0):
        return (
            snf_finance(facility_id, period_id, scale),
            snf_census(facility_id, period_id),
        )
    return _make
