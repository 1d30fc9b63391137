from snfkpi.core.types import DenominatorType, SettingType, Unit
from snfkpi.kpi.registry import (
    KPI_REGISTRY,
    MVP_KPI_IDS,
    CompositeKPI,
    MarginKPI,
    RatioKPI,
    get_kpi,
    get_kpi_glossary,
    get_kpis_for_setting,
    get_mvp_kpis,
    is_higher_better,
)


def test_registry_keys_match_ids():
    for kpi_id, kpi in KPI_REGISTRY.items():
        assert kpi.kpi_id == kpi_id


def test_every_kpi_is_a_known_kind():
    kinds = {kpi.kind for kpi in KPI_REGISTRY.values()}
    assert kinds == {"RatioKPI", "MarginKPI", "CompositeKPI"}


def test_bespoke_formulas_are_labelled_none():
    for kpi in KPI_REGISTRY.values():
        if isinstance(kpi, MarginKPI):
            assert kpi.denominator_type is DenominatorType.NONE
            assert kpi.unit is Unit.PERCENTAGE

    assert get_kpi("snf_contract_labor_pct_nursing").denominator_type is DenominatorType.NONE


def test_kinds_of_known_kpis():
    assert isinstance(get_kpi("snf_total_revenue_ppd"), RatioKPI)
    assert isinstance(get_kpi("snf_operating_margin_pct"), MarginKPI)
    assert isinstance(get_kpi("snf_contract_labor_pct_nursing"), CompositeKPI)
    assert get_kpi("not_a_kpi") is None


def test_percentages_scale_by_100():
    assert get_kpi("snf_skilled_mix_pct").scale == 100.0
    assert get_kpi("snf_total_revenue_ppd").scale == 1.0


def test_settings_partition():
    snf = {k.kpi_id for k in get_kpis_for_setting(SettingType.SNF)}
    alf = {k.kpi_id for k in get_kpis_for_setting("ALF")}

    assert "snf_total_revenue_ppd" in snf
    assert "sl_occupancy_pct" in alf
    assert not snf & alf
    assert alf == {k.kpi_id for k in get_kpis_for_setting(SettingType.SENIOR_LIVING)}


def test_mvp_kpis():
    assert [k.kpi_id for k in get_mvp_kpis()] == list(MVP_KPI_IDS)
    assert len(MVP_KPI_IDS) == 7


def test_cost_kpis_are_lower_is_better():
    for kpi_id in ("snf_total_cost_ppd", "snf_nursing_cost_ppd", "snf_contract_labor_pct_nursing"):
        assert is_higher_better(kpi_id) is False

    assert is_higher_better("snf_total_revenue_ppd") is True
    assert is_higher_better("unknown") is True


def test_glossary_covers_registry():
    glossary = get_kpi_glossary()

    assert len(glossary) == len(KPI_REGISTRY)
    entry = next(g for g in glossary if g["abbreviation"] == "snf_medicare_a_revenue_psd")
    assert entry["payer_scope"] == "MEDICARE_A"
    assert "Formula:" in entry["definition"]
