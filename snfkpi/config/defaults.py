DEFAULT_CONFIG = {
    # -----------------------------
    # STORAGE
    # -----------------------------
    "database": {
        "path": "data/snf_financials.db",
    },

    # -----------------------------
    # KPI CALCULATION
    # -----------------------------
    "calculation": {
        "default_days_in_month": 30,
        # nursing hours estimate (used only without a paid-hours line)
        "nursing_wage_share": 0.70,
        "blended_hourly_rate": 35.0,
    },

    # -----------------------------
    # BENCHMARKS
    # -----------------------------
    "benchmarks": {
        "min_cohort_size": 2,       # below this a cohort would expose one facility
        "cohorts": ["state", "region", "setting"],
    },

    # -----------------------------
    # PAYER LABELS (OPTIONAL)
    # -----------------------------
    # raw label -> PayerCategory, on top of the built-in aliases
    "payer_aliases": {},

    # -----------------------------
    # OUTPUT CONTROL
    # -----------------------------
    "output_dir": "exports",

    # -----------------------------
    # METADATA (OPTIONAL)
    # -----------------------------
    "metadata": {
        "engine": "snfkpi",
    },
}
