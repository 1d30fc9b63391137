import pytest

from snfkpi.config.engine_config import EngineConfig
from snfkpi.config.loader import load_config


def test_defaults_without_file():
    config = load_config(None)

    assert config["database"]["path"] == "data/snf_financials.db"
    assert config["output_dir"] == "exports"
    assert isinstance(config["engine"], EngineConfig)
    assert config["engine"].benchmarks.min_cohort_size == 2
    assert config["engine"].calculation.blended_hourly_rate == 35.0


def test_user_values_merge_over_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "calculation:\n"
        "  blended_hourly_rate: 40\n"
        "benchmarks:\n"
        "  min_cohort_size: 5\n"
        "payer_aliases:\n"
        "  Workers Comp: COMMERCIAL\n"
        "output_dir: out\n",
        encoding="utf-8",
    )

    config = load_config(str(path))
    engine = config["engine"]

    assert engine.calculation.blended_hourly_rate == 40.0
    assert engine.calculation.nursing_wage_share == 0.70
    assert engine.benchmarks.min_cohort_size == 5
    assert engine.payer_aliases == {"Workers Comp": "COMMERCIAL"}
    assert config["output_dir"] == "out"
    assert config["database"]["path"] == "data/snf_financials.db"


def test_empty_file_gives_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")

    assert load_config(str(path))["output_dir"] == "exports"


def test_missing_file():
    with pytest.raises(FileNotFoundError):
        load_config("does/not/exist.yaml")


def test_non_mapping_yaml(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")

    with pytest.raises(ValueError):
        load_config(str(path))


def test_defaults_are_not_mutated(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("database:\n  path: custom.db\n", encoding="utf-8")

    assert load_config(str(path))["database"]["path"] == "custom.db"
    assert load_config(None)["database"]["path"] == "data/snf_financials.db"


@pytest.mark.parametrize("size", [0, 1])
def test_min_cohort_size_has_a_floor(tmp_path, size):
    path = tmp_path / "config.yaml"
    path.write_text(f"benchmarks:\n  min_cohort_size: {size}\n", encoding="utf-8")

    assert load_config(str(path))["engine"].benchmarks.min_cohort_size == 2
