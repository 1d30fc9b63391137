import json
import subprocess
import sys


def run_cli(args):
    return subprocess.run(
        [sys.executable, "-m", "snfkpi.cli"] + args,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
    )


def test_cli_help():
    result = run_cli(["--help"])
    assert result.returncode == 0


def test_cli_version():
    result = run_cli(["--version"])
    assert result.returncode == 0
    assert "snfkpi v" in result.stdout


def test_cli_requires_command():
    result = run_cli([])
    assert result.returncode == 2


def test_cli_rejects_bad_period(tmp_path):
    result = run_cli(["--db", str(tmp_path / "kpi.db"), "compute", "--period", "2024-13"])
    assert result.returncode == 2


def test_cli_status_on_empty_db(tmp_path):
    result = run_cli(["--db", str(tmp_path / "kpi.db"), "status"])
    assert result.returncode == 0
    assert "kpi_results: 0" in result.stdout


def test_cli_missing_csv(tmp_path):
    result = run_cli(["--db", str(tmp_path / "kpi.db"), "import", "finance", str(tmp_path / "none.csv")])
    assert result.returncode == 2
    assert "Error" in result.stderr


def test_cli_import_compute_rank_export(tmp_path):
    db = str(tmp_path / "kpi.db")
    out = tmp_path / "exports"

    facilities = tmp_path / "facilities.csv"
    facilities.write_text(
        "facility_id,name,state,region\n"
        "101,Alder Creek,ID,West\n"
        "102,Birch Grove,ID,West\n",
        encoding="utf-8",
    )
    census = tmp_path / "census.csv"
    census.write_text(
        "facility_id,period_id,payer_category,days\n"
        "101,2024-11,Medicare A,100\n"
        "101,2024-11,Medicaid,400\n"
        "102,2024-11,Medicare A,150\n"
        "102,2024-11,Medicaid,350\n",
        encoding="utf-8",
    )
    finance = tmp_path / "finance.csv"
    finance.write_text(
        "facility_id,period_id,account_category,account_subcategory,amount\n"
        "101,2024-11,Revenue,Total,500000\n"
        "101,2024-11,Expense,Total Operating,400000\n"
        "102,2024-11,Revenue,Total,550000\n"
        "102,2024-11,Expense,Total Operating,450000\n",
        encoding="utf-8",
    )

    for kind, path in [("facilities", facilities), ("census", census), ("finance", finance)]:
        result = run_cli(["--db", db, "import", kind, str(path)])
        assert result.returncode == 0, result.stderr

    result = run_cli(["--db", db, "compute"])
    assert result.returncode == 0, result.stderr

    result = run_cli(["--db", db, "rank", "101", "snf_total_cost_ppd", "--period", "2024-11"])
    assert result.returncode == 0, result.stderr
    ranking = json.loads(result.stdout)
    assert ranking["value"] == 800.0
    assert "state_ID" in ranking["cohorts"]

    result = run_cli(["--db", db, "export", "-o", str(out)])
    assert result.returncode == 0, result.stderr
    assert (out / "101" / "2024_11" / "bundle.json").exists()
    assert (out / "kpis_all.csv").exists()
