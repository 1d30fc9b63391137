"""
snfkpi CLI

    python -m snfkpi.cli import finance facts.csv
    python -m snfkpi.cli compute --period 2024-11
    python -m snfkpi.cli rank 101 snf_total_cost_ppd --period 2024-11
    python -m snfkpi.cli export -o exports
"""

import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from snfkpi.__version__ import __version__
from snfkpi.automation.batch_runner import rank_facility, run_compute
from snfkpi.config.loader import load_config
from snfkpi.core.periods import InvalidPeriodError, parse_period_id
from snfkpi.database import loaders
from snfkpi.database.store import KPIStore
from snfkpi.output.bundle import bundle_from_store, write_bundle_to_file, write_combined_kpi_table

logger = logging.getLogger(__name__)

IMPORT_KINDS = ("facilities", "finance", "census", "occupancy")


# -------------------------------------------------
# COMMANDS
# -------------------------------------------------
def cmd_import(store: KPIStore, config: Dict[str, Any], args) -> int:
    aliases = config["engine"].payer_aliases
    added = []

    if args.clear:
        store.clear_facts(args.kind)
        logger.info("Cleared existing %s data", args.kind)

    if args.kind == "facilities":
        count = store.upsert_facilities(loaders.load_facilities_csv(args.csv))
    elif args.kind == "finance":
        facts = loaders.load_finance_facts_csv(args.csv, aliases)
        added = store.ensure_facilities(f.facility_id for f in facts)
        count = store.add_finance_facts(facts)
    elif args.kind == "census":
        facts = loaders.load_census_facts_csv(args.csv, aliases)
        added = store.ensure_facilities(f.facility_id for f in facts)
        count = store.add_census_facts(facts)
    else:
        facts = loaders.load_occupancy_facts_csv(args.csv)
        added = store.ensure_facilities(f.facility_id for f in facts)
        count = store.upsert_occupancy_facts(facts)

    for fid in added:
        print(f"  Adding missing facility: {fid}")

    print(f"\n✅ Imported {count} {args.kind} records")
    return 0


def cmd_compute(store: KPIStore, config: Dict[str, Any], args) -> int:
    summary = run_compute(store, config, facility_id=args.facility, period_id=args.period)

    print(f"\n✅ Computed {summary.kpi_results} KPI values "
          f"for {summary.facility_periods} facility-periods")
    print(f"Anomalies: {summary.anomalies}")
    print(f"Benchmarks: {summary.benchmarks}")

    if summary.failures:
        print(f"Failed: {', '.join(summary.failures)}")
        return 1
    return 0


def cmd_rank(store: KPIStore, config: Dict[str, Any], args) -> int:
    ranking = rank_facility(store, args.facility_id, args.period, args.kpi_id)
    print(json.dumps(ranking, indent=2))
    return 0


def cmd_export(store: KPIStore, config: Dict[str, Any], args) -> int:
    output_dir = args.output or config.get("output_dir", "exports")

    periods = sorted({r.period_id for r in store.get_kpi_results(period_id=args.period)})
    if not periods:
        print('No KPI results found. Run "compute" first.', file=sys.stderr)
        return 1
    # most recent period unless one is requested
    period_id = args.period or periods[-1]

    facilities = store.get_facilities()
    if args.facility:
        facilities = [f for f in facilities if f.facility_id == args.facility]

    bundles = []
    for facility in facilities:
        bundle = bundle_from_store(store, facility, period_id)
        if bundle is None:
            continue
        path = write_bundle_to_file(bundle, output_dir)
        bundles.append(bundle)
        print(f"  {facility.facility_id}/{period_id}: {path}")

    if bundles:
        paths = write_combined_kpi_table(bundles, output_dir)
        print(f"\nCombined KPI table: {paths['json']}")

    print(f"\n✅ Exported {len(bundles)} bundles")
    return 0


def cmd_status(store: KPIStore, config: Dict[str, Any], args) -> int:
    print(f"Database: {store.db_path}")
    for table, count in store.stats().items():
        print(f"  {table}: {count}")

    last = store.last_compute_run()
    if last:
        print(f"Last compute: {last['timestamp']} ({last['status']})")
    return 0


COMMANDS = {
    "import": cmd_import,
    "compute": cmd_compute,
    "rank": cmd_rank,
    "export": cmd_export,
    "status": cmd_status,
}


# -------------------------------------------------
# CLI ENTRY
# -------------------------------------------------
def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="snfkpi",
        description=f"SNF & Senior Living KPI engine v{__version__}",
    )
    parser.add_argument("--config", required=False, help="Path to config YAML")
    parser.add_argument("--db", required=False, help="SQLite database path (overrides config)")
    parser.add_argument("--version", action="store_true")
    parser.add_argument("-v", "--verbose", action="store_true")

    sub = parser.add_subparsers(dest="command")

    p_import = sub.add_parser("import", help="Import a canonical fact CSV")
    p_import.add_argument("kind", choices=IMPORT_KINDS)
    p_import.add_argument("csv", help="Path to CSV file")
    p_import.add_argument("--clear", action="store_true", help="Clear existing data of this kind first")

    p_compute = sub.add_parser("compute", help="Compute KPIs and benchmarks")
    p_compute.add_argument("--facility", help="Compute for one facility only")
    p_compute.add_argument("--period", help="Compute for one period (YYYY-MM)")

    p_rank = sub.add_parser("rank", help="Percentile rank of a facility KPI")
    p_rank.add_argument("facility_id")
    p_rank.add_argument("kpi_id")
    p_rank.add_argument("--period", required=True, help="Period (YYYY-MM)")

    p_export = sub.add_parser("export", help="Write facility-month JSON bundles")
    p_export.add_argument("-o", "--output", help="Output directory")
    p_export.add_argument("--facility", help="Export one facility only")
    p_export.add_argument("--period", help="Export one period (default: most recent)")

    sub.add_parser("status", help="Show database statistics")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    # ---- VERSION ----
    if args.version:
        print(f"snfkpi v{__version__}")
        return 0

    # ---- LOGGING ----
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )

    if not args.command:
        parser.error("a command is required")

    period = getattr(args, "period", None)
    if period:
        try:
            args.period = parse_period_id(period).period_id
        except InvalidPeriodError as e:
            parser.error(str(e))

    config = load_config(args.config)
    store = KPIStore(args.db or config["database"]["path"])

    try:
        return COMMANDS[args.command](store, config, args)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
