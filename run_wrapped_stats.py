import argparse
import logging
import sys
import time
from pathlib import Path

from components.config.wrapped_config import WrappedConfig
from components.ingestion import IngestionError, load_trip_exports
from components.pricing.classifier import TypeFilter
from components.stats import (
    aggregate_stats, build_trip_table, date_bounds, export_trip_table, select_trips,
    write_snapshot_json,
)

logger = logging.getLogger(__name__)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Build ride statistics from bike-share trip exports")
    parser.add_argument("exports", nargs="+", help="Export files (.csv, .txt, .tsv, .xlsx, .xls)")
    parser.add_argument("--config", default=None, help="JSON configuration file")
    parser.add_argument("--start", default=None, help="First day (YYYY-MM-DD), defaults to the first trip")
    parser.add_argument("--end", default=None, help="Last day (YYYY-MM-DD), defaults to the last trip")
    parser.add_argument("--year", type=int, default=None, help="Restrict the range to one calendar year")
    parser.add_argument("--tariff", default=None, help="Tariff id, defaults to the configured default")
    parser.add_argument("--type", dest="type_filter", default=TypeFilter.ALL.value,
                        choices=[f.value for f in TypeFilter], help="Bike type filter")
    parser.add_argument("--output", default="wrapped_output/snapshot.json", help="Snapshot JSON path")
    parser.add_argument("--trips-table", default=None, help="Optional priced trip table (.csv or .xlsx)")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv=None) -> int:
    args = build_arg_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    config = WrappedConfig(args.config)
    start = time.time()

    try:
        result = load_trip_exports([Path(p) for p in args.exports], config.parser_settings())
    except (IngestionError, FileNotFoundError, ValueError) as e:
        logger.error(f"Could not load exports: {e}")
        return 1
    load_time = time.time()
    logger.info(
        f"Loaded {len(result.trips):,} trips ({result.duplicates_removed:,} duplicates removed) "
        f"in {load_time - start:.2f}s"
    )

    bounds = date_bounds(result.trips)
    range_start = args.start or bounds.start
    range_end = args.end or bounds.end
    if args.year is not None:
        range_start = f"{args.year}-01-01"
        range_end = f"{args.year}-12-31"

    try:
        tariff = config.get_tariff(args.tariff)
    except KeyError as e:
        logger.error(str(e))
        return 1

    fleet = config.reference_fleet()
    type_filter = TypeFilter(args.type_filter)
    snapshot = aggregate_stats(
        result.trips, range_start, range_end, tariff,
        type_filter=type_filter,
        fleet=fleet,
        params=config.stats_parameters(),
    )
    stats_time = time.time()
    logger.info(f"Statistics computed in {stats_time - load_time:.2f}s")

    output_files = {"snapshot": write_snapshot_json(snapshot, args.output)}
    if args.trips_table:
        selected = select_trips(result.trips, range_start, range_end, type_filter, fleet)
        rows = build_trip_table(selected, tariff, fleet)
        output_files["trips_table"] = export_trip_table(rows, args.trips_table)

    print(f"[INFO] {snapshot.total_trips:,} trips, {snapshot.unique_bikes:,} bikes, "
          f"{snapshot.total_minutes:,} minutes, {snapshot.total_cost:.2f} EUR under '{tariff.name}'")
    print("[INFO] Output files:")
    for key, path_str in output_files.items():
        print(f"  - {key}: {path_str}")
    print(f"[INFO] Total elapsed time: {time.time() - start:.2f}s")
    return 0


if __name__ == "__main__":
    sys.exit(main())
