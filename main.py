import argparse

from benchmarks import Benchmark
from config import (
    DATABASE_NAME,
    DEFAULT_CUSTOM_COUNT,
    DEFAULT_INSERT_COUNT,
    DEFAULT_RUN_COUNT,
    DEFAULT_TABLE_SIZE,
    PG_CONN,
    SessionConfig,
)
from errors import BenchmarkError, ConfigurationError, EngineUnavailable
from fragmentation import NullFragmentationReader, PgStatIndexReader
from key_generators import KEY_GENERATORS, uuid7_submillisecond
from postgres_engine import PostgresServer
from report import export_csv, visualize_results
from schema_profiles import PROFILES

EXIT_OK = 0
EXIT_ENGINE_UNAVAILABLE = 1
EXIT_CONFIGURATION_ERROR = 2
EXIT_STORAGE_FAILURE = 3
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Benchmark UUID primary key strategies on PostgreSQL"
    )
    parser.add_argument(
        "--insert-count",
        type=int,
        default=DEFAULT_INSERT_COUNT,
        help=f"Rows inserted per trial (default: {DEFAULT_INSERT_COUNT})",
    )
    parser.add_argument(
        "--run-count",
        type=int,
        default=DEFAULT_RUN_COUNT,
        help=f"Trials per key generator; results are medians (default: {DEFAULT_RUN_COUNT})",
    )
    parser.add_argument(
        "--table-size",
        choices=sorted(PROFILES),
        default=DEFAULT_TABLE_SIZE,
        type=str.lower,
        help="small/narrow: id + int column, big/wide: id + person columns (default: small)",
    )
    parser.add_argument(
        "--batch",
        action="store_true",
        help="Insert rows with multi-row statements instead of one statement per row",
    )
    parser.add_argument(
        "--variants",
        nargs="+",
        metavar="NAME",
        help=f"Key generators to compare (known: {', '.join(KEY_GENERATORS)})",
    )
    parser.add_argument("--seed", type=int, help="Seed for sampling and synthetic data")
    parser.add_argument(
        "--conn",
        default=PG_CONN,
        help="Server connection string (default: local benchmark_user)",
    )
    parser.add_argument(
        "--database",
        default=DATABASE_NAME,
        help=f"Ephemeral database created and dropped by the run (default: {DATABASE_NAME})",
    )
    parser.add_argument(
        "--no-fragmentation",
        action="store_true",
        help="Skip the pgstattuple fragmentation read (reported as 0)",
    )
    parser.add_argument("--csv", metavar="PATH", help="Write per-trial results as CSV")
    parser.add_argument("--chart", metavar="PATH", help="Save a PNG chart of the medians")
    parser.add_argument(
        "--custom",
        type=int,
        nargs="?",
        const=DEFAULT_CUSTOM_COUNT,
        metavar="N",
        help="Only print N sub-millisecond UUIDv7 values and exit",
    )
    return parser


def generate_custom_uuids(count: int):
    print("Generating UUIDv7 with sub millisecond precision")
    uuids = [uuid7_submillisecond() for _ in range(count)]
    for value in uuids:
        print(value)


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    if args.custom is not None:
        generate_custom_uuids(args.custom)
        return EXIT_OK

    try:
        config = SessionConfig.from_args(args)
    except ConfigurationError as e:
        print(f"✗ {e}")
        return EXIT_CONFIGURATION_ERROR

    print("Starting test with following params")
    print(f"Insert count : {config.insert_count:,}")
    print(f"Run count    : {config.run_count}")
    print(f"Table size   : {config.profile.name}")
    print(f"Batch        : {args.batch}")
    print(f"Variants     : {', '.join(name for name, _ in config.variants)}")
    print()

    reader = PgStatIndexReader() if config.measure_fragmentation else NullFragmentationReader()
    benchmark = Benchmark(
        PostgresServer(config.conn_string),
        database=config.database,
        fragmentation_reader=reader,
        seed=config.seed,
    )

    try:
        session = benchmark.launch(
            config.insert_count,
            config.run_count,
            config.profile,
            config.insert_strategy,
            config.variants,
        )
    except EngineUnavailable:
        return EXIT_ENGINE_UNAVAILABLE
    except BenchmarkError as e:
        print(f"\n✗ Benchmark failed with error: {e}")
        return EXIT_STORAGE_FAILURE
    except KeyboardInterrupt:
        print("\n\n⚠ Benchmark interrupted by user")
        return EXIT_INTERRUPTED

    if args.csv:
        export_csv(session, args.csv)
    if args.chart:
        visualize_results(session, args.chart)

    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
