import random
import time
from datetime import timedelta
from typing import List, Optional, Sequence, Tuple

from config import DATABASE_NAME, InsertStrategy, check_counts
from errors import BenchmarkError, EngineUnavailable
from fragmentation import FragmentationReader, PgStatIndexReader
from key_generators import KeyGenerator
from report import print_comparison, print_variant_report, write_test_intro
from schema_profiles import RowFactory, SchemaProfile
from trial_result import SessionReport, TrialResult, VariantReport, median_of_results
from trial_runner import TrialRunner


class Benchmark:
    """Main benchmark orchestrator for primary key strategies"""

    def __init__(
        self,
        server,
        database: str = DATABASE_NAME,
        fragmentation_reader: Optional[FragmentationReader] = None,
        seed: Optional[int] = None,
        **runner_options,
    ):
        """
        Initialize the benchmark.

        Args:
            server: Server-level engine (reachability, database lifecycle, connections)
            database: Name of the ephemeral benchmark database
            fragmentation_reader: How fragmentation is read (default: pgstattuple)
            seed: Seed of the session random source (default: unseeded)
            runner_options: Extra keyword arguments for TrialRunner
        """
        self.server = server
        self.database = database
        self.fragmentation_reader = fragmentation_reader or PgStatIndexReader()
        self.rng = random.Random(seed)
        self.runner_options = runner_options
        self.results: List[VariantReport] = []

    def launch(
        self,
        insert_count: int,
        run_count: int,
        profile: SchemaProfile,
        insert_strategy: InsertStrategy,
        variants: Sequence[Tuple[str, KeyGenerator]],
    ) -> SessionReport:
        """
        Run every variant ``run_count`` times inside a fresh database.

        The database is dropped exactly once, whether the session succeeds or
        not. The first failing trial aborts the whole session.
        """
        check_counts(insert_count, run_count)

        try:
            self.server.check_available()
        except EngineUnavailable as e:
            print(f"✗ {e}")
            print("Aborting...")
            raise

        self.results = []
        session_start = time.perf_counter()

        try:
            print("Create DB")
            self.server.create_database(
                self.database, extensions=self.fragmentation_reader.extensions
            )

            for name, key_generator in variants:
                report = self.run_variant(
                    name, key_generator, insert_count, run_count, profile, insert_strategy
                )
                self.results.append(report)
                print_variant_report(report)
        except BaseException:
            self._drop_database(quiet=True)
            raise

        self._drop_database()

        session = SessionReport(
            insert_count=insert_count,
            run_count=run_count,
            profile=profile.name,
            insert_strategy=insert_strategy.value,
            variants=tuple(self.results),
            duration=timedelta(seconds=time.perf_counter() - session_start),
        )

        print_comparison(session)
        print()
        print(f"Total Test run duration : {session.duration.total_seconds():.1f}s.")
        return session

    def run_variant(
        self,
        name: str,
        key_generator: KeyGenerator,
        insert_count: int,
        run_count: int,
        profile: SchemaProfile,
        insert_strategy: InsertStrategy,
    ) -> VariantReport:
        """Run ``run_count`` sequential trials and aggregate them by median."""
        write_test_intro(insert_count, run_count, name)

        trials: List[TrialResult] = []
        with self.server.connect(self.database) as gateway:
            runner = TrialRunner(
                gateway,
                self.fragmentation_reader,
                self.rng,
                row_factory=RowFactory(self.rng),
                **self.runner_options,
            )
            for _ in range(run_count):
                trials.append(
                    runner.run_trial(insert_count, profile, insert_strategy, key_generator)
                )

        return VariantReport(name, median_of_results(trials), tuple(trials))

    def _drop_database(self, quiet: bool = False):
        print("Drop database")
        try:
            self.server.drop_database(self.database)
        except BenchmarkError as e:
            if not quiet:
                raise
            print(f"  ⚠ Could not drop database {self.database}: {e}")
