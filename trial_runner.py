"""
Single-trial benchmark runner.

One trial creates the benchmark table, inserts rows keyed by a generator,
looks up a sample of inserted keys and the same number of absent keys,
reads index fragmentation and finally drops the table.

Only statement execution is timed. Key generation, row values and
statement composition always happen outside the timed region, for both
insert strategies.
"""

import random
import uuid
from datetime import timedelta
from typing import List, Optional, Sequence, Set, Tuple

from config import BATCH_SIZE, MAX_SAMPLES, SAMPLE_EVERY, SAMPLES_PER_BATCH, InsertStrategy
from errors import BenchmarkError, StorageFailure
from fragmentation import FragmentationReader
from key_generators import KeyGenerator
from schema_profiles import RowFactory, SchemaProfile
from timer import BenchmarkTimer
from trial_result import TrialResult

MAX_ABSENT_KEY_DRAWS = 1_000

# Absent keys are drawn with this version; keys of any other version can
# never collide with them, so only these are remembered during insertion.
ABSENT_KEY_VERSION = 4


class SampleSet:
    """
    Bounded uniform sample of inserted keys.

    Keys offered beyond ``capacity`` replace existing entries with
    decreasing probability (reservoir sampling), so the lookup phase stays
    bounded no matter how many rows were inserted.
    """

    def __init__(self, rng: random.Random, capacity: int = MAX_SAMPLES):
        self.rng = rng
        self.capacity = capacity
        self.keys: List[uuid.UUID] = []
        self.offered = 0

    def offer(self, key: uuid.UUID):
        self.offered += 1
        if len(self.keys) < self.capacity:
            self.keys.append(key)
            return
        slot = self.rng.randrange(self.offered)
        if slot < self.capacity:
            self.keys[slot] = key

    def __len__(self):
        return len(self.keys)

    def __iter__(self):
        return iter(self.keys)


class TrialRunner:
    def __init__(
        self,
        gateway,
        fragmentation_reader: FragmentationReader,
        rng: random.Random,
        row_factory: Optional[RowFactory] = None,
        batch_size: int = BATCH_SIZE,
        sample_every: int = SAMPLE_EVERY,
        samples_per_batch: int = SAMPLES_PER_BATCH,
        max_samples: int = MAX_SAMPLES,
    ):
        """
        Args:
            gateway: Executes statements against the benchmark database
            fragmentation_reader: Refreshes statistics and reads fragmentation
            rng: Session random source (batch sampling, absent keys)
            row_factory: Synthetic values for wide rows (default: seeded from rng)
            batch_size: Rows per multi-row INSERT in batch mode
            sample_every: Row-mode sampling cadence
            samples_per_batch: Random picks per batch in batch mode
            max_samples: Upper bound of the sample set
        """
        self.gateway = gateway
        self.fragmentation_reader = fragmentation_reader
        self.rng = rng
        self.row_factory = row_factory or RowFactory(rng)
        self.batch_size = batch_size
        self.sample_every = sample_every
        self.samples_per_batch = samples_per_batch
        self.max_samples = max_samples

        # Keys from the last trial; exposed for inspection
        self.last_samples: List[uuid.UUID] = []
        self.last_absent_keys: List[uuid.UUID] = []

    def run_trial(
        self,
        insert_count: int,
        profile: SchemaProfile,
        insert_strategy: InsertStrategy,
        key_generator: KeyGenerator,
    ) -> TrialResult:
        """Run one trial; the table is dropped on every exit path."""
        try:
            result = self._measure(insert_count, profile, insert_strategy, key_generator)
        except BaseException:
            self._drop_table_after_failure(profile)
            raise

        self.gateway.execute(profile.drop_table_statement())
        return result

    def _measure(self, insert_count, profile, insert_strategy, key_generator):
        self.gateway.execute(profile.create_table_statement())

        if insert_strategy is InsertStrategy.BATCH:
            insert_duration, inserted, samples = self._insert_batches(
                insert_count, profile, key_generator
            )
        else:
            insert_duration, inserted, samples = self._insert_rows(
                insert_count, profile, key_generator
            )

        absent_keys = self._absent_keys(inserted, len(samples))
        self.last_samples = list(samples)
        self.last_absent_keys = absent_keys

        select_success_duration = self._timed_lookups(profile, samples)
        select_fail_duration = self._timed_lookups(profile, absent_keys)

        self.fragmentation_reader.refresh(self.gateway, profile)
        fragmentation = self.fragmentation_reader.read(self.gateway, profile)

        return TrialResult(
            fragmentation=fragmentation,
            insert_duration=insert_duration,
            select_success_duration=select_success_duration,
            select_fail_duration=select_fail_duration,
        )

    def _insert_rows(
        self, insert_count: int, profile: SchemaProfile, key_generator: KeyGenerator
    ) -> Tuple[timedelta, Set[uuid.UUID], SampleSet]:
        """One INSERT statement per row"""
        timer = BenchmarkTimer("insert")
        inserted = set()
        samples = SampleSet(self.rng, self.max_samples)

        for ordinal in range(insert_count):
            key = key_generator()
            statement = self.gateway.prepare(
                profile.insert_statement([profile.row_values(key, ordinal, self.row_factory)])
            )

            with timer:
                self.gateway.execute(statement)

            if key.version == ABSENT_KEY_VERSION:
                inserted.add(key)
            if ordinal % self.sample_every == 0:
                samples.offer(key)

        return timer.as_timedelta(), inserted, samples

    def _insert_batches(
        self, insert_count: int, profile: SchemaProfile, key_generator: KeyGenerator
    ) -> Tuple[timedelta, Set[uuid.UUID], SampleSet]:
        """Multi-row INSERT statements of ``batch_size`` rows"""
        timer = BenchmarkTimer("insert")
        inserted = set()
        samples = SampleSet(self.rng, self.max_samples)

        for batch_start in range(0, insert_count, self.batch_size):
            batch_end = min(batch_start + self.batch_size, insert_count)
            keys = [key_generator() for _ in range(batch_start, batch_end)]
            rows = [
                profile.row_values(key, ordinal, self.row_factory)
                for ordinal, key in zip(range(batch_start, batch_end), keys)
            ]
            statement = self.gateway.prepare(profile.insert_statement(rows))

            with timer:
                self.gateway.execute(statement)

            inserted.update(key for key in keys if key.version == ABSENT_KEY_VERSION)
            for _ in range(self.samples_per_batch):
                samples.offer(self.rng.choice(keys))

        return timer.as_timedelta(), inserted, samples

    def _absent_keys(self, inserted: Set[uuid.UUID], count: int) -> List[uuid.UUID]:
        """Random v4 keys guaranteed not to be in ``inserted``."""
        keys = []
        for _ in range(count):
            for _ in range(MAX_ABSENT_KEY_DRAWS):
                key = uuid.UUID(int=self.rng.getrandbits(128), version=ABSENT_KEY_VERSION)
                if key not in inserted:
                    break
            else:
                raise BenchmarkError("Could not draw a key absent from the table")
            keys.append(key)
        return keys

    def _timed_lookups(self, profile: SchemaProfile, keys: Sequence[uuid.UUID]) -> timedelta:
        """Point-select every key and fetch the first row; only the round trip is timed."""
        statement = self.gateway.prepare(profile.lookup_statement())
        timer = BenchmarkTimer("lookup")

        for key in keys:
            params = (key,)
            with timer:
                self.gateway.fetch_one(statement, params)

        return timer.as_timedelta()

    def _drop_table_after_failure(self, profile: SchemaProfile):
        try:
            self.gateway.execute(profile.drop_table_statement())
        except StorageFailure as e:
            print(f"  ⚠ Could not drop table {profile.table_name}: {e}")
