import random

import pytest

from fake_engine import FakeFragmentationReader, FakeServer, FakeTableGateway
from schema_profiles import NarrowProfile, RowFactory, WideProfile
from trial_runner import TrialRunner


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def narrow():
    return NarrowProfile()


@pytest.fixture
def wide():
    return WideProfile()


@pytest.fixture
def gateway(narrow):
    gateway = FakeTableGateway()
    gateway.widths[narrow.table_name] = len(narrow.columns)
    return gateway


@pytest.fixture
def reader():
    return FakeFragmentationReader()


@pytest.fixture
def runner(gateway, reader, rng):
    return TrialRunner(gateway, reader, rng, row_factory=RowFactory(rng))


@pytest.fixture
def server(narrow):
    return FakeServer(narrow)
