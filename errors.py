class BenchmarkError(Exception):
    """Base class for failures raised by the benchmark harness"""


class EngineUnavailable(BenchmarkError):
    """The database server could not be reached; nothing was created."""


class StorageFailure(BenchmarkError):
    """A DDL/DML statement or query was rejected by the engine mid-trial."""


class ConfigurationError(BenchmarkError):
    """Invalid session parameters, detected before any engine interaction."""
