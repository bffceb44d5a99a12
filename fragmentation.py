from decimal import Decimal
from typing import Tuple

from psycopg import sql

from schema_profiles import SchemaProfile, Statement

# leaf_fragmentation is the share of leaf pages whose right sibling sits at a
# lower block number, i.e. pages that break the physical key order.
PGSTATINDEX_QUERY = sql.SQL("""
    SELECT s.leaf_fragmentation
    FROM pg_index i
    CROSS JOIN LATERAL pgstatindex(i.indexrelid::regclass) s
    WHERE i.indrelid = %s::regclass
      AND i.indisprimary
""")


class FragmentationReader:
    """Reads the primary-key index fragmentation of a benchmark table."""

    # Extensions that must exist in the benchmark database
    extensions: Tuple[str, ...] = ()

    def refresh(self, gateway, profile: SchemaProfile):
        """Bring engine statistics up to date before reading."""

    def read(self, gateway, profile: SchemaProfile) -> Decimal:
        raise NotImplementedError("Subclasses must implement this method")


class NullFragmentationReader(FragmentationReader):
    """For servers where fragmentation cannot be measured; always reports 0."""

    def read(self, gateway, profile):
        return Decimal(0)


class PgStatIndexReader(FragmentationReader):
    """PostgreSQL reader backed by the pgstattuple extension"""

    extensions = ("pgstattuple",)

    def refresh(self, gateway, profile):
        gateway.execute(profile.analyze_statement())

    def read(self, gateway, profile):
        statement = Statement(
            "fragmentation", profile.table_name, PGSTATINDEX_QUERY, (profile.table_name,)
        )
        row = gateway.fetch_one(statement)
        return to_percentage(row[0] if row else None)


def to_percentage(value) -> Decimal:
    """Engine value -> Decimal percentage; NaN/NULL (no leaf pages) becomes 0."""
    if value is None:
        return Decimal(0)
    percentage = Decimal(str(value))
    if percentage.is_nan():
        return Decimal(0)
    return min(max(percentage, Decimal(0)), Decimal(100))
