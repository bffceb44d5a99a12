"""
Table shapes used by the benchmark.

A profile carries its column list and knows how to bind one row of values,
so the trial runner never builds SQL by string interpolation.
"""

import random
import uuid
from datetime import date
from typing import List, NamedTuple, Sequence, Tuple, Union

from faker import Faker
from psycopg import sql

from errors import ConfigurationError

TABLE_NAME = "uuid_test_table"


class Statement(NamedTuple):
    """A composed (or already rendered) query plus the bound parameters, tagged with its purpose."""

    kind: str
    table: str
    query: Union[sql.Composable, bytes]
    params: Tuple = ()


class RowFactory:
    """Synthetic column values for the wide profile, seeded from the session"""

    def __init__(self, rng: random.Random):
        self.fake = Faker()
        self.fake.seed_instance(rng.getrandbits(32))

    def birth_date(self) -> date:
        return self.fake.date_of_birth(minimum_age=0, maximum_age=90)

    def first_name(self) -> str:
        return self.fake.first_name()[:20]

    def last_name(self) -> str:
        return self.fake.last_name()[:30]

    def message(self) -> str:
        return self.fake.text(max_nb_chars=50)[:50]


class SchemaProfile:
    name: str = ""
    # (column, SQL type); the first column is always the uuid primary key
    columns: Tuple[Tuple[str, str], ...] = ()

    def __init__(self, table_name: str = TABLE_NAME):
        self.table_name = table_name

    @property
    def column_names(self) -> List[str]:
        return [column for column, _ in self.columns]

    def row_values(self, key: uuid.UUID, ordinal: int, rows: RowFactory) -> Tuple:
        raise NotImplementedError("Subclasses must implement this method")

    def create_table_statement(self) -> Statement:
        column_defs = [
            sql.SQL("{} {} NOT NULL").format(sql.Identifier(column), sql.SQL(sql_type))
            for column, sql_type in self.columns
        ]
        query = sql.SQL("CREATE TABLE {} ({}, PRIMARY KEY ({}))").format(
            sql.Identifier(self.table_name),
            sql.SQL(", ").join(column_defs),
            sql.Identifier(self.column_names[0]),
        )
        return Statement("create", self.table_name, query)

    def drop_table_statement(self) -> Statement:
        query = sql.SQL("DROP TABLE IF EXISTS {}").format(
            sql.Identifier(self.table_name)
        )
        return Statement("drop", self.table_name, query)

    def insert_statement(self, rows: Sequence[Tuple]) -> Statement:
        """One INSERT carrying every row in ``rows`` as positional parameters."""
        row_placeholder = sql.SQL("({})").format(
            sql.SQL(", ").join(sql.Placeholder() * len(self.columns))
        )
        query = sql.SQL("INSERT INTO {} ({}) VALUES {}").format(
            sql.Identifier(self.table_name),
            sql.SQL(", ").join(map(sql.Identifier, self.column_names)),
            sql.SQL(", ").join([row_placeholder] * len(rows)),
        )
        params = tuple(value for row in rows for value in row)
        return Statement("insert", self.table_name, query, params)

    def lookup_statement(self) -> Statement:
        query = sql.SQL("SELECT * FROM {} WHERE {} = %s").format(
            sql.Identifier(self.table_name),
            sql.Identifier(self.column_names[0]),
        )
        return Statement("lookup", self.table_name, query)

    def analyze_statement(self) -> Statement:
        query = sql.SQL("ANALYZE {}").format(sql.Identifier(self.table_name))
        return Statement("analyze", self.table_name, query)


class NarrowProfile(SchemaProfile):
    """Key plus one integer column"""

    name = "narrow"
    columns = (("id", "uuid"), ("value", "integer"))

    def row_values(self, key, ordinal, rows):
        return (key, ordinal)


class WideProfile(SchemaProfile):
    """Key plus a handful of typed person columns"""

    name = "wide"
    columns = (
        ("id", "uuid"),
        ("birth_date", "date"),
        ("first_name", "varchar(20)"),
        ("last_name", "varchar(30)"),
        ("message", "varchar(50)"),
    )

    def row_values(self, key, ordinal, rows):
        return (
            key,
            rows.birth_date(),
            rows.first_name(),
            rows.last_name(),
            rows.message(),
        )


PROFILES = {
    "narrow": NarrowProfile,
    "small": NarrowProfile,
    "wide": WideProfile,
    "big": WideProfile,
}


def profile_for(name: str, table_name: str = TABLE_NAME) -> SchemaProfile:
    try:
        profile_cls = PROFILES[name.lower()]
    except KeyError:
        raise ConfigurationError(
            f"Unknown table size {name!r} (expected one of: {', '.join(PROFILES)})"
        ) from None
    return profile_cls(table_name)
