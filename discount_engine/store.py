from __future__ import annotations

import logging
import re
import sqlite3
from contextlib import closing, contextmanager
from pathlib import Path
from types import ModuleType
from typing import Any, Dict, Iterator, List, Optional

from discount_engine.errors import PersistenceFailure, SourceUnavailable
from discount_engine.models import PricedResult
from discount_engine.result import Result

logger = logging.getLogger(__name__)

IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

PLACEHOLDERS = {
    "qmark": "?",
    "format": "%s",
    "pyformat": "%s",
}


class CsvOrderSource:
    """Order lines of a CSV file, header dropped."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def describe(self) -> str:
        return str(self.path)

    def read_rows(self) -> List[str]:
        try:
            with self.path.open("r", encoding="utf-8", newline="") as f:
                lines = f.read().splitlines()
        except (OSError, UnicodeDecodeError) as e:
            raise SourceUnavailable(f"Cannot read orders from {self.path}: {e}") from e
        return lines[1:]


class ResultStore:
    """
    Sink that keeps priced rows in memory.

    Also keeps the list of log lines it wrote, which is what the tests look at.
    reject_after=N makes every insert after the N-th fail, the way a database
    rejecting a row would.
    """

    def __init__(self, reject_after: Optional[int] = None) -> None:
        self.rows: List[PricedResult] = []
        self.logs: List[str] = []
        self.reject_after = reject_after
        self.opened = 0
        self.closed = 0

    def log(self, message: str) -> None:
        self.logs.append(message)
        logger.info(message)

    def describe(self) -> str:
        return "memory"

    @contextmanager
    def open(self) -> Iterator["ResultStore"]:
        self.opened += 1
        self.log(f"store opened (rows={len(self.rows)})")
        try:
            yield self
        finally:
            self.closed += 1
            self.log(f"store closed (rows={len(self.rows)})")

    def insert(self, result: PricedResult) -> Result[PricedResult, PersistenceFailure]:
        if self.reject_after is not None and len(self.rows) >= self.reject_after:
            return Result.err(PersistenceFailure(f"insert rejected for {result.product_name}"))
        self.rows.append(result)
        return Result.ok(result)


class SqlWriter:
    def __init__(self, connection: Any, statement: str, errors: type):
        self.connection = connection
        self.statement = statement
        self.errors = errors

    def insert(self, result: PricedResult) -> Result[PricedResult, PersistenceFailure]:
        params = (
            result.product_name,
            str(result.total_before),
            str(result.discount_percent),
            str(result.total_after),
        )
        try:
            with closing(self.connection.cursor()) as cursor:
                cursor.execute(self.statement, params)
            self.connection.commit()
        except self.errors as e:
            return Result.err(PersistenceFailure(f"Error inserting {result.product_name}: {e}"))
        return Result.ok(result)


class SqlResultSink:
    """
    Appends priced rows to a table through any DB-API 2.0 driver.

    One connection per batch, one INSERT and commit per row: a failing row
    leaves the rows before it in place.
    """

    def __init__(self, driver: ModuleType, table_name: str = "processed_orders", **connect_args: Any):
        if not IDENTIFIER.match(table_name):
            raise ValueError(f"Invalid table name: {table_name!r}")
        if driver.paramstyle not in PLACEHOLDERS:
            raise ValueError(f"Unsupported paramstyle: {driver.paramstyle}")
        self.driver = driver
        self.table_name = table_name
        self.connect_args: Dict[str, Any] = connect_args

    def describe(self) -> str:
        return f"{self.driver.__name__}:{self.table_name}"

    def create_statement(self) -> str:
        return (
            f"CREATE TABLE IF NOT EXISTS {self.table_name} ("
            "product_name TEXT, total_before NUMERIC, discount NUMERIC, total_after NUMERIC)"
        )

    def insert_statement(self) -> str:
        mark = PLACEHOLDERS[self.driver.paramstyle]
        return (
            f"INSERT INTO {self.table_name} (product_name, total_before, discount, total_after) "
            f"VALUES ({mark}, {mark}, {mark}, {mark})"
        )

    @contextmanager
    def open(self) -> Iterator[SqlWriter]:
        try:
            connection = self.driver.connect(**self.connect_args)
        except self.driver.Error as e:
            raise PersistenceFailure(f"Cannot connect to {self.describe()}: {e}") from e
        with closing(connection):
            try:
                with closing(connection.cursor()) as cursor:
                    cursor.execute(self.create_statement())
                connection.commit()
            except self.driver.Error as e:
                raise PersistenceFailure(f"Cannot prepare table {self.table_name}: {e}") from e
            logger.debug("connected to %s", self.describe())
            yield SqlWriter(connection, self.insert_statement(), self.driver.Error)


def sqlite_sink(path: str | Path, table_name: str = "processed_orders") -> SqlResultSink:
    return SqlResultSink(sqlite3, table_name, database=str(path))
