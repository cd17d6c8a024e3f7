from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import DecimalException
from typing import Any, List, Optional, Protocol, Sequence

from discount_engine.errors import DiscountEngineError, PersistenceFailure, PricingFailure
from discount_engine.models import Order, PricedResult, Rule
from discount_engine.parsing import parse_orders
from discount_engine.pricing import price_order
from discount_engine.result import Result
from discount_engine.rules import DEFAULT_RULES


class OrderSource(Protocol):
    def describe(self) -> str: ...

    def read_rows(self) -> List[str]: ...


class ResultSink(Protocol):
    def describe(self) -> str: ...

    def open(self) -> Any: ...


@dataclass(slots=True)
class BatchReport:
    rows_loaded: int
    results: List[PricedResult] = field(default_factory=list)

    @property
    def rows_written(self) -> int:
        return len(self.results)


class PricingPipeline:
    """
    Reads order rows, prices every order and appends the results to a sink.

    The batch stops at the first failure: a malformed row means nothing is
    written, a rejected insert leaves the rows written before it.
    """

    def __init__(
        self,
        source: OrderSource,
        sink: ResultSink,
        rules: Sequence[Rule] = DEFAULT_RULES,
        logger: Optional[logging.Logger] = None,
    ):
        self.source = source
        self.sink = sink
        self.rules = rules
        self.logger = logger or logging.getLogger(__name__)

    def _load(self) -> Result[List[str], DiscountEngineError]:
        try:
            return Result.ok(self.source.read_rows())
        except DiscountEngineError as e:
            return Result.err(e)

    def _price(self, orders: List[Order]) -> Result[List[PricedResult], DiscountEngineError]:
        priced: List[PricedResult] = []
        for order in orders:
            try:
                priced.append(price_order(order, self.rules))
            except DecimalException as e:
                return Result.err(PricingFailure(f"Cannot price {order.product_name} x {order.quantity}: {e!r}"))
        return Result.ok(priced)

    def _persist(self, results: List[PricedResult]) -> Result[List[PricedResult], DiscountEngineError]:
        written: List[PricedResult] = []
        try:
            with self.sink.open() as writer:
                for result in results:
                    inserted = writer.insert(result)
                    if inserted.is_err:
                        self.logger.error(
                            "insert failed after %d of %d rows: %s", len(written), len(results), inserted.error
                        )
                        return Result.err(inserted.error)
                    written.append(inserted.value)
        except PersistenceFailure as e:
            return Result.err(e)
        return Result.ok(written)

    def _fail(self, error: DiscountEngineError) -> Result[BatchReport, DiscountEngineError]:
        self.logger.error("batch failed: %s", error)
        return Result.err(error)

    def run(self) -> Result[BatchReport, DiscountEngineError]:
        self.logger.debug("batch source=%s sink=%s", self.source.describe(), self.sink.describe())

        rows = self._load()
        if rows.is_err:
            return self._fail(rows.error)
        self.logger.info("batch started, %d rows loaded", len(rows.value))

        persisted = parse_orders(rows.value).bind(self._price).bind(self._persist)
        if persisted.is_err:
            return self._fail(persisted.error)

        report = BatchReport(rows_loaded=len(rows.value), results=persisted.value)
        self.logger.info("batch completed, %d rows written to %s", report.rows_written, self.sink.describe())
        return Result.ok(report)

    def run_or_raise(self) -> BatchReport:
        return self.run().unwrap()
