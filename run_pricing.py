from __future__ import annotations

import argparse
from typing import List, Optional

from pydantic import ValidationError

from discount_engine.errors import DiscountEngineError
from discount_engine.logging_config import setup_logging
from discount_engine.pipeline import PricingPipeline
from discount_engine.rules import DEFAULT_VISA_RATE, build_rules
from discount_engine.settings import Settings, load_settings
from discount_engine.store import CsvOrderSource, sqlite_sink


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Price a CSV of orders and store the results.")
    p.add_argument("--input", type=str, default=None, help="CSV file with orders (header on the first line)")
    p.add_argument("--db", type=str, default=None, help="SQLite database receiving the priced orders")
    p.add_argument("--table", type=str, default=None, help="Target table name")
    p.add_argument("--visa-rate", type=str, default=None, help="Discount for orders paid with Visa")
    p.add_argument("--log-level", type=str, default=None, help="DEBUG, INFO, WARNING, ERROR or CRITICAL")
    p.add_argument("--env-file", type=str, default=None, help=".env file to load settings from")
    return p


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    overrides = {
        "input_path": args.input,
        "database_path": args.db,
        "table_name": args.table,
        "visa_rate": args.visa_rate,
    }
    try:
        data = load_settings(args.env_file).model_dump()
        data.update({k: v for k, v in overrides.items() if v is not None})
        if args.log_level:
            data["logging"]["level"] = args.log_level
        settings = Settings.model_validate(data)
    except ValidationError as e:
        parser.error(str(e))

    logger = setup_logging(settings.logging)
    if settings.visa_rate != DEFAULT_VISA_RATE:
        logger.warning("Visa discount overridden: %s (default %s)", settings.visa_rate, DEFAULT_VISA_RATE)
    settings.database_path.parent.mkdir(parents=True, exist_ok=True)

    pipeline = PricingPipeline(
        source=CsvOrderSource(settings.input_path),
        sink=sqlite_sink(settings.database_path, settings.table_name),
        rules=build_rules(visa_rate=settings.visa_rate),
        logger=logger,
    )
    try:
        report = pipeline.run_or_raise()
    except DiscountEngineError as e:
        logger.debug("run aborted", exc_info=e)
        print(f"\nFAILED: {e}")
        return 1

    print("\n=== RESULT ===")
    print("rows loaded:", report.rows_loaded)
    print("rows written:", report.rows_written)
    print("database:", settings.database_path)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
