"""
Runtime settings.

Values come from environment variables (a .env file in the working directory
is loaded first) and fall back to the defaults below. Command line flags in
run_pricing.py override them.
"""

from __future__ import annotations

import os
from decimal import Decimal
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from discount_engine.rules import DEFAULT_VISA_RATE
from discount_engine.store import IDENTIFIER

DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class LoggingSettings(BaseModel):
    """Logging configuration settings."""

    level: str = Field(default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)")
    file: Path = Field(default=Path("logs/rule_engine.log"), description="Log file, appended to on every run")
    format: str = Field(default=DEFAULT_LOG_FORMAT, description="Log message format")
    console_enabled: bool = Field(default=True, description="Whether to write logs to console")

    @field_validator("level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v.upper()


class Settings(BaseModel):
    """Main application settings."""

    input_path: Path = Field(default=Path("data/orders.csv"), description="CSV file with one order per line")
    database_path: Path = Field(default=Path("data/orders.db"), description="SQLite database for priced orders")
    table_name: str = Field(default="processed_orders", description="Table receiving priced orders")
    visa_rate: Decimal = Field(default=DEFAULT_VISA_RATE, description="Discount for orders paid with Visa")
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @field_validator("table_name")
    @classmethod
    def validate_table_name(cls, v: str) -> str:
        if not IDENTIFIER.match(v):
            raise ValueError(f"Table name must be a plain SQL identifier, got {v!r}")
        return v

    @field_validator("visa_rate")
    @classmethod
    def validate_visa_rate(cls, v: Decimal) -> Decimal:
        if not Decimal("0") <= v <= Decimal("1"):
            raise ValueError(f"Visa rate must be between 0 and 1, got {v}")
        return v


def _parse_bool(value: str) -> bool:
    return value.lower() in ("true", "1", "t", "yes", "y")


def load_settings(env_file: str | Path | None = None) -> Settings:
    load_dotenv(env_file)
    env = os.environ
    return Settings(
        input_path=env.get("DISCOUNT_INPUT_PATH", "data/orders.csv"),
        database_path=env.get("DISCOUNT_DB_PATH", "data/orders.db"),
        table_name=env.get("DISCOUNT_TABLE", "processed_orders"),
        visa_rate=env.get("DISCOUNT_VISA_RATE", str(DEFAULT_VISA_RATE)),
        logging=LoggingSettings(
            level=env.get("LOG_LEVEL", "INFO"),
            file=env.get("LOG_FILE", "logs/rule_engine.log"),
            format=env.get("LOG_FORMAT", DEFAULT_LOG_FORMAT),
            console_enabled=_parse_bool(env.get("LOG_CONSOLE_ENABLED", "True")),
        ),
    )
