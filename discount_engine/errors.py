from __future__ import annotations

from typing import Optional


class DiscountEngineError(Exception):
    pass


class MalformedRecord(DiscountEngineError):
    def __init__(self, message: str, line: Optional[str] = None):
        super().__init__(message)
        self.line = line


class InvalidDate(MalformedRecord):
    pass


class PersistenceFailure(DiscountEngineError):
    pass


class SourceUnavailable(DiscountEngineError):
    pass


class PricingFailure(DiscountEngineError):
    pass
