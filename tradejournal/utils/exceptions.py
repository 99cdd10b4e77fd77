from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorCategory(str, Enum):
    VALIDATION = "validation"
    DATA = "data"
    CALCULATION = "calculation"
    STORAGE = "storage"
    RISK = "risk"
    SYSTEM = "system"


class TradeJournalError(Exception):
    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.SYSTEM,
        status_code: Optional[int] = None,
    ) -> None:
        self.message = message
        self.category = category
        self.status_code = status_code
        super().__init__(self.message)

    def __str__(self) -> str:
        parts = [f"[{self.category.value}] {self.message}"]
        if self.status_code:
            parts.append(f"(HTTP {self.status_code})")
        return " | ".join(parts)


class InvalidInputError(TradeJournalError):
    def __init__(self, message: str) -> None:
        super().__init__(message, ErrorCategory.VALIDATION, 422)


class NotFoundError(TradeJournalError):
    def __init__(self, message: str) -> None:
        super().__init__(message, ErrorCategory.DATA, 404)


class StorageError(TradeJournalError):
    def __init__(self, message: str) -> None:
        super().__init__(message, ErrorCategory.STORAGE, 500)


class RiskLimitError(TradeJournalError):
    def __init__(self, message: str) -> None:
        super().__init__(message, ErrorCategory.RISK, 403)


class TradingDisabledError(TradeJournalError):
    def __init__(self, message: str = "Daily loss limit reached - trading disabled") -> None:
        super().__init__(message, ErrorCategory.RISK, 403)
