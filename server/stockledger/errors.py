"""Error taxonomy shared by the ledger workflows and the HTTP layer.

Every error carries a stable ``code`` and the HTTP status the API maps it to.
``extra`` holds the structured fields a client needs to render a precise
message (for example available vs. requested quantity).
"""

from decimal import Decimal
from typing import Any

from fastapi import HTTPException


class StockLedgerError(ValueError):
    code = "INTERNAL"
    status_code = 500

    def __init__(self, message: str, **extra: Any):
        super().__init__(message)
        self.extra = extra

    def to_detail(self) -> dict:
        detail = {"code": self.code, "message": str(self)}
        for key, value in self.extra.items():
            detail[key] = str(value) if isinstance(value, Decimal) else value
        return detail


class ValidationFailedError(StockLedgerError):
    code = "VALIDATION_ERROR"
    status_code = 400


class NotFoundError(StockLedgerError):
    code = "NOT_FOUND"
    status_code = 404


class InsufficientStockError(StockLedgerError):
    code = "INSUFFICIENT_STOCK"
    status_code = 409


class CapacityExceededError(StockLedgerError):
    code = "CAPACITY_EXCEEDED"
    status_code = 409

    def __init__(self, available_qty: Decimal, requested_qty: Decimal):
        super().__init__(
            f"Allocation quantity exceeds available quantity "
            f"(requested {requested_qty}, available {available_qty}).",
            available_qty=available_qty,
            requested_qty=requested_qty,
        )
        self.available_qty = available_qty
        self.requested_qty = requested_qty


class DuplicateError(StockLedgerError):
    code = "DUPLICATE"
    status_code = 409


class ReferenceInUseError(StockLedgerError):
    code = "REFERENCE_IN_USE"
    status_code = 409


class TransactionFailedError(StockLedgerError):
    code = "INTERNAL"
    status_code = 500

    def __init__(self, message: str = "The operation could not be completed. Please retry."):
        super().__init__(message)


def to_http_exception(exc: StockLedgerError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.to_detail())
