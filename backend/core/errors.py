"""Domain errors raised by the ledger and fulfillment services.

Each error carries a human readable message plus keyword context (offending
line id, missing field, requested vs. available quantity, ...) so the caller
can correct and resubmit. The HTTP layer maps the kinds to status codes in
``main.py``.
"""

from typing import Any, Dict


class WmsError(Exception):
    code = "WMS_ERROR"

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = context

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.code, "detail": self.message, "context": self.context}


class ValidationError(WmsError):
    """Missing or malformed input, rejected before any mutation."""

    code = "ValidationError"


class NotFound(WmsError):
    code = "NotFound"


class OutOfStock(WmsError):
    """A ledger adjustment would drive a balance negative."""

    code = "OutOfStock"


class InsufficientStock(WmsError):
    code = "InsufficientStock"


class InvalidState(WmsError):
    """Mutation of a closed or otherwise terminal order/campaign."""

    code = "InvalidState"
