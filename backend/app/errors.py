"""
Error taxonomy for the dashboard API.

Each error carries the HTTP status it maps to; the handler registered in
``app.main`` renders them as ``{"error": ..., "details": ...}``.
"""
from typing import Any, Dict, Optional


class DashboardError(Exception):
    status_code = 500

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class InvalidRequest(DashboardError):
    status_code = 400


class MalformedCsv(InvalidRequest):
    """The uploaded payload could not be parsed as CSV."""


class NotFound(DashboardError):
    status_code = 404


class PayloadTooLarge(DashboardError):
    status_code = 413


class UpstreamFailure(DashboardError):
    """A row store operation failed."""
    status_code = 500


class BatchInsertError(UpstreamFailure):
    def __init__(self, batch_index: int, inserted_rows: int, details: Optional[str] = None):
        super().__init__(
            f"Failed to insert shipments batch {batch_index} ({inserted_rows} rows inserted before failure)",
            details=details,
        )
        self.batch_index = batch_index
        self.inserted_rows = inserted_rows


class UnexpectedFailure(DashboardError):
    status_code = 500
