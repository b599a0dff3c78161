"""Booking error types and lightweight error logging for in-app diagnostics."""

from __future__ import annotations

from datetime import datetime, UTC
from pathlib import Path
import traceback

from flask import current_app


class BookingError(Exception):
    """Base exception for business-rule failures surfaced to API clients."""

    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFound(BookingError):
    """Raised when a doctor, patient, slot or appointment id does not resolve."""

    status_code = 404


class Conflict(BookingError):
    """Raised when the requested change clashes with current slot/appointment state."""

    status_code = 400


class ValidationFailed(BookingError):
    """Raised when a request is missing or carries malformed fields."""

    status_code = 400


class Forbidden(BookingError):
    """Raised when the acting user may not touch the resource."""

    status_code = 403


def record_exception(context: str, exc: BaseException) -> None:
    """Append exception details to data/logs/app_errors.log for offline inspection."""

    current_app.logger.error("%s failed: %s", context, exc)
    try:
        root = Path(current_app.config["DATA_ROOT"]) / "logs"
        root.mkdir(parents=True, exist_ok=True)
        log_path = root / "app_errors.log"
        with log_path.open("a", encoding="utf-8") as handle:
            handle.write(f"[{datetime.now(UTC).isoformat()}] {context}\n")
            handle.write("".join(traceback.format_exception(exc)))
            handle.write("\n")
    except OSError as log_exc:
        current_app.logger.warning("Could not write error log: %s", log_exc)
