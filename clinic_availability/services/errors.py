"""Error log for unexpected failures inside request handlers."""

from __future__ import annotations

from datetime import datetime, UTC
from pathlib import Path
import traceback

from flask import current_app


def error_log_path() -> Path:
    return Path(current_app.config["DATA_ROOT"]) / "logs" / "app_errors.log"


def record_exception(context: str, exc: BaseException) -> None:
    """Log ``exc`` and append its traceback to ``DATA_ROOT/logs/app_errors.log``."""

    current_app.logger.error("%s failed: %s", context, exc)
    try:
        log_path = error_log_path()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        with log_path.open("a", encoding="utf-8") as handle:
            handle.write(f"[{datetime.now(UTC).isoformat()}] {context}\n")
            handle.write("".join(traceback.format_exception(exc)))
            handle.write("\n")
    except OSError as log_exc:
        current_app.logger.warning("Could not write error log: %s", log_exc)
