from __future__ import annotations
import logging
from typing import Any, Dict


class StructuredLogger:
    def __init__(self, name: str = "socialrank.service"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.INFO)

    def log_ranking(
        self,
        operation: str,
        viewer_id: str,
        candidates: int,
        returned: int,
        duration_ms: float,
        extra: Dict[str, Any] | None = None,
    ) -> None:
        """Logs a completed ranking call with structured fields."""
        log_data = {
            "type": "ranking",
            "operation": operation,
            "viewer_id": viewer_id,
            "candidates": candidates,
            "returned": returned,
            "duration_ms": round(duration_ms, 2),
        }
        if extra:
            log_data.update(extra)
        self.logger.info(f"Structured log: {log_data}")

    def log_error(
        self,
        message: str,
        error: Exception | None = None,
        viewer_id: str | None = None,
        extra: Dict[str, Any] | None = None,
    ) -> None:
        """Logs a recovered failure."""
        log_data = {
            "type": "ranking_error",
            "message": message,
            "viewer_id": viewer_id,
            "error_type": type(error).__name__ if error else None,
            "error": str(error) if error else None,
        }
        if extra:
            log_data.update(extra)
        self.logger.error(f"Structured error: {log_data}")


service_logger = StructuredLogger()
