"""
Structured operation logging for the review search service.
"""

import logging
import os
from typing import Any, Dict


class StructuredLogger:
    """Structured logger for store, ingestion and search operations."""

    def __init__(self, name: str = "review_search"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())

        # Create handler if not already set
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None, level: int = logging.INFO):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {details}"

        self.logger.log(level, message)

    def log_store_event(self, store: str, event: str, details: Dict[str, Any] = None, status: str = "success"):
        """Log a store lifecycle event (open, verify, poison, truncate)."""
        level = logging.INFO if status == "success" else logging.WARNING
        self.log_operation(f"{store}.{event}", status, details, level=level)

    def log_vector_append(self, record_id: int, size_after: int, path: str):
        """Log a successful vector append."""
        self.log_operation("vector.append", "success", {
            "record_id": record_id,
            "file_size": size_after,
            "path": path,
        })

    def log_ingest(self, record_id: int, title: str, status: str = "success", details: Dict[str, Any] = None):
        """Log one review ingestion."""
        log_details = {"record_id": record_id, "title": _truncate(title)}
        if details:
            log_details.update(details)

        level = logging.INFO if status == "success" else logging.ERROR
        self.log_operation("ingest.insert_one", status, log_details, level=level)

    def log_bulk_ingest(self, submitted: int, inserted: int, error: str = None):
        """Log a bulk ingestion outcome."""
        details = {"submitted": submitted, "inserted": inserted}
        if error:
            details["error"] = _truncate(error, 100)
            self.log_operation("ingest.insert_bulk", "aborted", details, level=logging.WARNING)
        else:
            self.log_operation("ingest.insert_bulk", "success", details)

    def log_desync(self, record_id: int, reason: str):
        """Log a vector/metadata id space divergence."""
        self.log_operation("ingest.desync", "failed", {
            "vector_id": record_id,
            "reason": _truncate(reason, 100),
        }, level=logging.ERROR)

    def log_search(self, query: str, top_k: int, scanned: int, returned: int, status: str = "success"):
        """Log a search request outcome."""
        self.log_operation("search.query", status, {
            "query": _truncate(query),
            "top_k": top_k,
            "scanned": scanned,
            "returned": returned,
        })

    # Standard logging methods for compatibility
    def info(self, message: str) -> None:
        """Log an info message."""
        self.logger.info(message)

    def warning(self, message: str) -> None:
        """Log a warning message."""
        self.logger.warning(message)

    def error(self, message: str) -> None:
        """Log an error message."""
        self.logger.error(message)

    def debug(self, message: str) -> None:
        """Log a debug message."""
        self.logger.debug(message)


def _truncate(value: str, limit: int = 50) -> str:
    if value is None:
        return ""
    return value[:limit] + "..." if len(value) > limit else value


# Global logger instance
logger = StructuredLogger()
