"""
Structured operation logging for the memory layer.
Retrieval, vector and store operations are logged as one line per operation.
"""

import logging
from typing import Any, Dict, Optional


class StructuredLogger:
    """Structured logger for retrieval, vector index and store operations."""

    def __init__(self, name: str = "memlayer", level: int = logging.INFO):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(level)

        # Create handler if not already set
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def log_operation(self, operation: str, status: str, details: Optional[Dict[str, Any]] = None,
                      level: int = logging.INFO):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {details}"

        self.logger.log(level, message)

    def log_vector_operation(self, operation: str, record_id: str, details: Optional[Dict[str, Any]] = None,
                             status: str = "success"):
        """Log a vector index operation."""
        log_details = {"record_id": record_id}
        if details:
            log_details.update(details)

        level = logging.INFO if status == "success" else logging.WARNING
        self.log_operation(f"vector.{operation}", status, log_details, level=level)

    def log_retrieval(self, operation: str, query: str, returned: int, details: Optional[Dict[str, Any]] = None):
        """Log a search or recall request. Query text is truncated."""
        log_details = {
            "query": query[:50] + "..." if len(query) > 50 else query,
            "returned": returned,
        }
        if details:
            log_details.update(details)

        self.log_operation(f"retrieval.{operation}", "success", log_details, level=logging.DEBUG)

    def log_store_operation(self, operation: str, memory_id: str, status: str = "success",
                            details: Optional[Dict[str, Any]] = None):
        """Log a memory store operation."""
        log_details = {"memory_id": memory_id}
        if details:
            log_details.update(details)

        level = logging.INFO if status == "success" else logging.ERROR
        self.log_operation(f"store.{operation}", status, log_details, level=level)

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

    def set_level(self, level: int) -> None:
        self.logger.setLevel(level)


# Global logger instance
logger = StructuredLogger()
