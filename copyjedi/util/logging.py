"""
Structured logging for paste tracking, stats persistence and leaderboard sync.
"""

import logging
from typing import Any, Dict, List


class StructuredLogger:
    """Structured logger for tracker, sync and heartbeat operations."""

    def __init__(self, name: str = "copyjedi"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.INFO)

        # Create handler if not already set
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def set_debug(self, enabled: bool):
        """Switch between DEBUG and INFO verbosity."""
        self.logger.setLevel(logging.DEBUG if enabled else logging.INFO)

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {details}"

        self.logger.info(message)

    def log_paste_detected(self, reason: str, line_count: int, total_pastes: int):
        """Log an accepted paste."""
        self.log_operation("paste.detected", "counted", {
            "reason": reason,
            "line_count": line_count,
            "total_pastes": total_pastes
        })

    def log_change_skipped(self, reason: str, details: Dict[str, Any] = None):
        """Log a change the tracker did not classify. Debug level only."""
        message = f"Operation: paste.skipped, Status: {reason}"
        if details:
            message += f", Details: {details}"
        self.logger.debug(message)

    def log_change_preview(self, text: str):
        """Log the first characters of a change with newlines escaped."""
        preview = text[:20].replace("\n", "\\n")
        self.logger.debug(f'Change detected - length: {len(text)}, preview: "{preview}..."')

    def log_stats_saved(self, path: str, stats: Dict[str, Any]):
        """Log a stats file write."""
        self.log_operation("stats.saved", "success", {"path": path, **stats})

    def log_sync_attempt(self, endpoint: str, status: str, details: Dict[str, Any] = None):
        """Log a leaderboard request."""
        log_details = {"endpoint": endpoint}
        if details:
            log_details.update(details)

        self.log_operation("sync.request", status, log_details)

    def log_offline_queue(self, pending: int, reason: str):
        """Log a submission parked while the server is unreachable."""
        self.log_operation("sync.queued", "offline", {"pending": pending, "reason": reason})

    def log_heartbeat_task(self, task_name: str, start_time: float, end_time: float, status: str = "success", details: Dict[str, Any] = None):
        """Log heartbeat task execution."""
        duration_ms = round((end_time - start_time) * 1000, 2)
        log_details = {"duration_ms": duration_ms}
        if details:
            log_details.update(details)
        elif status == "success":
            log_details["message"] = f"Heartbeat task '{task_name}' completed in {duration_ms}ms"
        elif status == "failed":
            log_details["message"] = f"Heartbeat task '{task_name}' failed after {duration_ms}ms"

        self.log_operation(f"heartbeat.{task_name}", status, log_details)

    def log_api_error(self, endpoint: str, error: Exception):
        """Log an unexpected error inside a service endpoint."""
        self.logger.error(f"Operation: api.{endpoint}, Status: error, Details: {{'error': '{error}'}}")

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

    def exception(self, message: str) -> None:
        """Log an error message with the active traceback."""
        self.logger.exception(message)


# Global logger instance
logger = StructuredLogger()


def sanitize_payload(payload: Any, sensitive_fields: List[str] = None) -> Any:
    """Truncate long strings and redact fields that may carry pasted content."""
    if sensitive_fields is None:
        sensitive_fields = ['text', 'clipboard', 'content']

    if isinstance(payload, dict):
        sanitized = {}
        for k, v in payload.items():
            if k not in sensitive_fields:
                sanitized[k] = sanitize_payload(v, sensitive_fields)
            else:
                sanitized[k] = "[REDACTED]"
        return sanitized
    elif isinstance(payload, str):
        return payload[:100] + "..." if len(payload) > 100 else payload
    elif isinstance(payload, list):
        return [sanitize_payload(item, sensitive_fields) for item in payload]
    else:
        return payload
