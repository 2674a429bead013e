"""
Logging configuration for axispay.

Provides structured JSON logging and an audit logger for envelope and
API events. Nothing logged here may contain payload values: only event
kinds, endpoint names, status codes, key thumbprints and correlation ids.
"""

import json
import logging
import sys
import time
import uuid
from contextvars import ContextVar
from typing import Optional

# Context variable for correlation id tracking (the x-fapi-uuid of a call)
correlation_id_var: ContextVar[str] = ContextVar('correlation_id', default='')


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs one JSON object per line for log aggregation systems.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": time.strftime('%Y-%m-%dT%H:%M:%SZ', time.gmtime(record.created)),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        correlation_id = correlation_id_var.get()
        if correlation_id:
            log_data["correlation_id"] = correlation_id

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, 'extra_fields'):
            log_data.update(record.extra_fields)

        return json.dumps(log_data)


class AuditLogger:
    """
    Specialized logger for envelope and bank API audit events.
    """

    def __init__(self, name: str = "axispay.audit"):
        self._logger = logging.getLogger(name)

    def _log(self, level: int, event_type: str, **kwargs) -> None:
        """Internal logging method with extra fields."""
        if not self._logger.isEnabledFor(level):
            return
        extra = {
            "event_type": event_type,
            "correlation_id": kwargs.pop("correlation_id", None) or correlation_id_var.get(),
            **kwargs
        }

        record = self._logger.makeRecord(
            self._logger.name,
            level,
            "",
            0,
            f"{event_type}: {kwargs.get('message', '')}",
            (),
            None
        )
        record.extra_fields = extra
        self._logger.handle(record)

    def key_material_loaded(self, key_id: str, counterparty_key_id: str) -> None:
        """Log a successful key material load."""
        self._log(
            logging.INFO,
            "KEY_MATERIAL_LOADED",
            key_id=key_id,
            counterparty_key_id=counterparty_key_id,
            message="Key material loaded"
        )

    def api_request(self, endpoint: str, correlation_id: Optional[str] = None) -> None:
        """Log an outbound bank API request."""
        self._log(
            logging.INFO,
            "API_REQUEST",
            endpoint=endpoint,
            correlation_id=correlation_id,
            message=f"Request sent to {endpoint}"
        )

    def api_response(
        self,
        endpoint: str,
        status_code: int,
        correlation_id: Optional[str] = None
    ) -> None:
        """Log a bank API response that opened cleanly."""
        self._log(
            logging.INFO,
            "API_RESPONSE",
            endpoint=endpoint,
            status_code=status_code,
            correlation_id=correlation_id,
            message=f"Response {status_code} from {endpoint}"
        )

    def envelope_rejected(self, kind: str, correlation_id: Optional[str] = None) -> None:
        """Log an inbound envelope that failed verification or decryption."""
        self._log(
            logging.ERROR,
            "ENVELOPE_REJECTED",
            error_kind=kind,
            correlation_id=correlation_id,
            message=f"Envelope rejected: {kind}"
        )

    def checksum_mismatch(self, endpoint: str, correlation_id: Optional[str] = None) -> None:
        """Log a response whose checksum did not verify."""
        self._log(
            logging.ERROR,
            "CHECKSUM_MISMATCH",
            endpoint=endpoint,
            correlation_id=correlation_id,
            message=f"Untrusted payload from {endpoint}"
        )

    def security_event(
        self,
        event: str,
        severity: str = "medium",
        **details
    ) -> None:
        """Log a security-relevant event."""
        level = {
            "low": logging.INFO,
            "medium": logging.WARNING,
            "high": logging.ERROR,
            "critical": logging.CRITICAL
        }.get(severity, logging.WARNING)

        self._log(
            level,
            "SECURITY_EVENT",
            security_event=event,
            severity=severity,
            **details,
            message=f"Security event: {event}"
        )


def configure_logging(
    level: str = "INFO",
    json_format: bool = True,
    log_file: Optional[str] = None
) -> None:
    """
    Configure logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON formatting (recommended for production)
        log_file: Optional file path for log output
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if json_format:
        formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


def set_correlation_id(correlation_id: Optional[str] = None) -> str:
    """
    Set the correlation id for the current context.

    Args:
        correlation_id: Id to set, or None to generate one

    Returns:
        The correlation id that was set
    """
    if correlation_id is None:
        correlation_id = str(uuid.uuid4())
    correlation_id_var.set(correlation_id)
    return correlation_id


def get_correlation_id() -> str:
    """Get the current correlation id."""
    return correlation_id_var.get()


# Global audit logger instance
audit_log = AuditLogger()
