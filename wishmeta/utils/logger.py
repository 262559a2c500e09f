"""
Structured logging for the wishlist metadata service.
Every event carries a trace ID so one lookup can be followed through
the resolver, vendor client and scraper.
"""
import uuid
import logging
import structlog
from contextvars import ContextVar
from typing import Any, Dict, Optional

from wishmeta.config import config

trace_id_var: ContextVar[str] = ContextVar("trace_id", default="")


def _new_trace_id() -> str:
    return uuid.uuid4().hex[:8]


def set_trace_id(trace_id: Optional[str] = None) -> str:
    """Start a trace for the current request context."""
    trace_id = trace_id or _new_trace_id()
    trace_id_var.set(trace_id)
    return trace_id


def add_trace_id(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Processor stamping the current trace ID, starting one if needed."""
    trace_id = trace_id_var.get() or set_trace_id()
    event_dict["trace_id"] = trace_id
    return event_dict


def configure_logging():
    """Configure structlog with JSON or console output."""
    processors = [
        structlog.contextvars.merge_contextvars,
        add_trace_id,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if config.LOG_FORMAT == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, config.LOG_LEVEL.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    return structlog.get_logger(name)


class LayerLogger:
    """
    Component logger shared by the resolver, vendor client, scraper
    and orchestrator so every stage logs in the same shape.
    """

    def __init__(self, layer_name: str):
        self.layer_name = layer_name
        self.logger = get_logger(layer_name).bind(layer=layer_name)

    def log_decision(self, decision: str, reason: str, url: Optional[str] = None, **extra):
        """Log a routing decision (which source to try, or to skip)."""
        self.logger.info("decision_made", decision=decision, reason=reason, url=url, **extra)

    def log_action(self, action: str, status: str = "started", **extra):
        self.logger.info(f"action_{status}", action=action, **extra)

    def log_fallback(self, from_source: str, to_source: str, reason: str, **extra):
        """Log a switch from one metadata source to another."""
        self.logger.warning(
            "fallback_triggered",
            from_source=from_source,
            to_source=to_source,
            reason=reason,
            **extra
        )

    def log_error(self, error: str, error_type: str = "unknown", **extra):
        self.logger.error("error_occurred", error=error, error_type=error_type, **extra)

    def log_http_request(
        self,
        url: str,
        method: str,
        status_code: Optional[int],
        result: str,
        **extra
    ):
        """Log the outcome of an outbound HTTP call."""
        self.logger.info(
            "http_request",
            url=url,
            method=method,
            status_code=status_code,
            result=result,
            **extra
        )

    def log_extraction(self, source: str, fields_present: list, fields_missing: list, **extra):
        """Log which metadata fields a source produced."""
        self.logger.info(
            "metadata_extracted",
            source=source,
            fields_present=fields_present,
            fields_missing=fields_missing,
            **extra
        )


configure_logging()
