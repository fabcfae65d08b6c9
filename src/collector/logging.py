"""Structured logging configuration using structlog."""

import logging
import sys

import structlog


def configure_logging(debug: bool = False) -> None:
    """Configure structlog for JSON output.

    Request-scoped values bound with ``structlog.contextvars`` (request id,
    owner id) are merged into every event.

    Args:
        debug: Enable debug-level logging when True.
    """
    level = logging.DEBUG if debug else logging.INFO

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.format_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        level=level,
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    for name in ["uvicorn", "uvicorn.error", "uvicorn.access"]:
        logging.getLogger(name).handlers = []
        logging.getLogger(name).propagate = True


def bind_request_context(request_id: str, owner_id: str | None = None) -> None:
    """Attach request-scoped identifiers to every log event in this context.

    Args:
        request_id: Identifier echoed back in the X-Request-ID header.
        owner_id: Collection owner the request is scoped to, if known.
    """
    structlog.contextvars.clear_contextvars()
    context: dict[str, str] = {"request_id": request_id}
    if owner_id:
        context["owner_id"] = owner_id
    structlog.contextvars.bind_contextvars(**context)


def clear_request_context() -> None:
    """Drop request-scoped identifiers once the response is sent."""
    structlog.contextvars.clear_contextvars()
