"""Logging configuration.

Standard library logging carries the output; structlog builds the events.
Modules obtain loggers with ``structlog.get_logger(__name__)`` and log
key-value events.
"""

import logging
import sys
import uuid

import structlog
from flask import request


def setup_stdlib_logging(level):
    """Configure the root logger unless something already did."""
    logging.basicConfig(format='%(message)s', stream=sys.stdout, level=level)
    logging.getLogger('storefront').setLevel(level)
    logging.getLogger('stripe').setLevel(logging.WARNING)
    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)


def setup_structlog(json_output):
    """Configure structlog for structured logging."""
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt='iso'),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging(app):
    """Configure all logging for the application and bind per-request context."""
    setup_stdlib_logging(app.config.get('LOG_LEVEL', 'INFO'))
    setup_structlog(app.config.get('LOG_JSON', False))

    @app.before_request
    def bind_request_context():
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request.headers.get('X-Request-Id') or uuid.uuid4().hex[:12],
            method=request.method,
            path=request.path,
        )

    @app.teardown_request
    def clear_request_context(exc):
        structlog.contextvars.clear_contextvars()
