"""Structured logging for the booking service.

JSON events on stdout through structlog's stdlib integration. Request-scoped
values (request id, acting user) live in contextvars and are merged into
every event logged while a request is handled. Credential fields are masked
before rendering.
"""
import logging
import sys
import uuid
from typing import Optional

import structlog

from medichannel import config

REDACTED = "[redacted]"
SENSITIVE_KEYS = frozenset({"password", "password_hash", "confirm_password", "apikey", "api_key"})


def redact_credentials(_, __, event_dict):
    """Mask credential fields wherever a caller passes them by mistake."""
    for key in SENSITIVE_KEYS.intersection(event_dict):
        event_dict[key] = REDACTED
    return event_dict


def add_service_name(_, __, event_dict):
    event_dict.setdefault("service", config.APP_NAME)
    return event_dict


def setup_structured_logging(log_level: str = "INFO"):
    """
    Route structlog events through stdlib logging as JSON lines.

    Args:
        log_level: DEBUG, INFO, WARNING or ERROR
    """
    level = getattr(logging, log_level.upper())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            add_service_name,
            redact_credentials,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    logging.getLogger().setLevel(level)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Module logger; call as ``get_logger(__name__)``."""
    return structlog.get_logger(name)


def generate_request_id() -> str:
    """New request id: ``req-`` followed by 12 hex characters."""
    return f"req-{uuid.uuid4().hex[:12]}"


def bind_request_context(request_id: str, user_id: Optional[str] = None):
    """Replace the request-scoped log context."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id)
    if user_id:
        structlog.contextvars.bind_contextvars(user_id=user_id)


def clear_request_context():
    structlog.contextvars.clear_contextvars()


class RequestIDMiddleware:
    """WSGI middleware tagging every request and response with an id.

    An incoming X-Request-ID header is kept so one id follows a call across
    services; otherwise a fresh one is generated.
    """

    def __init__(self, wsgi_app):
        self.wsgi_app = wsgi_app

    def __call__(self, environ, start_response):
        request_id = environ.get("HTTP_X_REQUEST_ID") or generate_request_id()
        environ["REQUEST_ID"] = request_id

        def start_response_with_id(status, headers, exc_info=None):
            headers.append(("X-Request-ID", request_id))
            return start_response(status, headers, exc_info)

        return self.wsgi_app(environ, start_response_with_id)
