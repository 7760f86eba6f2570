"""
Logging Configuration

structlog on top of the standard logging module. Application loggers
and third-party loggers (uvicorn, sqlalchemy, httpx) share one handler,
so every line carries the correlation id and passes the same redaction.
Development renders to the console; every other environment emits one
JSON object per line.

PRIVACY: SMS bodies and credentials are replaced with [REDACTED].
Phone numbers keep only their last four digits, both in structured
fields and inside the event text.
"""

import logging
import re
import sys
from typing import Any

import structlog

from crisisline import __version__
from crisisline.config.settings import Settings

REDACTED = "[REDACTED]"

# Substrings of field names whose values are never logged
SECRET_KEY_FRAGMENTS: tuple[str, ...] = (
    "password",
    "token",
    "secret",
    "api_key",
    "access_key",
    "authorization",
    "credential",
    "dsn",
    "body",
)

# Field names that carry SMS addresses
ADDRESS_KEYS: frozenset[str] = frozenset({
    "address",
    "to",
    "from",
    "to_address",
    "from_address",
    "phone_number",
    "counterparty",
    "reply_address",
    "responder_address",
})

_PHONE_RE = re.compile(r"\+?\d[\d\s\-()]{6,}\d")

# Loggers that are chatty at INFO
_QUIET_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "sqlalchemy.engine")


def mask_address(value: str) -> str:
    """Mask an SMS address, keeping the last four digits."""
    digits = re.sub(r"\D", "", value)
    if len(digits) <= 4:
        return "***"
    return f"***{digits[-4:]}"


def _redact_value(key: str, value: Any) -> Any:
    lowered = key.lower()
    if any(fragment in lowered for fragment in SECRET_KEY_FRAGMENTS):
        return REDACTED
    if isinstance(value, str):
        return mask_address(value) if lowered in ADDRESS_KEYS else value
    if isinstance(value, dict):
        return {k: _redact_value(str(k), v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_redact_value(key, item) for item in value]
    return value


def _redact_sensitive_data(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """structlog processor: drop secrets and bodies, mask addresses."""
    return {key: _redact_value(key, value) for key, value in event_dict.items()}


def _mask_inline_numbers(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    event = event_dict.get("event")
    if isinstance(event, str):
        event_dict["event"] = _PHONE_RE.sub(lambda m: mask_address(m.group(0)), event)
    return event_dict


def _add_service_context(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    event_dict.setdefault("service", "crisisline")
    event_dict.setdefault("version", __version__)
    return event_dict


def _shared_processors() -> list[Any]:
    """Processors applied to structlog and foreign stdlib records alike."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        _redact_sensitive_data,
        _mask_inline_numbers,
        _add_service_context,
    ]


def _render_processors(is_development: bool) -> list[Any]:
    if is_development:
        return [structlog.dev.ConsoleRenderer(colors=True)]
    return [
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ]


def configure_logging(settings: Settings) -> None:
    """
    Configure structlog and route stdlib logging through it.

    Call once at application startup; calling again replaces the
    root handler instead of adding a second one.
    """
    shared = _shared_processors()

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            *_render_processors(settings.env == "development"),
        ],
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(settings.log_level.upper())

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def bind_correlation_id(correlation_id: str) -> None:
    """Attach the request's correlation id to every log line in this context."""
    structlog.contextvars.bind_contextvars(correlation_id=correlation_id)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
