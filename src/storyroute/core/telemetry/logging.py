from __future__ import annotations

import logging

import structlog


def _service_stamp(service: str):
    def _processor(_logger, _method, event_dict):
        event_dict.setdefault("service", service)
        return event_dict

    return _processor


def configure_logging(log_level: str = "INFO", json_logs: bool = True, *, service: str = "storyroute") -> None:
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        _service_stamp(service),
    ]
    if json_logs:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, log_level.upper(), logging.INFO)),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str):
    """Return a bound logger tagged with ``logger=name``; configures defaults on first use."""
    if not structlog.is_configured():
        configure_logging()
    return structlog.get_logger(name).bind(logger=name)
