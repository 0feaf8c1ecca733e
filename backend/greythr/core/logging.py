import logging
import sys

import structlog


def _tag_service(name: str):
    def processor(logger, method_name, event_dict):
        event_dict.setdefault("service", name)
        return event_dict

    return processor


def configure_logging(level: str = "INFO", service: str = "greythr", json: bool = True) -> None:
    """Route structlog and stdlib logging through one pipeline on stderr.

    ``json=False`` switches to the coloured console renderer for local runs.
    """
    numeric = logging.getLevelName(level.upper())
    renderer = structlog.processors.JSONRenderer() if json else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            _tag_service(service),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric),
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
        cache_logger_on_first_use=True,
    )

    # uvicorn and sqlalchemy still log through the stdlib
    logging.basicConfig(level=numeric, format="%(levelname)s %(name)s %(message)s")
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.BoundLogger:
    return structlog.get_logger(name)


def bind_context(**values) -> None:
    structlog.contextvars.bind_contextvars(**values)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


def is_configured() -> bool:
    return structlog.is_configured()
