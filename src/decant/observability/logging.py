"""
Structured logging for extraction runs.

Log lines go to stderr (or a JSON file) so that extracted content written to
stdout is never interleaved with diagnostics.
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, Any, Dict, List

import structlog

if TYPE_CHECKING:
    from decant.config.config import MonitoringConfig


def drop_unset_document_url(logger: logging.Logger, method_name: str, event_dict: Dict[Any, Any]) -> Dict[Any, Any]:
    """Documents parsed without a URL bind ``document_url=None``; keep that out of the output."""
    if event_dict.get("document_url", "") is None:
        del event_dict["document_url"]
    return event_dict


def _build_handler(config: MonitoringConfig, shared_processors: List[Any]) -> logging.Handler:
    renderer: Any
    if config.log_file:
        renderer = structlog.processors.JSONRenderer()
        handler: logging.Handler = logging.FileHandler(config.log_file)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
        handler = logging.StreamHandler(sys.stderr)

    handler.setFormatter(structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=shared_processors))
    return handler


def configure_logging(config: MonitoringConfig) -> None:
    """Route structlog and the standard library through one handler at ``config.log_level``.

    May be called again to reconfigure; earlier handlers are replaced.
    """
    shared_processors: List[Any] = [
        structlog.contextvars.merge_contextvars,
        drop_unset_document_url,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    logging.basicConfig(
        format="%(message)s",
        level=config.log_level,
        handlers=[_build_handler(config, shared_processors)],
        force=True,
    )

    structlog.configure(
        processors=shared_processors
        + [
            structlog.stdlib.filter_by_level,
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
