"""
structlog + stdlib logging setup.

Call :func:`configure_logging` once, before Django creates any logger.
Console rendering is used in development; set ``JSON_LOGS=1`` to emit one
JSON object per line.
"""
from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Optional

import structlog
from dotenv import load_dotenv

_configured = False


def _json_logs_enabled() -> bool:
    # Entry points configure logging before settings.py has read .env.
    load_dotenv(dotenv_path=Path(__file__).resolve().parent.parent / ".env")
    return os.getenv("JSON_LOGS", "0").lower() in {"1", "true", "yes"}


def configure_logging(level: str = "INFO", json_logs: Optional[bool] = None) -> None:
    global _configured
    if _configured:
        return
    if json_logs is None:
        json_logs = _json_logs_enabled()

    pre_chain = [
        structlog.contextvars.merge_contextvars,  # request_id, user_id, clinic_id
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    final_processor = (
        structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=[
            *pre_chain,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level.upper())),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=final_processor,
        foreign_pre_chain=pre_chain,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level.upper())

    logging.captureWarnings(True)
    _configured = True
