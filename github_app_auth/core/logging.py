"""Structured logging via structlog.

Configures structlog once at process startup. Library modules log through
`logging.getLogger(__name__)`; the stdlib bridge below routes those records
(and httpx's) to the same stream.

Renderer selection:
  debug=True : `ConsoleRenderer` with colours for local use.
  debug=False: `JSONRenderer` for machine-parseable logs in production.

Token values and JWTs are never passed to a logger; only installation IDs
and expiry timestamps are.
"""

from __future__ import annotations

import logging
import sys

import structlog


def configure_structlog(debug: bool = False) -> None:
    """Configure structlog for the process lifetime.

    Call once from the entry point before the first token request.
    Calling multiple times is safe.
    """
    shared_processors: list = [
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if debug:
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.DEBUG if debug else logging.INFO
        ),
        context_class=dict,
        # stderr keeps stdout clean for the token the CLI prints.
        logger_factory=structlog.WriteLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    # Bridge stdlib logging so this package's module loggers and httpx
    # produce output on the same stream.
    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        level=logging.DEBUG if debug else logging.INFO,
    )
    # httpx logs every request URL at INFO; keep it at WARNING outside debug.
    logging.getLogger("httpx").setLevel(logging.DEBUG if debug else logging.WARNING)
