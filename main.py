"""
Entrypoint: load config, init logging, parse the URL from argv and poll it,
rendering every response as text.
"""

import logging
import sys
import time

import structlog

from browser.config import config
from browser.engine import RequestEngine
from browser.errors import BrowserError, FormatError
from render.text import show

EXIT_PARSE_ERROR = 1
EXIT_REQUEST_ERROR = 2

logger = structlog.get_logger(__name__)


def setup_logging(log_config: dict = None):
    """Configure stdlib logging and structlog; logs go to stderr so pages on stdout stay clean."""
    log_config = log_config if log_config is not None else config.logging
    level = getattr(logging, str(log_config.get('level', 'INFO')).upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=level,
    )

    if log_config.get('format', 'json') == 'console':
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def run(url: str, engine: RequestEngine, poll_count: int, poll_interval: float, stream=None) -> int:
    """Poll ``url`` ``poll_count`` times and return the process exit code."""
    try:
        request = engine.parse(url)
    except FormatError as e:
        logger.error("url_parse_failed", url=url, error=str(e))
        return EXIT_PARSE_ERROR

    try:
        for attempt in range(poll_count):
            if attempt:
                time.sleep(poll_interval)
            try:
                response = engine.send(request)
            except BrowserError as e:
                logger.error("request_failed", url=url, error=str(e), error_type=type(e).__name__)
                return EXIT_REQUEST_ERROR
            show(response, stream)
    finally:
        engine.close(request)

    return 0


def main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    setup_logging()

    cli_config = config.cli
    url = argv[0] if argv else cli_config.get('default_url', 'file://test.html')

    engine = RequestEngine.from_config(config)
    logger.info("starting_browser", url=url, user_agent=engine.user_agent)
    return run(
        url,
        engine,
        poll_count=int(cli_config.get('poll_count', 10)),
        poll_interval=float(cli_config.get('poll_interval', 1.0)),
    )


if __name__ == "__main__":
    sys.exit(main())
