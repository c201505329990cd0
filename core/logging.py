"""
Unified Logging Configuration

All modules log through children of the "mtgox" logger instead of using
print() statements.

Importing this package never touches the host application's logging: the
"mtgox" logger only gets a NullHandler. Applications that want the client's
output on the console call setup_logging() once.

Usage:
    from core.logging import setup_logging

    setup_logging("DEBUG")  # optional, opt-in
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

logger = logging.getLogger("mtgox")
if not any(isinstance(h, logging.NullHandler) for h in logger.handlers):
    logger.addHandler(logging.NullHandler())


def setup_logging(log_level: str = "INFO") -> logging.Logger:
    """
    Send the client's log records to stdout.

    Only the "mtgox" logger is configured; the root logger and any handlers
    the application installed are left alone. Calling it again just updates
    the level.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        logging.Logger: The "mtgox" logger

    Example:
        >>> logger = setup_logging(log_level="DEBUG")
        >>> logger.info("Client started")
        2024-01-01 12:00:00 [INFO] mtgox Client started
    """
    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    if any(isinstance(h, logging.StreamHandler) for h in logger.handlers):
        return logger

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    logger.addHandler(handler)
    # Records are already printed here
    logger.propagate = False

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a specific module or component.

    Args:
        name: Name for the logger (typically __name__)

    Example:
        from core.logging import get_logger
        logger = get_logger(__name__)  # Creates "mtgox.exchanges.mtgox.api_client"
    """
    return logging.getLogger(f"mtgox.{name}")


# ============================================
# Log Helper Functions
# ============================================

def log_api_request(exchange: str, endpoint: str, params: dict = None) -> None:
    """
    Log an API request with consistent formatting.

    Credential fields are masked before logging.

    Example:
        >>> log_api_request("mtgox", "/code/getFunds.php", {"name": "alice", "pass": "secret"})
        [DEBUG] API Request: mtgox /code/getFunds.php | Params: {'name': 'alice', 'pass': '***'}
    """
    if params:
        shown = {k: ("***" if k == "pass" else v) for k, v in params.items()}
        logger.debug(f"API Request: {exchange} {endpoint} | Params: {shown}")
    else:
        logger.debug(f"API Request: {exchange} {endpoint}")


def log_api_response(exchange: str, endpoint: str, status: int, response_time: float = None) -> None:
    """
    Log an API response with status and timing information.

    Example:
        >>> log_api_response("mtgox", "/api/1/BTCUSD/public/ticker", 200, 0.342)
        [DEBUG] API Response: mtgox /api/1/BTCUSD/public/ticker | Status: 200 | Time: 0.342s
    """
    time_str = f" | Time: {response_time:.3f}s" if response_time else ""
    logger.debug(f"API Response: {exchange} {endpoint} | Status: {status}{time_str}")
