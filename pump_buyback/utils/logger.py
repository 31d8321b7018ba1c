# pump_buyback/utils/logger.py

import logging
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
EXPLORER_TX_URL = "https://solscan.io/tx/{}"

_configured = False


def setup_logging(debug: bool = False, log_file: Optional[str] = None) -> None:
    """Configures the root logger once. Later calls only adjust the level."""
    global _configured
    level = logging.DEBUG if debug else logging.INFO
    root = logging.getLogger()
    if _configured:
        root.setLevel(level)
        return

    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=LOG_DATE_FORMAT, handlers=handlers)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    _configured = True


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def log_tx(logger: logging.Logger, label: str, signature: Optional[str]) -> None:
    """Logs a transaction signature together with its explorer link."""
    if signature:
        logger.info(f"{label}: {signature}\n    {EXPLORER_TX_URL.format(signature)}")
    else:
        logger.info(label)


def log_separator(logger: logging.Logger) -> None:
    logger.info("=" * 60)
