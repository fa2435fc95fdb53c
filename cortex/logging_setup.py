"""Process-wide logging configuration."""

import logging

from cortex.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Configure the root logger once for the embedding process.

    Library modules only ever call ``logging.getLogger(__name__)``; the host
    application decides whether to call this.
    """
    name = (level or settings.log_level).upper()
    logging.basicConfig(format=LOG_FORMAT, level=getattr(logging, name, logging.INFO))
    # The Anthropic SDK logs every request at INFO through httpx.
    logging.getLogger("httpx").setLevel(logging.WARNING)
