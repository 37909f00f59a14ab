from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Install one stdout handler on the root logger. Call once per process."""
    resolved = getattr(logging, (level or "INFO").upper(), logging.INFO)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    logging.basicConfig(level=resolved, handlers=[handler], force=True)
    # googleapiclient logs every discovery cache miss at WARNING.
    logging.getLogger("googleapiclient.discovery_cache").setLevel(logging.ERROR)
