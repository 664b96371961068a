"""Logging utilities."""

import logging
import sys


def setup_logging(level: str = "INFO"):
    """Setup logging configuration."""
    log_level = getattr(logging, level.upper(), logging.INFO)
    
    # Configure root logger
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        handlers=[
            logging.StreamHandler(sys.stdout)
        ],
        force=True,
    )
    
    # Reduce noise from third-party libraries
    for name in ("asyncio", "docker", "urllib3", "watchfiles", "aiohttp.access"):
        logging.getLogger(name).setLevel(logging.WARNING)
