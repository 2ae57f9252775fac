"""
Logging configuration for the Lakbay trip planner
"""

import logging
import os
import sys
from datetime import datetime

from .config import config


class LakbayLogger:
    """Centralized logging for the Lakbay trip planner"""

    def __init__(self, name: str = "lakbay", level: int = logging.INFO, log_dir: str = "logs"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(level)
        self.log_dir = log_dir

        # Prevent duplicate handlers
        if not self.logger.handlers:
            self._setup_handlers()

    def _setup_handlers(self):
        """Setup console and file handlers"""
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.INFO)
        console_format = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
        console_handler.setFormatter(console_format)
        self.logger.addHandler(console_handler)

        os.makedirs(self.log_dir, exist_ok=True)
        file_handler = logging.FileHandler(
            os.path.join(self.log_dir, f'lakbay_{datetime.now().strftime("%Y%m%d")}.log'))
        file_handler.setLevel(logging.DEBUG)
        file_format = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
        )
        file_handler.setFormatter(file_format)
        self.logger.addHandler(file_handler)

    def info(self, message: str):
        self.logger.info(message)

    def debug(self, message: str):
        self.logger.debug(message)

    def warning(self, message: str):
        self.logger.warning(message)

    def error(self, message: str):
        self.logger.error(message)

    def log_search_request(self, origin: tuple, destination: tuple, metric: str,
                           duration_ms: float, success: bool):
        """Log trip search metrics"""
        self.info(f"Trip search: {origin} -> {destination}, metric={metric}, "
                  f"duration={duration_ms:.2f}ms, success={success}")

    def log_api_call(self, api_name: str, duration_ms: float, success: bool):
        """Log external API call metrics"""
        self.info(f"API call: {api_name}, duration={duration_ms:.2f}ms, success={success}")


# Global logger instance
logger = LakbayLogger(level=getattr(logging, config.log_level.upper(), logging.INFO),
                      log_dir=config.log_dir)
