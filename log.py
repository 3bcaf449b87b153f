"""Logger setup shared by the ranking modules and command-line scripts."""

import logging

from rich.console import Console
from rich.logging import RichHandler

import config

console = Console()

ROOT_LOGGER = "owgrank"


def setup_logger(level: str | int = config.LOG_LEVEL) -> logging.Logger:
	logger = logging.getLogger(ROOT_LOGGER)
	logger.setLevel(level)

	# Avoid duplicate handlers if setup is called multiple times
	logger.handlers.clear()
	logger.propagate = False

	handler = RichHandler(console=console, show_path=False, rich_tracebacks=True)
	handler.setFormatter(logging.Formatter("%(name)s | %(message)s"))
	logger.addHandler(handler)
	return logger


def get_logger(name: str) -> logging.Logger:
	return logging.getLogger(f"{ROOT_LOGGER}.{name}")
