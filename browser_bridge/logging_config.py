import logging
import sys

from browser_bridge.config import CONFIG

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'


def setup_logging(log_level: str | None = None) -> logging.Logger:
	"""Configure the browser_bridge logger.

	Logs always go to stderr: stdout carries protocol lines only.
	Calling this more than once replaces the handler instead of stacking them.
	"""
	level_name = (log_level or CONFIG.BROWSER_BRIDGE_LOG_LEVEL).upper()
	level = getattr(logging, level_name, logging.INFO)

	logger = logging.getLogger('browser_bridge')
	for handler in list(logger.handlers):
		logger.removeHandler(handler)

	handler = logging.StreamHandler(sys.stderr)
	handler.setFormatter(logging.Formatter(LOG_FORMAT))
	logger.addHandler(handler)
	logger.setLevel(level)
	logger.propagate = False

	# asyncio reports slow callbacks at debug level
	logging.getLogger('asyncio').setLevel(logging.WARNING)

	return logger
