"""Configuration for the browser bridge, read from the environment."""

import os

from dotenv import load_dotenv

load_dotenv()


class Config:
	"""Lazily evaluated configuration.

	Every attribute re-reads its environment variable on access, so changes made
	after import (tests, embedding processes) are picked up.
	"""

	@property
	def BROWSER_BRIDGE_LOG_LEVEL(self) -> str:
		return os.getenv('BROWSER_BRIDGE_LOG_LEVEL', 'info').lower()

	@property
	def BROWSER_BRIDGE_VIEWPORT_WIDTH(self) -> int:
		return int(os.getenv('BROWSER_BRIDGE_VIEWPORT_WIDTH', '1280'))

	@property
	def BROWSER_BRIDGE_VIEWPORT_HEIGHT(self) -> int:
		return int(os.getenv('BROWSER_BRIDGE_VIEWPORT_HEIGHT', '720'))

	@property
	def BROWSER_BRIDGE_RESPONSE_TIMEOUT_MS(self) -> int:
		return int(os.getenv('BROWSER_BRIDGE_RESPONSE_TIMEOUT_MS', '30000'))

	@property
	def BROWSER_BRIDGE_HEADLESS(self) -> bool:
		return os.getenv('BROWSER_BRIDGE_HEADLESS', 'true').lower()[:1] in 'ty1'

	@property
	def BROWSER_BRIDGE_CONNECT_URL(self) -> str | None:
		return os.getenv('BROWSER_BRIDGE_CONNECT_URL') or None

	@property
	def BROWSER_BRIDGE_BROWSER_ARGS(self) -> list[str]:
		return os.getenv('BROWSER_BRIDGE_BROWSER_ARGS', '').split()

	@property
	def default_viewport(self) -> dict[str, int]:
		return {'width': self.BROWSER_BRIDGE_VIEWPORT_WIDTH, 'height': self.BROWSER_BRIDGE_VIEWPORT_HEIGHT}


CONFIG = Config()
