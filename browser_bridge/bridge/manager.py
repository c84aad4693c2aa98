"""High-level browser manager on top of BridgeClient.

The manager owns one bridge process and one default browser, started lazily on
first use, and hands out its own page ids for the pages it opens.
"""

import asyncio
import itertools
import logging
from dataclasses import dataclass
from typing import Any

from browser_bridge.bridge.client import BridgeClient
from browser_bridge.bridge.views import BridgeNotStartedError, PageNotFoundError
from browser_bridge.config import CONFIG
from browser_bridge.dom.views import DomSnapshot

logger = logging.getLogger(__name__)


@dataclass
class ManagedPage:
	"""A page opened by the manager, mapped to its bridge handle."""

	page_id: str
	bridge_page_id: str
	browser_id: str
	url: str


class BrowserManager:
	"""Lazily started bridge with a single default browser.

	Headless mode, the CDP endpoint to attach to and extra browser args default to
	BROWSER_BRIDGE_HEADLESS, BROWSER_BRIDGE_CONNECT_URL and BROWSER_BRIDGE_BROWSER_ARGS.
	The page viewport is applied by the bridge process from its own configuration.

	Usage:
		async with BrowserManager() as manager:
			page_id = await manager.new_page('https://example.com')
			print(await manager.get_page_for_llm(page_id))
	"""

	def __init__(
		self,
		client: BridgeClient | None = None,
		headless: bool | None = None,
		connect_url: str | None = None,
		browser_args: list[str] | None = None,
	) -> None:
		self.client = client or BridgeClient()
		self.headless = CONFIG.BROWSER_BRIDGE_HEADLESS if headless is None else headless
		self.connect_url = connect_url or CONFIG.BROWSER_BRIDGE_CONNECT_URL
		self.browser_args = CONFIG.BROWSER_BRIDGE_BROWSER_ARGS if browser_args is None else browser_args
		self.browser_id: str | None = None
		self.pages: dict[str, ManagedPage] = {}
		self._page_counter = itertools.count(1)
		self._init_lock = asyncio.Lock()

	async def __aenter__(self) -> 'BrowserManager':
		await self.initialize()
		return self

	async def __aexit__(self, *exc_info: Any) -> None:
		await self.close()

	@property
	def is_initialized(self) -> bool:
		return self.browser_id is not None

	async def initialize(self) -> None:
		"""Start the bridge if needed, then launch or attach the default browser."""
		async with self._init_lock:
			if self.is_initialized:
				return

			if not self.client.is_running:
				await self.client.start()

			if self.connect_url:
				logger.info(f'Connecting to existing browser at {self.connect_url}')
				self.browser_id = await self.client.connect_browser(self.connect_url)
			else:
				logger.info(f'Launching new browser (headless={self.headless})')
				self.browser_id = await self.client.launch_browser(headless=self.headless, args=self.browser_args)
			logger.info(f'Browser manager initialized with {self.browser_id}')

	async def ensure_initialized(self) -> None:
		if not self.is_initialized:
			await self.initialize()

	async def close(self) -> None:
		"""Close every page, then the browser, then the bridge."""
		for page_id in list(self.pages):
			try:
				await self.close_page(page_id)
			except Exception as e:
				logger.warning(f'Error closing {page_id}: {e}')
				self.pages.pop(page_id, None)

		browser_id, self.browser_id = self.browser_id, None
		if browser_id is not None and self.client.is_running:
			await self.client.close_browser(browser_id)

		await self.client.stop()
		logger.info('Browser manager closed')

	# Pages

	async def new_page(self, url: str) -> str:
		"""Open a page in the default browser and navigate it to url."""
		await self.ensure_initialized()
		if self.browser_id is None:
			raise BridgeNotStartedError('Browser manager is not initialized')

		bridge_page_id = await self.client.new_page(self.browser_id)
		await self.client.navigate(bridge_page_id, url)

		page_id = f'page_{next(self._page_counter)}'
		self.pages[page_id] = ManagedPage(page_id=page_id, bridge_page_id=bridge_page_id, browser_id=self.browser_id, url=url)
		logger.debug(f'Created {page_id} ({bridge_page_id}): {url}')
		return page_id

	def _resolve(self, page_id: str) -> str:
		page = self.pages.get(page_id)
		if page is None:
			raise PageNotFoundError(page_id)
		return page.bridge_page_id

	async def close_page(self, page_id: str) -> None:
		await self.client.close_page(self._resolve(page_id))
		del self.pages[page_id]
		logger.debug(f'Closed {page_id}')

	def list_pages(self) -> list[str]:
		return list(self.pages)

	# Navigation

	async def navigate(self, page_id: str, url: str) -> None:
		await self.client.navigate(self._resolve(page_id), url)
		self.pages[page_id].url = url
		logger.debug(f'Navigated {page_id} to {url}')

	async def go_back(self, page_id: str) -> None:
		await self.client.go_back(self._resolve(page_id))

	async def go_forward(self, page_id: str) -> None:
		await self.client.go_forward(self._resolve(page_id))

	async def reload(self, page_id: str) -> None:
		await self.client.reload(self._resolve(page_id))

	async def get_url(self, page_id: str) -> str:
		return await self.client.get_url(self._resolve(page_id))

	async def get_title(self, page_id: str) -> str:
		return await self.client.get_title(self._resolve(page_id))

	# Interaction

	async def click(self, page_id: str, x: float, y: float) -> None:
		await self.client.click(self._resolve(page_id), x, y)

	async def click_selector(self, page_id: str, selector: str) -> None:
		await self.client.click_selector(self._resolve(page_id), selector)

	async def type_text(self, page_id: str, text: str) -> None:
		await self.client.type_text(self._resolve(page_id), text)

	async def fill(self, page_id: str, selector: str, value: str) -> None:
		await self.client.fill(self._resolve(page_id), selector, value)

	async def press_key(self, page_id: str, key: str) -> None:
		await self.client.press_key(self._resolve(page_id), key)

	async def scroll(self, page_id: str, x: float, y: float) -> None:
		await self.client.scroll(self._resolve(page_id), x, y)

	async def wait_for_selector(self, page_id: str, selector: str, timeout: float = 30000) -> None:
		await self.client.wait_for_selector(self._resolve(page_id), selector, timeout=timeout)

	# Content

	async def screenshot(self, page_id: str, full_page: bool = False) -> bytes:
		return await self.client.screenshot(self._resolve(page_id), full_page=full_page)

	async def get_content(self, page_id: str) -> str:
		return await self.client.get_content(self._resolve(page_id))

	async def evaluate(self, page_id: str, script: str) -> Any:
		return await self.client.evaluate(self._resolve(page_id), script)

	async def element_at(self, page_id: str, x: float, y: float) -> dict[str, Any] | None:
		return await self.client.element_at(self._resolve(page_id), x, y)

	async def get_dom_tree(self, page_id: str) -> DomSnapshot:
		return await self.client.get_dom_tree(self._resolve(page_id))

	async def get_page_for_llm(self, page_id: str) -> str:
		"""The page's interactive elements as compact text for a language model."""
		return (await self.get_dom_tree(page_id)).to_llm_string()
