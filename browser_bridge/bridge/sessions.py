"""Session registry - tracks live browser and page handles."""

import itertools
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from browser_bridge.bridge.views import BrowserNotFoundError, PageNotFoundError

if TYPE_CHECKING:
	from playwright.async_api import Browser, BrowserContext, BrowserType, Page

logger = logging.getLogger(__name__)


@dataclass
class BrowserEntry:
	"""A launched or attached browser."""

	browser_id: str
	browser: 'Browser'
	connected: bool = False


@dataclass
class PageEntry:
	"""A page and the isolated context that owns it."""

	page_id: str
	page: 'Page'
	context: 'BrowserContext'
	browser_id: str


class SessionRegistry:
	"""Registry of live browsers and pages, keyed by opaque handles.

	Handles look like ``browser_<n>`` and ``page_<n>`` and share a single counter,
	so no two handles are ever equal for the lifetime of the registry.

	The registry is not locked. It relies on the server dispatching one request
	at a time; concurrent dispatch would need a lock around every mutation.
	"""

	def __init__(self, browser_type: 'BrowserType') -> None:
		self.browser_type = browser_type
		self.browsers: dict[str, BrowserEntry] = {}
		self.pages: dict[str, PageEntry] = {}
		self._counter = itertools.count(1)

	def _next_handle(self, kind: str) -> str:
		return f'{kind}_{next(self._counter)}'

	def add_browser(self, browser: 'Browser', connected: bool = False) -> str:
		browser_id = self._next_handle('browser')
		self.browsers[browser_id] = BrowserEntry(browser_id=browser_id, browser=browser, connected=connected)
		logger.info(f'Registered {browser_id} ({"connected" if connected else "launched"})')
		return browser_id

	def add_page(self, page: 'Page', context: 'BrowserContext', browser_id: str) -> str:
		page_id = self._next_handle('page')
		self.pages[page_id] = PageEntry(page_id=page_id, page=page, context=context, browser_id=browser_id)
		logger.info(f'Registered {page_id} on {browser_id}')
		return page_id

	def get_browser(self, browser_id: str) -> BrowserEntry:
		entry = self.browsers.get(browser_id)
		if entry is None:
			raise BrowserNotFoundError(browser_id)
		return entry

	def get_page(self, page_id: str) -> PageEntry:
		entry = self.pages.get(page_id)
		if entry is None:
			raise PageNotFoundError(page_id)
		return entry

	def pop_browser(self, browser_id: str) -> BrowserEntry | None:
		return self.browsers.pop(browser_id, None)

	def pop_page(self, page_id: str) -> PageEntry | None:
		return self.pages.pop(page_id, None)

	def list_sessions(self) -> dict[str, Any]:
		"""Live handles, grouped by browser. Logged on shutdown."""
		return {
			browser_id: {
				'connected': entry.connected,
				'pages': [p.page_id for p in self.pages.values() if p.browser_id == browser_id],
			}
			for browser_id, entry in self.browsers.items()
		}

	async def close_all(self) -> None:
		"""Close every registered browser, ignoring individual failures."""
		for browser_id in list(self.browsers.keys()):
			entry = self.browsers.pop(browser_id)
			# closing an attached browser only disconnects; the external process keeps running
			logger.info(f'{"Disconnecting from" if entry.connected else "Closing"} {browser_id}')
			try:
				await entry.browser.close()
			except Exception as e:
				logger.warning(f'Error closing {browser_id}: {e}')
