"""Browser and page lifecycle commands."""

import logging
from typing import Any

from browser_bridge.bridge.sessions import SessionRegistry
from browser_bridge.bridge.views import BrowserParams, ConnectBrowserParams, LaunchBrowserParams, PageParams
from browser_bridge.config import CONFIG

logger = logging.getLogger(__name__)

COMMANDS = {
	'launchBrowser',
	'connectBrowser',
	'closeBrowser',
	'newPage',
	'closePage',
}

BASELINE_ARGS = [
	'--disable-blink-features=AutomationControlled',
	'--disable-gpu',
	'--no-sandbox',
]


async def handle(method: str, registry: SessionRegistry, params: dict[str, Any]) -> Any:
	"""Handle a lifecycle command.

	Close commands on unknown handles succeed without doing anything, so a driver
	racing a timeout against a close never fails on the close itself.
	"""
	if method == 'launchBrowser':
		p = LaunchBrowserParams.model_validate(params)
		browser = await registry.browser_type.launch(headless=p.headless, args=[*BASELINE_ARGS, *p.args])
		return registry.add_browser(browser)

	elif method == 'connectBrowser':
		p = ConnectBrowserParams.model_validate(params)
		logger.info(f'Connecting to browser at {p.endpoint}')
		browser = await registry.browser_type.connect_over_cdp(p.endpoint)
		return registry.add_browser(browser, connected=True)

	elif method == 'closeBrowser':
		p = BrowserParams.model_validate(params)
		entry = registry.browsers.get(p.browser_id)
		if entry is None:
			logger.debug(f'closeBrowser: {p.browser_id} already gone')
			return None
		await entry.browser.close()
		registry.pop_browser(p.browser_id)
		return None

	elif method == 'newPage':
		p = BrowserParams.model_validate(params)
		entry = registry.get_browser(p.browser_id)
		# one isolated context per page: no shared cookies or storage
		context = await entry.browser.new_context(viewport=CONFIG.default_viewport)
		page = await context.new_page()
		return registry.add_page(page, context, p.browser_id)

	elif method == 'closePage':
		p = PageParams.model_validate(params)
		page_entry = registry.pages.get(p.page_id)
		if page_entry is None:
			logger.debug(f'closePage: {p.page_id} already gone')
			return None
		await page_entry.page.close()
		await page_entry.context.close()
		registry.pop_page(p.page_id)
		return None

	raise ValueError(f'Unknown lifecycle method: {method}')
