"""Page action and inspection commands."""

import base64
import logging
from typing import Any

from browser_bridge.bridge.sessions import SessionRegistry
from browser_bridge.bridge.views import (
	EvaluateParams,
	FillParams,
	NavigateParams,
	PageParams,
	PointParams,
	PressKeyParams,
	ScreenshotParams,
	ScrollParams,
	SelectorParams,
	TypeTextParams,
	WaitForSelectorParams,
)

logger = logging.getLogger(__name__)

ACTIONS = {
	'navigate',
	'click',
	'clickSelector',
	'typeText',
	'fill',
	'pressKey',
	'scroll',
	'goBack',
	'goForward',
	'reload',
	'waitForSelector',
}

INSPECTIONS = {
	'screenshot',
	'getContent',
	'getUrl',
	'getTitle',
	'evaluate',
	'elementAt',
}

COMMANDS = ACTIONS | INSPECTIONS

SCROLL_BY_JS = '([x, y]) => { window.scrollBy(x, y); }'

ELEMENT_AT_JS = """([x, y]) => {
	const el = document.elementFromPoint(x, y);
	if (!el) return null;
	const className = typeof el.className === 'string' ? el.className : el.getAttribute('class');
	return {
		tagName: el.tagName.toLowerCase(),
		id: el.id || null,
		className: className || null,
		textContent: el.textContent ? el.textContent.substring(0, 100) : null,
	};
}"""


async def handle(method: str, registry: SessionRegistry, params: dict[str, Any]) -> Any:
	"""Handle a page command.

	The page handle is resolved before anything else, so an unknown handle always
	fails with "Page not found" regardless of the other params. Actions return
	None; inspections return their value.
	"""
	page_id = PageParams.model_validate(params).page_id
	page = registry.get_page(page_id).page

	# Actions

	if method == 'navigate':
		p = NavigateParams.model_validate(params)
		logger.debug(f'{page_id}: navigate {p.url} (waitUntil={p.wait_until})')
		await page.goto(p.url, wait_until=p.wait_until, timeout=p.timeout)
		return None

	elif method == 'click':
		p = PointParams.model_validate(params)
		await page.mouse.click(p.x, p.y)
		return None

	elif method == 'clickSelector':
		p = SelectorParams.model_validate(params)
		await page.click(p.selector)
		return None

	elif method == 'typeText':
		p = TypeTextParams.model_validate(params)
		await page.keyboard.type(p.text, delay=p.delay)
		return None

	elif method == 'fill':
		p = FillParams.model_validate(params)
		await page.fill(p.selector, p.value)
		return None

	elif method == 'pressKey':
		p = PressKeyParams.model_validate(params)
		await page.keyboard.press(p.key)
		return None

	elif method == 'scroll':
		p = ScrollParams.model_validate(params)
		# scrolled from inside the page, not through synthetic wheel events
		await page.evaluate(SCROLL_BY_JS, [p.x, p.y])
		return None

	elif method == 'goBack':
		await page.go_back()
		return None

	elif method == 'goForward':
		await page.go_forward()
		return None

	elif method == 'reload':
		await page.reload()
		return None

	elif method == 'waitForSelector':
		p = WaitForSelectorParams.model_validate(params)
		await page.wait_for_selector(p.selector, timeout=p.timeout)
		return None

	# Inspections

	elif method == 'screenshot':
		options = ScreenshotParams.model_validate(params).options
		kwargs: dict[str, Any] = {'type': options.type, 'full_page': options.full_page}
		if options.quality is not None:
			kwargs['quality'] = options.quality
		if options.clip is not None:
			kwargs['clip'] = options.clip.model_dump()
		data = await page.screenshot(**kwargs)
		return base64.b64encode(data).decode()

	elif method == 'getContent':
		return await page.content()

	elif method == 'getUrl':
		return page.url

	elif method == 'getTitle':
		return await page.title()

	elif method == 'evaluate':
		p = EvaluateParams.model_validate(params)
		return await page.evaluate(p.script)

	elif method == 'elementAt':
		p = PointParams.model_validate(params)
		return await page.evaluate(ELEMENT_AT_JS, [p.x, p.y])

	raise ValueError(f'Unknown page method: {method}')
