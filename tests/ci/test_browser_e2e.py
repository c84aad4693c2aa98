"""End-to-end tests against a real headless Chromium.

Skipped when Playwright's Chromium is not installed.
"""

import base64

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from browser_bridge.bridge.protocol import Request
from browser_bridge.bridge.server import BridgeServer
from browser_bridge.bridge.sessions import SessionRegistry
from browser_bridge.dom.views import DomSnapshot

TEST_HTML = """<!DOCTYPE html>
<html>
<head><title>Bridge Test</title></head>
<body>
	<button id="go" style="cursor: pointer" onclick="document.title = 'clicked'">Go</button>
	<a href="#" style="display: none">Hidden</a>
	<input id="q" type="text" placeholder="Search">
</body>
</html>"""


@pytest.fixture
async def real_server():
	async with async_playwright() as playwright:
		try:
			browser = await playwright.chromium.launch(headless=True)
		except PlaywrightError as e:
			pytest.skip(f'Chromium is not available: {e}')
		await browser.close()

		server = BridgeServer(SessionRegistry(playwright.chromium))
		yield server
		await server.shutdown()


async def call(server, method, **params):
	response = await server.dispatch(Request(id=1, method=method, params=params))
	assert response is not None
	assert response.success, response.error
	return response.result


@pytest.fixture
async def loaded_page(real_server, httpserver):
	httpserver.expect_request('/test').respond_with_data(TEST_HTML, content_type='text/html')
	browser_id = await call(real_server, 'launchBrowser')
	page_id = await call(real_server, 'newPage', browserId=browser_id)
	await call(real_server, 'navigate', pageId=page_id, url=httpserver.url_for('/test'))
	return page_id


async def test_navigate_then_get_url(real_server, loaded_page, httpserver):
	assert await call(real_server, 'getUrl', pageId=loaded_page) == httpserver.url_for('/test')
	assert await call(real_server, 'getTitle', pageId=loaded_page) == 'Bridge Test'


async def test_dom_tree_reports_only_visible_elements(real_server, loaded_page):
	snapshot = DomSnapshot.model_validate(await call(real_server, 'getDomTree', pageId=loaded_page))

	tags = sorted(node.tag_name for node in snapshot.nodes.values())
	assert tags == ['button', 'input']

	button = next(n for n in snapshot.nodes.values() if n.tag_name == 'button')
	assert button.clickability_score >= 0.45
	assert 'native_tag:button' in button.clickability_reasons
	assert 'cursor_pointer' in button.clickability_reasons
	assert button.is_interactive
	assert button.css_selector == '#go'
	assert button.text_content == 'Go'
	assert snapshot.title == 'Bridge Test'
	assert snapshot.viewport.width == 1280


async def test_click_selector_runs_the_handler(real_server, loaded_page):
	await call(real_server, 'clickSelector', pageId=loaded_page, selector='#go')

	assert await call(real_server, 'getTitle', pageId=loaded_page) == 'clicked'


async def test_fill_and_evaluate(real_server, loaded_page):
	await call(real_server, 'fill', pageId=loaded_page, selector='#q', value='python')

	assert await call(real_server, 'evaluate', pageId=loaded_page, script="document.querySelector('#q').value") == 'python'


async def test_element_at_finds_the_button(real_server, loaded_page):
	snapshot = DomSnapshot.model_validate(await call(real_server, 'getDomTree', pageId=loaded_page))
	button = next(n for n in snapshot.nodes.values() if n.tag_name == 'button')
	x, y = button.bounding_box.center()

	hit = await call(real_server, 'elementAt', pageId=loaded_page, x=x, y=y)

	assert hit['tagName'] == 'button'
	assert hit['id'] == 'go'
	assert snapshot.element_at(x, y).id == button.id


async def test_screenshot_is_a_png(real_server, loaded_page):
	data = base64.b64decode(await call(real_server, 'screenshot', pageId=loaded_page))

	assert data.startswith(b'\x89PNG')


async def test_single_button_page(real_server, httpserver):
	html = '<html><body><button style="cursor: pointer">Go</button><a href="#" style="display: none">x</a></body></html>'
	httpserver.expect_request('/button').respond_with_data(html, content_type='text/html')
	browser_id = await call(real_server, 'launchBrowser')
	page_id = await call(real_server, 'newPage', browserId=browser_id)
	await call(real_server, 'navigate', pageId=page_id, url=httpserver.url_for('/button'))

	snapshot = DomSnapshot.model_validate(await call(real_server, 'getDomTree', pageId=page_id))

	assert len(snapshot.nodes) == 1
	node = snapshot.nodes['node_0']
	assert node.tag_name == 'button'
	assert node.clickability_score >= 0.45
	assert 'native_tag:button' in node.clickability_reasons
	assert snapshot.roots == ['node_0']
	assert node.xpath == '/html/body/button'


async def test_shutdown_closes_every_browser(real_server):
	await call(real_server, 'launchBrowser')
	await call(real_server, 'launchBrowser')
	browsers = [entry.browser for entry in real_server.registry.browsers.values()]

	assert await real_server.dispatch(Request(id=9, method='shutdown')) is None

	assert real_server.registry.browsers == {}
	assert not any(browser.is_connected() for browser in browsers)
