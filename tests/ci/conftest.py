"""In-memory stand-ins for the Playwright surface the bridge uses.

Each fake records the calls made against it so tests can assert which
primitive a command executed, without launching a real browser.
"""

import asyncio
import json
from typing import Any

import pytest
from playwright.async_api import Error as PlaywrightError

from browser_bridge.bridge.server import BridgeServer
from browser_bridge.bridge.sessions import SessionRegistry

CLOSED_MESSAGE = 'Target page, context or browser has been closed'


class FakeMouse:
	def __init__(self, page: 'FakePage'):
		self.page = page

	async def click(self, x: float, y: float) -> None:
		self.page.record('mouse.click', x, y)


class FakeKeyboard:
	def __init__(self, page: 'FakePage'):
		self.page = page

	async def type(self, text: str, delay: float = 0) -> None:
		self.page.record('keyboard.type', text, delay=delay)

	async def press(self, key: str) -> None:
		self.page.record('keyboard.press', key)


class FakePage:
	def __init__(self, context: 'FakeContext'):
		self.context = context
		self.url = 'about:blank'
		self.viewport_size: dict[str, int] | None = context.viewport
		self.title_text = ''
		self.html = '<html><head></head><body></body></html>'
		self.calls: list[tuple[str, tuple, dict]] = []
		self.closed = False
		self.mouse = FakeMouse(self)
		self.keyboard = FakeKeyboard(self)
		# called as evaluate_handler(script, arg); its return value is the evaluate() result
		self.evaluate_handler = lambda script, arg: None

	def record(self, name: str, *args: Any, **kwargs: Any) -> None:
		if self.closed or self.context.closed:
			raise PlaywrightError(CLOSED_MESSAGE)
		self.calls.append((name, args, kwargs))

	def call_names(self) -> list[str]:
		return [name for name, _, _ in self.calls]

	async def goto(self, url: str, wait_until: str = 'load', timeout: float = 30000) -> None:
		self.record('goto', url, wait_until=wait_until, timeout=timeout)
		self.url = url

	async def click(self, selector: str) -> None:
		self.record('click', selector)

	async def fill(self, selector: str, value: str) -> None:
		self.record('fill', selector, value)

	async def go_back(self) -> None:
		self.record('go_back')

	async def go_forward(self) -> None:
		self.record('go_forward')

	async def reload(self) -> None:
		self.record('reload')

	async def wait_for_selector(self, selector: str, timeout: float = 30000) -> None:
		self.record('wait_for_selector', selector, timeout=timeout)

	async def screenshot(self, **kwargs: Any) -> bytes:
		self.record('screenshot', **kwargs)
		return b'\x89PNG fake image'

	async def content(self) -> str:
		self.record('content')
		return self.html

	async def title(self) -> str:
		self.record('title')
		return self.title_text

	async def evaluate(self, script: str, arg: Any = None) -> Any:
		self.record('evaluate', script, arg)
		return self.evaluate_handler(script, arg)

	async def close(self) -> None:
		self.record('close')
		self.closed = True


class FakeContext:
	def __init__(self, browser: 'FakeBrowser', viewport: dict[str, int] | None):
		self.browser = browser
		self.viewport = viewport
		self.pages: list[FakePage] = []
		self.closed = False

	async def new_page(self) -> FakePage:
		if self.closed:
			raise PlaywrightError(CLOSED_MESSAGE)
		page = FakePage(self)
		self.pages.append(page)
		return page

	async def close(self) -> None:
		self.closed = True


class FakeBrowser:
	def __init__(self, launch_kwargs: dict[str, Any] | None = None, endpoint: str | None = None):
		self.launch_kwargs = launch_kwargs or {}
		self.endpoint = endpoint
		self.contexts: list[FakeContext] = []
		self.closed = False
		self.fail_on_close = False

	async def new_context(self, viewport: dict[str, int] | None = None) -> FakeContext:
		if self.closed:
			raise PlaywrightError(CLOSED_MESSAGE)
		context = FakeContext(self, viewport)
		self.contexts.append(context)
		return context

	async def close(self) -> None:
		if self.fail_on_close:
			raise PlaywrightError('Browser crashed')
		self.closed = True
		for context in self.contexts:
			context.closed = True


class FakeBrowserType:
	def __init__(self):
		self.browsers: list[FakeBrowser] = []

	async def launch(self, **kwargs: Any) -> FakeBrowser:
		browser = FakeBrowser(launch_kwargs=kwargs)
		self.browsers.append(browser)
		return browser

	async def connect_over_cdp(self, endpoint: str) -> FakeBrowser:
		browser = FakeBrowser(endpoint=endpoint)
		self.browsers.append(browser)
		return browser


class CollectingWriter:
	"""Stream-writer stand-in that keeps every written response line."""

	def __init__(self):
		self.buffer = b''

	def write(self, data: bytes) -> None:
		self.buffer += data

	async def drain(self) -> None:
		pass

	def close(self) -> None:
		pass

	@property
	def responses(self) -> list[dict[str, Any]]:
		return [json.loads(line) for line in self.buffer.decode().splitlines() if line.strip()]


def make_reader(*lines: str | dict[str, Any], eof: bool = True) -> asyncio.StreamReader:
	reader = asyncio.StreamReader()
	for line in lines:
		text = line if isinstance(line, str) else json.dumps(line)
		reader.feed_data((text + '\n').encode())
	if eof:
		reader.feed_eof()
	return reader


@pytest.fixture
def browser_type() -> FakeBrowserType:
	return FakeBrowserType()


@pytest.fixture
def registry(browser_type: FakeBrowserType) -> SessionRegistry:
	return SessionRegistry(browser_type)  # type: ignore[arg-type]


@pytest.fixture
def server(registry: SessionRegistry) -> BridgeServer:
	return BridgeServer(registry)


@pytest.fixture
async def page_id(server: BridgeServer) -> str:
	"""A page handle on a freshly launched fake browser."""
	from browser_bridge.bridge.protocol import Request

	browser_response = await server.dispatch(Request(id=1, method='launchBrowser'))
	assert browser_response is not None
	page_response = await server.dispatch(Request(id=2, method='newPage', params={'browserId': browser_response.result}))
	assert page_response is not None
	return page_response.result


class PipeWriter:
	"""Writes straight into the reading end of another stream."""

	def __init__(self, reader: asyncio.StreamReader):
		self.reader = reader

	def write(self, data: bytes) -> None:
		self.reader.feed_data(data)

	async def drain(self) -> None:
		pass

	def close(self) -> None:
		self.reader.feed_eof()


@pytest.fixture
async def client(server: BridgeServer):
	"""A BridgeClient talking to the fake-engine server over in-memory streams."""
	from browser_bridge.bridge.client import BridgeClient

	server_reader = asyncio.StreamReader()
	client_reader = asyncio.StreamReader()
	serve_task = asyncio.create_task(server.serve(server_reader, PipeWriter(client_reader)))

	bridge = BridgeClient(response_timeout_ms=2000)
	bridge.attach(client_reader, PipeWriter(server_reader))
	yield bridge

	await bridge.stop()
	await asyncio.wait_for(serve_task, timeout=5)
