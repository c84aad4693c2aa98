"""Async client that spawns the bridge server and speaks its protocol."""

import asyncio
import base64
import itertools
import logging
import sys
from typing import Any

from browser_bridge.bridge.protocol import Request, Response
from browser_bridge.bridge.server import STREAM_LIMIT
from browser_bridge.bridge.views import (
	BridgeClientError,
	BridgeNotStartedError,
	BridgeResponseError,
	BridgeTimeoutError,
)
from browser_bridge.config import CONFIG
from browser_bridge.dom.views import DomSnapshot

logger = logging.getLogger(__name__)

# Extra time granted on top of an operation's own timeout before the client gives up
TIMEOUT_MARGIN_MS = 5000


class BridgeClient:
	"""Drives a bridge server running as a child process.

	Usage:
		async with BridgeClient() as client:
			browser_id = await client.launch_browser()
			page_id = await client.new_page(browser_id)
			await client.navigate(page_id, 'https://example.com')
			snapshot = await client.get_dom_tree(page_id)
			print(snapshot.to_llm_string())
	"""

	def __init__(
		self,
		response_timeout_ms: int | None = None,
		python_executable: str | None = None,
		log_level: str | None = None,
	) -> None:
		self.response_timeout_ms = response_timeout_ms or CONFIG.BROWSER_BRIDGE_RESPONSE_TIMEOUT_MS
		self.python_executable = python_executable or sys.executable
		self.log_level = log_level
		self._process: asyncio.subprocess.Process | None = None
		self._writer: Any = None
		self._pending: dict[int, asyncio.Future[Any]] = {}
		self._request_ids = itertools.count(1)
		self._tasks: list[asyncio.Task[None]] = []

	async def __aenter__(self) -> 'BridgeClient':
		await self.start()
		return self

	async def __aexit__(self, *exc_info: Any) -> None:
		await self.stop()

	@property
	def is_running(self) -> bool:
		return self._writer is not None

	async def start(self) -> None:
		"""Spawn the bridge process and wait until it answers ping."""
		cmd = [self.python_executable, '-m', 'browser_bridge.bridge.server']
		if self.log_level:
			cmd.extend(['--log-level', self.log_level])

		logger.info(f'Starting bridge: {" ".join(cmd)}')
		self._process = await asyncio.create_subprocess_exec(
			*cmd,
			stdin=asyncio.subprocess.PIPE,
			stdout=asyncio.subprocess.PIPE,
			stderr=asyncio.subprocess.PIPE,
			limit=STREAM_LIMIT,
		)
		assert self._process.stdout is not None and self._process.stdin is not None
		self.attach(self._process.stdout, self._process.stdin, self._process.stderr)

		ready = await self.ping()
		if ready != 'pong':
			raise BridgeClientError(f'Bridge did not respond correctly to ping: {ready!r}')
		logger.info('Bridge started')

	def attach(self, reader: asyncio.StreamReader, writer: Any, stderr: asyncio.StreamReader | None = None) -> None:
		"""Wire the client to already-open streams and start reading responses."""
		self._writer = writer
		self._tasks.append(asyncio.create_task(self._read_responses(reader)))
		if stderr is not None:
			self._tasks.append(asyncio.create_task(self._forward_stderr(stderr)))

	async def _read_responses(self, reader: asyncio.StreamReader) -> None:
		while True:
			line = await reader.readline()
			if not line:
				break
			if not line.strip():
				continue
			logger.debug(f'Bridge response: {line[:200]!r}')
			try:
				response = Response.from_json(line)
			except (AttributeError, TypeError, ValueError) as e:
				logger.error(f'Failed to parse bridge response: {e} - {line[:200]!r}')
				continue

			future = self._pending.pop(response.id, None) if isinstance(response.id, int) else None
			if future is None or future.done():
				logger.warning(f'Response for unknown request id {response.id}')
				continue
			if response.success:
				future.set_result(response.result)
			else:
				future.set_exception(BridgeResponseError(response.error or '', response.code))

		self._fail_pending(BridgeClientError('Bridge closed its output stream'))

	async def _forward_stderr(self, stderr: asyncio.StreamReader) -> None:
		while line := await stderr.readline():
			logger.info(f'[bridge] {line.decode(errors="replace").rstrip()}')

	def _fail_pending(self, error: Exception) -> None:
		for future in self._pending.values():
			if not future.done():
				future.set_exception(error)
		self._pending.clear()

	async def call(self, method: str, params: dict[str, Any] | None = None, timeout_ms: float | None = None) -> Any:
		"""Send one request and wait for its response."""
		if self._writer is None:
			raise BridgeNotStartedError('Bridge is not started')

		request_id = next(self._request_ids)
		request = Request(id=request_id, method=method, params=params or {})
		future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
		self._pending[request_id] = future

		data = request.to_json()
		logger.debug(f'Bridge request: {data[:200]}')
		self._writer.write((data + '\n').encode())
		await self._writer.drain()

		timeout_ms = timeout_ms or self.response_timeout_ms
		try:
			return await asyncio.wait_for(future, timeout=timeout_ms / 1000)
		except asyncio.TimeoutError:
			self._pending.pop(request_id, None)
			raise BridgeTimeoutError(f'Method {method} timed out after {timeout_ms:.0f}ms') from None

	async def stop(self, timeout: float = 5.0) -> None:
		"""Ask the bridge to shut down, then make sure the process is gone."""
		if self._writer is not None:
			try:
				# shutdown is never answered
				self._writer.write((Request(id=next(self._request_ids), method='shutdown').to_json() + '\n').encode())
				await self._writer.drain()
				self._writer.close()
			except (ConnectionError, RuntimeError) as e:
				logger.debug(f'Bridge stdin already closed: {e}')
			self._writer = None

		if self._process is not None:
			try:
				await asyncio.wait_for(self._process.wait(), timeout=timeout)
			except asyncio.TimeoutError:
				logger.warning('Bridge did not exit in time, killing it')
				self._process.kill()
				await self._process.wait()
			self._process = None

		for task in self._tasks:
			task.cancel()
		self._tasks.clear()
		self._fail_pending(BridgeClientError('Bridge stopped'))
		logger.info('Bridge stopped')

	# Lifecycle

	async def ping(self) -> Any:
		return await self.call('ping')

	async def launch_browser(self, headless: bool = True, args: list[str] | None = None) -> str:
		return await self.call('launchBrowser', {'headless': headless, 'args': args or []})

	async def connect_browser(self, endpoint: str) -> str:
		return await self.call('connectBrowser', {'endpoint': endpoint})

	async def close_browser(self, browser_id: str) -> None:
		await self.call('closeBrowser', {'browserId': browser_id})

	async def new_page(self, browser_id: str) -> str:
		return await self.call('newPage', {'browserId': browser_id})

	async def close_page(self, page_id: str) -> None:
		await self.call('closePage', {'pageId': page_id})

	# Actions

	async def navigate(self, page_id: str, url: str, wait_until: str = 'domcontentloaded', timeout: float = 30000) -> None:
		params = {'pageId': page_id, 'url': url, 'waitUntil': wait_until, 'timeout': timeout}
		await self.call('navigate', params, timeout_ms=self._operation_timeout(timeout))

	async def click(self, page_id: str, x: float, y: float) -> None:
		await self.call('click', {'pageId': page_id, 'x': x, 'y': y})

	async def click_selector(self, page_id: str, selector: str) -> None:
		await self.call('clickSelector', {'pageId': page_id, 'selector': selector})

	async def type_text(self, page_id: str, text: str, delay: float = 0) -> None:
		await self.call('typeText', {'pageId': page_id, 'text': text, 'delay': delay})

	async def fill(self, page_id: str, selector: str, value: str) -> None:
		await self.call('fill', {'pageId': page_id, 'selector': selector, 'value': value})

	async def press_key(self, page_id: str, key: str) -> None:
		await self.call('pressKey', {'pageId': page_id, 'key': key})

	async def scroll(self, page_id: str, x: float, y: float) -> None:
		await self.call('scroll', {'pageId': page_id, 'x': x, 'y': y})

	async def go_back(self, page_id: str) -> None:
		await self.call('goBack', {'pageId': page_id})

	async def go_forward(self, page_id: str) -> None:
		await self.call('goForward', {'pageId': page_id})

	async def reload(self, page_id: str) -> None:
		await self.call('reload', {'pageId': page_id})

	async def wait_for_selector(self, page_id: str, selector: str, timeout: float = 30000) -> None:
		params = {'pageId': page_id, 'selector': selector, 'timeout': timeout}
		await self.call('waitForSelector', params, timeout_ms=self._operation_timeout(timeout))

	# Inspection

	async def screenshot(
		self,
		page_id: str,
		type: str = 'png',
		full_page: bool = False,
		quality: int | None = None,
		clip: dict[str, float] | None = None,
	) -> bytes:
		options: dict[str, Any] = {'type': type, 'fullPage': full_page}
		if quality is not None:
			options['quality'] = quality
		if clip is not None:
			options['clip'] = clip
		data = await self.call('screenshot', {'pageId': page_id, 'options': options})
		return base64.b64decode(data)

	async def get_content(self, page_id: str) -> str:
		return await self.call('getContent', {'pageId': page_id})

	async def get_url(self, page_id: str) -> str:
		return await self.call('getUrl', {'pageId': page_id})

	async def get_title(self, page_id: str) -> str:
		return await self.call('getTitle', {'pageId': page_id})

	async def evaluate(self, page_id: str, script: str) -> Any:
		return await self.call('evaluate', {'pageId': page_id, 'script': script})

	async def element_at(self, page_id: str, x: float, y: float) -> dict[str, Any] | None:
		return await self.call('elementAt', {'pageId': page_id, 'x': x, 'y': y})

	async def get_dom_tree(self, page_id: str) -> DomSnapshot:
		return DomSnapshot.model_validate(await self.call('getDomTree', {'pageId': page_id}))

	def _operation_timeout(self, timeout: float) -> float:
		# 0 means no operation timeout; fall back to the client default
		if not timeout:
			return self.response_timeout_ms
		return max(self.response_timeout_ms, timeout + TIMEOUT_MARGIN_MS)
