"""Bridge server - drives browsers on behalf of a driver process.

The server reads newline-delimited JSON requests from stdin and writes one
response line per request to stdout. Requests are handled strictly one at a
time, in arrival order; a slow request holds up everything queued behind it.
Logs go to stderr.
"""

import argparse
import asyncio
import logging
import os
import signal
import stat
import sys
from typing import Any, Protocol

from pydantic import ValidationError

from browser_bridge.bridge.commands import dom, lifecycle, page
from browser_bridge.bridge.protocol import UNKNOWN_REQUEST_ID, ProtocolError, Request, Response
from browser_bridge.bridge.sessions import SessionRegistry
from browser_bridge.bridge.views import BridgeError

logger = logging.getLogger(__name__)

# Requests carrying large scripts and responses carrying screenshots exceed
# asyncio's 64 KiB default line limit
STREAM_LIMIT = 64 * 1024 * 1024


class LineWriter(Protocol):
	def write(self, data: bytes) -> Any: ...

	async def drain(self) -> None: ...


class BridgeServer:
	"""Dispatches protocol requests against a SessionRegistry."""

	def __init__(self, registry: SessionRegistry) -> None:
		self.registry = registry
		self.running = True

	async def serve(self, reader: asyncio.StreamReader, writer: LineWriter) -> None:
		"""Process request lines until shutdown or end of input."""
		while self.running:
			try:
				line = await reader.readuntil(b'\n')
			except asyncio.IncompleteReadError as e:
				# end of input, possibly after a final unterminated line
				line = e.partial
			except asyncio.LimitOverrunError as e:
				await _discard_line(reader)
				await self._write(writer, Response.fail(UNKNOWN_REQUEST_ID, f'Request too large: {e}'))
				continue

			if not line:
				logger.info('Input stream closed')
				await self.shutdown()
				break

			if not line.strip():
				continue

			try:
				request = Request.from_json(line)
			except ProtocolError as e:
				logger.warning(f'Malformed request line: {e}')
				await self._write(writer, Response.fail(UNKNOWN_REQUEST_ID, str(e)))
				continue

			response = await self.dispatch(request)
			if response is not None:
				await self._write(writer, response)

	async def _write(self, writer: LineWriter, response: Response) -> None:
		try:
			data = response.to_json()
		except (TypeError, ValueError) as e:
			logger.warning(f'Unserializable result for request {response.id}: {e}')
			data = Response.fail(response.id, f'Result is not JSON serializable: {e}').to_json()
		writer.write((data + '\n').encode())
		await writer.drain()

	async def dispatch(self, request: Request) -> Response | None:
		"""Run one request. Every failure becomes an error response.

		Returns None for shutdown, which is never answered.
		"""
		method = request.method
		logger.info(f'Dispatch: {method} (id={request.id})')

		try:
			if method == 'shutdown':
				await self.shutdown()
				return None

			if method == 'ping':
				result: Any = 'pong'
			elif method in lifecycle.COMMANDS:
				result = await lifecycle.handle(method, self.registry, request.params)
			elif method in page.COMMANDS:
				result = await page.handle(method, self.registry, request.params)
			elif method in dom.COMMANDS:
				result = await dom.handle(method, self.registry, request.params)
			else:
				return Response.fail(request.id, f'Unknown method: {method}')

			return Response.ok(request.id, result)

		except (BridgeError, ValidationError) as e:
			logger.warning(f'{method} failed: {e}')
			return Response.fail(request.id, str(e))
		except Exception as e:
			logger.exception(f'Error dispatching {method}: {e}')
			return Response.fail(request.id, str(e))

	async def shutdown(self) -> None:
		"""Stop serving and close every browser."""
		if not self.running:
			return
		logger.info(f'Shutting down bridge, open sessions: {self.registry.list_sessions()}')
		self.running = False
		await self.registry.close_all()


async def _discard_line(reader: asyncio.StreamReader) -> None:
	"""Drop input up to and including the next newline, however long the line is."""
	while True:
		try:
			await reader.readuntil(b'\n')
			return
		except asyncio.LimitOverrunError as e:
			# the buffer still holds e.consumed bytes of the oversized line
			await reader.readexactly(e.consumed)
		except asyncio.IncompleteReadError:
			return


class FileLineWriter:
	"""Blocking writer for a stdout redirected to a regular file."""

	def __init__(self, stream: Any) -> None:
		self.stream = stream

	def write(self, data: bytes) -> None:
		self.stream.write(data)

	async def drain(self) -> None:
		self.stream.flush()


def _is_regular_file(stream: Any) -> bool:
	try:
		return stat.S_ISREG(os.fstat(stream.fileno()).st_mode)
	except (OSError, ValueError):
		return False


async def _feed_from_file(reader: asyncio.StreamReader, stream: Any) -> None:
	"""Copy a regular file into reader line by line; pipe transports reject files."""
	loop = asyncio.get_running_loop()
	while line := await loop.run_in_executor(None, stream.readline):
		reader.feed_data(line)
	reader.feed_eof()


def _log_loop_exception(loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
	logger.error(f'Unhandled error in event loop: {context.get("message")}', exc_info=context.get('exception'))


async def _open_stdio() -> tuple[asyncio.StreamReader, LineWriter, asyncio.Task[None] | None]:
	"""Wrap stdin/stdout as line streams.

	Pipes, sockets and terminals get asyncio pipe transports. Regular files
	(`browser-bridge < requests.jsonl > responses.jsonl`) cannot, so they are read in
	a worker thread and written with blocking writes.
	"""
	loop = asyncio.get_running_loop()
	reader = asyncio.StreamReader(limit=STREAM_LIMIT)

	feed_task = None
	if _is_regular_file(sys.stdin):
		feed_task = asyncio.create_task(_feed_from_file(reader, sys.stdin.buffer))
	else:
		await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), sys.stdin)

	writer: LineWriter
	if _is_regular_file(sys.stdout):
		writer = FileLineWriter(sys.stdout.buffer)
	else:
		transport, protocol = await loop.connect_write_pipe(asyncio.streams.FlowControlMixin, sys.stdout)
		writer = asyncio.StreamWriter(transport, protocol, reader, loop)
	return reader, writer, feed_task


async def run() -> None:
	"""Serve stdin/stdout with a Playwright Chromium engine."""
	from playwright.async_api import async_playwright

	loop = asyncio.get_running_loop()
	loop.set_exception_handler(_log_loop_exception)

	async with async_playwright() as playwright:
		registry = SessionRegistry(playwright.chromium)
		server = BridgeServer(registry)
		reader, writer, feed_task = await _open_stdio()

		serve_task = asyncio.create_task(server.serve(reader, writer))

		def signal_handler() -> None:
			logger.info('Signal received, stopping')
			serve_task.cancel()

		for sig in (signal.SIGINT, signal.SIGTERM):
			try:
				loop.add_signal_handler(sig, signal_handler)
			except NotImplementedError:
				# Windows doesn't support add_signal_handler
				pass

		logger.info('Browser bridge started')
		try:
			await serve_task
		except asyncio.CancelledError:
			pass
		finally:
			if feed_task is not None:
				feed_task.cancel()
			await server.shutdown()
			logger.info('Browser bridge stopped')


def build_parser() -> argparse.ArgumentParser:
	parser = argparse.ArgumentParser(description='Browser control bridge (JSON lines over stdin/stdout)')
	parser.add_argument(
		'--log-level',
		choices=['debug', 'info', 'warning', 'error'],
		default=None,
		help='Log level (default: BROWSER_BRIDGE_LOG_LEVEL or info)',
	)
	return parser


def main() -> None:
	"""Main entry point for the bridge process."""
	from browser_bridge.logging_config import setup_logging

	args = build_parser().parse_args()
	setup_logging(args.log_level)

	try:
		asyncio.run(run())
	except KeyboardInterrupt:
		logger.info('Interrupted')
	except Exception as e:
		logger.exception(f'Bridge error: {e}')
		sys.exit(1)
	sys.exit(0)


if __name__ == '__main__':
	main()
