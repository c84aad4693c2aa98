"""Tests for the request loop and dispatcher."""

import asyncio

import pytest

from browser_bridge.bridge.commands.page import ACTIONS, INSPECTIONS
from browser_bridge.bridge.protocol import Request
from tests.ci.conftest import CollectingWriter, make_reader


async def serve(server, *lines, eof=True):
	writer = CollectingWriter()
	await asyncio.wait_for(server.serve(make_reader(*lines, eof=eof), writer), timeout=5)
	return writer.responses


class TestLoop:
	async def test_ping(self, server):
		responses = await serve(server, {'id': 1, 'method': 'ping'})

		assert responses == [{'id': 1, 'result': 'pong'}]

	async def test_malformed_line_gets_id_zero_and_loop_continues(self, server):
		responses = await serve(server, 'this is not json', {'id': 2, 'method': 'ping'})

		assert responses[0]['id'] == 0
		assert responses[0]['error']['code'] == -1
		assert 'result' not in responses[0]
		assert responses[1] == {'id': 2, 'result': 'pong'}

	async def test_blank_lines_are_skipped(self, server):
		responses = await serve(server, '', '   ', {'id': 3, 'method': 'ping'})

		assert responses == [{'id': 3, 'result': 'pong'}]

	async def test_unknown_method(self, server):
		responses = await serve(server, {'id': 4, 'method': 'teleport', 'params': {}})

		assert responses == [{'id': 4, 'error': {'message': 'Unknown method: teleport', 'code': -1}}]

	async def test_responses_follow_request_order(self, server):
		responses = await serve(
			server,
			{'id': 10, 'method': 'launchBrowser'},
			{'id': 11, 'method': 'newPage', 'params': {'browserId': 'browser_1'}},
			{'id': 12, 'method': 'getUrl', 'params': {'pageId': 'page_2'}},
			{'id': 13, 'method': 'getUrl', 'params': {'pageId': 'page_99'}},
			{'id': 14, 'method': 'ping'},
		)

		assert [r['id'] for r in responses] == [10, 11, 12, 13, 14]
		assert responses[0]['result'] == 'browser_1'
		assert responses[1]['result'] == 'page_2'
		assert responses[2]['result'] == 'about:blank'
		assert responses[3]['error']['message'] == 'Page not found: page_99'

	async def test_string_ids_are_echoed(self, server):
		responses = await serve(server, {'id': 'abc', 'method': 'ping'})

		assert responses == [{'id': 'abc', 'result': 'pong'}]

	async def test_shutdown_closes_browsers_and_stops_reading(self, server, browser_type):
		responses = await serve(
			server,
			{'id': 1, 'method': 'launchBrowser'},
			{'id': 2, 'method': 'launchBrowser'},
			{'id': 3, 'method': 'shutdown'},
			{'id': 4, 'method': 'ping'},
			eof=False,
		)

		# shutdown is not answered, and nothing after it is read
		assert [r['id'] for r in responses] == [1, 2]
		assert all(b.closed for b in browser_type.browsers)
		assert not server.running

	async def test_end_of_input_closes_browsers(self, server, browser_type, registry):
		await serve(server, {'id': 1, 'method': 'launchBrowser'})

		assert browser_type.browsers[0].closed
		assert registry.browsers == {}
		assert not server.running

	async def test_shutdown_is_idempotent(self, server, browser_type):
		await serve(server, {'id': 1, 'method': 'launchBrowser'}, {'id': 2, 'method': 'shutdown'})
		await server.shutdown()

		assert len(browser_type.browsers) == 1
		assert browser_type.browsers[0].closed

	async def test_unserializable_result_becomes_error(self, server, page_id, registry):
		registry.get_page(page_id).page.evaluate_handler = lambda script, arg: {1, 2}

		responses = await serve(server, {'id': 9, 'method': 'evaluate', 'params': {'pageId': page_id, 'script': '1'}})

		assert responses[0]['id'] == 9
		assert 'not JSON serializable' in responses[0]['error']['message']

	async def test_oversized_line_is_rejected(self, server):
		reader = asyncio.StreamReader(limit=64)
		reader.feed_data(b'{"id": 1, "method": "evaluate", "params": {"script": "' + b'x' * 200 + b'"}}\n')
		reader.feed_data(b'{"id": 2, "method": "ping"}\n')
		reader.feed_eof()
		writer = CollectingWriter()

		await asyncio.wait_for(server.serve(reader, writer), timeout=5)

		responses = writer.responses
		assert len(responses) == 2
		assert responses[0]['id'] == 0
		assert 'Request too large' in responses[0]['error']['message']
		assert responses[1] == {'id': 2, 'result': 'pong'}

	async def test_oversized_line_arriving_in_pieces_gets_one_error(self, server):
		reader = asyncio.StreamReader(limit=64)
		writer = CollectingWriter()
		serve_task = asyncio.create_task(server.serve(reader, writer))

		# the limit is exceeded before the newline has arrived
		reader.feed_data(b'{"id": 1, "method": "evaluate", "params": {"script": "' + b'x' * 100)
		for _ in range(5):
			await asyncio.sleep(0)
		reader.feed_data(b'x' * 150)
		for _ in range(5):
			await asyncio.sleep(0)
		reader.feed_data(b'x' * 30 + b'"}}\n{"id": 2, "method": "ping"}\n')
		reader.feed_eof()
		await asyncio.wait_for(serve_task, timeout=5)

		responses = writer.responses
		assert len(responses) == 2
		assert responses[0]['id'] == 0
		assert 'Request too large' in responses[0]['error']['message']
		assert responses[1] == {'id': 2, 'result': 'pong'}

	async def test_final_line_without_newline_is_served(self, server):
		reader = asyncio.StreamReader()
		reader.feed_data(b'{"id": 1, "method": "ping"}')
		reader.feed_eof()
		writer = CollectingWriter()

		await asyncio.wait_for(server.serve(reader, writer), timeout=5)

		assert writer.responses == [{'id': 1, 'result': 'pong'}]
		assert not server.running


class TestDispatch:
	@pytest.mark.parametrize('method', sorted(ACTIONS | INSPECTIONS))
	async def test_every_page_method_rejects_unknown_page(self, server, method):
		response = await server.dispatch(Request(id=1, method=method, params={'pageId': 'page_404'}))

		assert response is not None
		assert not response.success
		assert response.error.startswith('Page not found: ')
		assert response.code == -1

	async def test_getdomtree_rejects_unknown_page(self, server):
		response = await server.dispatch(Request(id=1, method='getDomTree', params={'pageId': 'page_404'}))

		assert response is not None
		assert response.error == 'Page not found: page_404'

	async def test_missing_page_id_is_a_validation_error(self, server):
		response = await server.dispatch(Request(id=1, method='getUrl', params={}))

		assert response is not None
		assert not response.success
		assert 'pageId' in response.error

	async def test_missing_param_on_known_page(self, server, page_id):
		response = await server.dispatch(Request(id=1, method='navigate', params={'pageId': page_id}))

		assert response is not None
		assert not response.success
		assert 'url' in response.error

	async def test_shutdown_returns_no_response(self, server):
		assert await server.dispatch(Request(id=1, method='shutdown')) is None
		assert not server.running

	async def test_unexpected_engine_errors_become_responses(self, server, page_id, registry):
		def boom(script, arg):
			raise RuntimeError('renderer went away')

		registry.get_page(page_id).page.evaluate_handler = boom

		response = await server.dispatch(Request(id=5, method='evaluate', params={'pageId': page_id, 'script': '1'}))

		assert response is not None
		assert response.error == 'renderer went away'
		assert server.running
