"""Wire protocol between the bridge and its driver.

One JSON object per line in each direction, UTF-8.

Request:  {"id": <number>, "method": <string>, "params": <object>}
Response: {"id": <number>, "result": <any>}
      or: {"id": <number>, "error": {"message": <string>, "code": -1}}
"""

import json
from dataclasses import dataclass, field
from typing import Any

ERROR_CODE = -1

# Used when a line cannot be parsed and the request id is unrecoverable
UNKNOWN_REQUEST_ID = 0


class ProtocolError(ValueError):
	"""A line that is not a valid request."""


@dataclass
class Request:
	"""Request from the driver to the bridge."""

	id: int | str
	method: str
	params: dict[str, Any] = field(default_factory=dict)

	def to_json(self) -> str:
		return json.dumps({'id': self.id, 'method': self.method, 'params': self.params})

	@classmethod
	def from_json(cls, data: str | bytes) -> 'Request':
		try:
			d = json.loads(data)
		except (json.JSONDecodeError, UnicodeDecodeError) as e:
			raise ProtocolError(f'Invalid JSON: {e}') from e
		if not isinstance(d, dict):
			raise ProtocolError(f'Request must be a JSON object, got {type(d).__name__}')

		params = d.get('params')
		if params is None:
			params = {}
		if not isinstance(params, dict):
			raise ProtocolError('Request params must be a JSON object')

		return cls(
			id=d.get('id', UNKNOWN_REQUEST_ID),
			method=str(d.get('method') or ''),
			params=params,
		)


@dataclass
class Response:
	"""Response from the bridge to the driver.

	Exactly one of result/error is serialized. A successful response always
	carries "result", even when it is null.
	"""

	id: int | str
	result: Any = None
	error: str | None = None
	code: int = ERROR_CODE

	@property
	def success(self) -> bool:
		return self.error is None

	@classmethod
	def ok(cls, request_id: int | str, result: Any = None) -> 'Response':
		return cls(id=request_id, result=result)

	@classmethod
	def fail(cls, request_id: int | str, message: str) -> 'Response':
		return cls(id=request_id, error=message)

	def to_dict(self) -> dict[str, Any]:
		if self.error is not None:
			return {'id': self.id, 'error': {'message': self.error, 'code': self.code}}
		return {'id': self.id, 'result': self.result}

	def to_json(self) -> str:
		return json.dumps(self.to_dict(), ensure_ascii=False)

	@classmethod
	def from_json(cls, data: str | bytes) -> 'Response':
		d = json.loads(data)
		error = d.get('error')
		if error is not None:
			return cls(
				id=d.get('id', UNKNOWN_REQUEST_ID),
				error=str(error.get('message', '')),
				code=int(error.get('code', ERROR_CODE)),
			)
		return cls(id=d.get('id', UNKNOWN_REQUEST_ID), result=d.get('result'))
