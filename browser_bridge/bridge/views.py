"""Parameter models and error types for the bridge protocol."""

from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator


class BridgeError(Exception):
	pass


class BrowserNotFoundError(BridgeError):
	def __init__(self, browser_id: str):
		self.browser_id = browser_id
		super().__init__(f'Browser not found: {browser_id}')


class PageNotFoundError(BridgeError):
	def __init__(self, page_id: str):
		self.page_id = page_id
		super().__init__(f'Page not found: {page_id}')


class BridgeClientError(BridgeError):
	"""Raised on the driver side of the protocol."""


class BridgeNotStartedError(BridgeClientError):
	pass


class BridgeTimeoutError(BridgeClientError):
	pass


class BridgeResponseError(BridgeClientError):
	"""The bridge answered with an error response."""

	def __init__(self, message: str, code: int = -1):
		self.code = code
		super().__init__(message)


class BridgeParams(BaseModel):
	"""Base for request params: camelCase on the wire, unknown keys ignored."""

	model_config = ConfigDict(populate_by_name=True, extra='ignore')


# Lifecycle


class LaunchBrowserParams(BridgeParams):
	headless: bool = True
	args: list[str] = Field(default_factory=list, validation_alias=AliasChoices('args', 'extraArgs'))


class ConnectBrowserParams(BridgeParams):
	endpoint: str = Field(description='Remote debugging endpoint, e.g. http://localhost:9222')


class BrowserParams(BridgeParams):
	browser_id: str = Field(alias='browserId')


class PageParams(BridgeParams):
	page_id: str = Field(alias='pageId')


# Actions


class NavigateParams(BridgeParams):
	url: str
	wait_until: Literal['load', 'domcontentloaded', 'networkidle', 'commit'] = Field(
		default='domcontentloaded', alias='waitUntil'
	)
	timeout: float = Field(default=30000, ge=0, description='Milliseconds, 0 disables the timeout')


class PointParams(BridgeParams):
	x: float
	y: float


class SelectorParams(BridgeParams):
	selector: str


class TypeTextParams(BridgeParams):
	text: str
	delay: float = Field(default=0, ge=0, description='Milliseconds between key presses')


class FillParams(BridgeParams):
	selector: str
	value: str


class PressKeyParams(BridgeParams):
	key: str


class ScrollParams(BridgeParams):
	x: float = Field(default=0, validation_alias=AliasChoices('x', 'dx'))
	y: float = Field(default=0, validation_alias=AliasChoices('y', 'dy'))


class WaitForSelectorParams(BridgeParams):
	selector: str
	timeout: float = Field(default=30000, ge=0)


# Inspection


class ClipRegion(BaseModel):
	x: float
	y: float
	width: float
	height: float


class ScreenshotOptions(BridgeParams):
	type: Literal['png', 'jpeg'] = 'png'
	full_page: bool = Field(default=False, alias='fullPage')
	quality: int | None = Field(default=None, ge=0, le=100)
	clip: ClipRegion | None = None


class ScreenshotParams(BridgeParams):
	options: ScreenshotOptions = Field(default_factory=ScreenshotOptions)

	@model_validator(mode='before')
	@classmethod
	def _lift_top_level_options(cls, data):
		# options may be nested under "options" or given directly in params
		if isinstance(data, dict) and data.get('options') is None:
			return {'options': {k: v for k, v in data.items() if k != 'options'}}
		return data


class EvaluateParams(BridgeParams):
	script: str
