"""Browser control bridge.

A long-lived process that drives Playwright browsers on behalf of an agent over
newline-delimited JSON on stdin/stdout, and maps pages into scored tables of
interactive elements.

Run the bridge:
    python -m browser_bridge.bridge.server

Drive it from Python:
    from browser_bridge import BridgeClient
"""

__all__ = ['BridgeClient', 'BrowserManager', 'DomSnapshot', 'InteractiveNode', 'SessionRegistry', 'BridgeServer']


def __getattr__(name: str):
	"""Lazy imports keep `python -m browser_bridge.bridge.server` startup light."""
	if name == 'BridgeClient':
		from browser_bridge.bridge.client import BridgeClient

		return BridgeClient
	if name == 'BrowserManager':
		from browser_bridge.bridge.manager import BrowserManager

		return BrowserManager
	if name == 'BridgeServer':
		from browser_bridge.bridge.server import BridgeServer

		return BridgeServer
	if name == 'SessionRegistry':
		from browser_bridge.bridge.sessions import SessionRegistry

		return SessionRegistry
	if name in ('DomSnapshot', 'InteractiveNode'):
		from browser_bridge.dom import views

		return getattr(views, name)
	raise AttributeError(f'module {__name__!r} has no attribute {name!r}')
