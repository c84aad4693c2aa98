"""Command handlers for the bridge server."""

from browser_bridge.bridge.commands import dom, lifecycle, page

__all__ = ['lifecycle', 'page', 'dom']
