"""Interactive element detection for a live page."""

import logging
import time
from typing import TYPE_CHECKING, Any

from browser_bridge.config import CONFIG
from browser_bridge.dom.scoring import RawElement, build_node
from browser_bridge.dom.views import DomSnapshot, InteractiveNode, ViewportInfo

if TYPE_CHECKING:
	from playwright.async_api import Page

logger = logging.getLogger(__name__)

CANDIDATE_SELECTORS = [
	'a',
	'button',
	'input',
	'select',
	'textarea',
	'option',
	'[role="button"]',
	'[role="link"]',
	'[role="checkbox"]',
	'[role="radio"]',
	'[role="menuitem"]',
	'[role="tab"]',
	'[onclick]',
	'[tabindex]',
	'[contenteditable="true"]',
]

VIEWPORT_STATE_JS = """() => ({
	scrollX: window.scrollX,
	scrollY: window.scrollY,
	devicePixelRatio: window.devicePixelRatio,
	innerWidth: window.innerWidth,
	innerHeight: window.innerHeight,
})"""

# Reports raw facts only; scoring happens in browser_bridge.dom.scoring
COLLECT_CANDIDATES_JS = """(selector) => {
	function xpathSegments(element) {
		const segments = [];
		let current = element;
		while (current && current.nodeType === Node.ELEMENT_NODE) {
			let position = 1;
			let sibling = current.previousElementSibling;
			while (sibling) {
				if (sibling.tagName === current.tagName) position++;
				sibling = sibling.previousElementSibling;
			}
			segments.unshift([current.tagName.toLowerCase(), position]);
			current = current.parentElement;
		}
		return segments;
	}

	const results = [];
	for (const el of document.querySelectorAll(selector)) {
		try {
			const rect = el.getBoundingClientRect();
			const style = window.getComputedStyle(el);
			const attributes = {};
			for (const attr of el.attributes) attributes[attr.name] = attr.value;
			let text = '';
			for (const node of el.childNodes) {
				if (node.nodeType === Node.TEXT_NODE) text += node.textContent;
			}
			results.push({
				tag: el.tagName.toLowerCase(),
				attributes,
				cursor: style.cursor,
				display: style.display,
				visibility: style.visibility,
				opacity: style.opacity,
				rect: { x: rect.x, y: rect.y, width: rect.width, height: rect.height },
				text,
				is_content_editable: el.isContentEditable,
				tab_index: el.tabIndex,
				xpath_segments: xpathSegments(el),
			});
		} catch (e) {
			// detached or otherwise unreadable element: leave it out
		}
	}
	return results;
}"""


class DomService:
	"""Builds a DomSnapshot of the interactive elements on a page."""

	def __init__(self, page: 'Page'):
		self.page = page

	async def _get_viewport(self) -> tuple[ViewportInfo, float, float]:
		size = self.page.viewport_size or CONFIG.default_viewport
		state: dict[str, Any] = await self.page.evaluate(VIEWPORT_STATE_JS) or {}
		viewport = ViewportInfo(
			width=size['width'],
			height=size['height'],
			device_pixel_ratio=state.get('devicePixelRatio') or 1.0,
			scroll_x=state.get('scrollX') or 0.0,
			scroll_y=state.get('scrollY') or 0.0,
		)
		inner_width = state.get('innerWidth') or viewport.width
		inner_height = state.get('innerHeight') or viewport.height
		return viewport, inner_width, inner_height

	async def collect_candidates(self) -> list[RawElement]:
		raw = await self.page.evaluate(COLLECT_CANDIDATES_JS, ','.join(CANDIDATE_SELECTORS))
		return [RawElement.model_validate(item) for item in raw or []]

	async def get_dom_tree(self) -> DomSnapshot:
		viewport, inner_width, inner_height = await self._get_viewport()
		candidates = await self.collect_candidates()

		nodes: dict[str, InteractiveNode] = {}
		for element in candidates:
			node = build_node(f'node_{len(nodes)}', element, inner_width, inner_height)
			if node.is_visible:
				nodes[node.id] = node

		logger.debug(f'Detected {len(nodes)} visible of {len(candidates)} candidate elements on {self.page.url}')

		return DomSnapshot(
			# no parent linkage is computed, so every node is a root
			roots=[node_id for node_id, node in nodes.items() if node.parent_id is None],
			nodes=nodes,
			viewport=viewport,
			timestamp=int(time.time() * 1000),
			url=self.page.url,
			title=await self.page.title(),
		)
