"""Clickability heuristics for detected DOM elements.

The in-page collector only gathers raw facts about each candidate element
(`RawElement`). Everything that decides what those facts mean lives here:
the additive clickability score, visibility, viewport membership, attribute
curation and selector generation.
"""

import re

from pydantic import BaseModel, Field

from browser_bridge.dom.views import INTERACTIVE_THRESHOLD, BoundingBox, InteractiveNode, NodeAttributes

MAX_TEXT_LENGTH = 200

NATIVE_INTERACTIVE_TAGS = ('a', 'button', 'input', 'select', 'textarea', 'option', 'label')
CLICKABLE_ROLES = ('button', 'link', 'checkbox', 'radio', 'menuitem', 'tab', 'option', 'switch')
# checked in this order, only the first present one counts
EVENT_HANDLER_ATTRIBUTES = ('onclick', 'onmousedown', 'onmouseup', 'ontouchstart')
CLICKABLE_INPUT_TYPES = ('button', 'submit', 'reset', 'checkbox', 'radio', 'file')

WEIGHT_NATIVE_TAG = 0.30
WEIGHT_ARIA_ROLE = 0.20
WEIGHT_CURSOR_POINTER = 0.15
WEIGHT_HREF = 0.20
WEIGHT_EVENT_HANDLER = 0.15
WEIGHT_TABINDEX = 0.10
WEIGHT_INPUT_TYPE = 0.15
WEIGHT_CONTENTEDITABLE = 0.20

# wire attribute name -> NodeAttributes field
CURATED_ATTRIBUTES = {
	'id': 'id',
	'class': 'class_',
	'href': 'href',
	'src': 'src',
	'alt': 'alt',
	'title': 'title',
	'placeholder': 'placeholder',
	'value': 'value',
	'type': 'type',
	'name': 'name',
	'role': 'role',
	'aria-label': 'aria_label',
	'aria-expanded': 'aria_expanded',
	'aria-selected': 'aria_selected',
}

_LEADING_INT_RE = re.compile(r'^\s*([+-]?\d+)')


class RawElement(BaseModel):
	"""Facts about one candidate element, as reported by the in-page collector."""

	tag: str
	attributes: dict[str, str] = Field(default_factory=dict)
	cursor: str = 'auto'
	display: str = ''
	visibility: str = 'visible'
	opacity: str = '1'
	rect: BoundingBox = Field(default_factory=BoundingBox)
	text: str = ''
	is_content_editable: bool = False
	tab_index: int = -1
	# (tag, 1-based position among same-tag siblings) from the document root down
	xpath_segments: list[tuple[str, int]] = Field(default_factory=list)


def _parse_tabindex(value: str | None) -> int | None:
	"""parseInt-style parse: leading integer or None."""
	if value is None:
		return None
	match = _LEADING_INT_RE.match(value)
	return int(match.group(1)) if match else None


def score_clickability(element: RawElement) -> tuple[float, list[str]]:
	"""Sum the weighted signals that fire for an element.

	Each signal contributes at most once. The total is capped at 1.0 and rounded
	to two decimals. Returns the score and the fired signals, in check order.
	"""
	tag = element.tag.lower()
	attrs = element.attributes
	score = 0.0
	reasons: list[str] = []

	if tag in NATIVE_INTERACTIVE_TAGS:
		score += WEIGHT_NATIVE_TAG
		reasons.append(f'native_tag:{tag}')

	role = attrs.get('role')
	if role and role in CLICKABLE_ROLES:
		score += WEIGHT_ARIA_ROLE
		reasons.append(f'aria_role:{role}')

	if element.cursor == 'pointer':
		score += WEIGHT_CURSOR_POINTER
		reasons.append('cursor_pointer')

	if 'href' in attrs:
		score += WEIGHT_HREF
		reasons.append('has_href')

	for attr in EVENT_HANDLER_ATTRIBUTES:
		if attr in attrs:
			score += WEIGHT_EVENT_HANDLER
			reasons.append(f'event:{attr}')
			break

	tabindex = _parse_tabindex(attrs.get('tabindex'))
	if tabindex is not None and tabindex >= 0:
		score += WEIGHT_TABINDEX
		reasons.append('tabindex')

	if tag == 'input':
		input_type = (attrs.get('type') or 'text').lower()
		if input_type in CLICKABLE_INPUT_TYPES:
			score += WEIGHT_INPUT_TYPE
			reasons.append(f'input_type:{input_type}')

	if element.is_content_editable:
		score += WEIGHT_CONTENTEDITABLE
		reasons.append('contenteditable')

	return round(min(score, 1.0), 2), reasons


def is_visible(element: RawElement) -> bool:
	"""Non-zero size, and not hidden by visibility, display or opacity."""
	try:
		transparent = float(element.opacity) == 0
	except ValueError:
		transparent = False
	return (
		element.rect.width > 0
		and element.rect.height > 0
		and element.visibility != 'hidden'
		and element.display != 'none'
		and not transparent
	)


def is_in_viewport(rect: BoundingBox, width: float, height: float) -> bool:
	return rect.intersects(BoundingBox(x=0, y=0, width=width, height=height))


def curate_attributes(attributes: dict[str, str]) -> NodeAttributes:
	values: dict[str, object] = {}
	data: dict[str, str] = {}
	for name, value in attributes.items():
		if name.startswith('data-'):
			data[name[len('data-') :]] = value
		elif name in CURATED_ATTRIBUTES:
			values[CURATED_ATTRIBUTES[name]] = value
	return NodeAttributes(**values, data=data)


def direct_text(text: str) -> str:
	return text.strip()[:MAX_TEXT_LENGTH]


def build_css_selector(tag: str, attributes: dict[str, str]) -> str:
	"""`#id` when the element has one, otherwise `tag.class1.class2`."""
	element_id = attributes.get('id')
	if element_id:
		return f'#{element_id}'
	selector = tag.lower()
	classes = (attributes.get('class') or '').split()
	if classes:
		selector += '.' + '.'.join(classes)
	return selector


def build_xpath(attributes: dict[str, str], segments: list[tuple[str, int]]) -> str:
	"""Id shortcut when possible, otherwise a positional path from the root."""
	element_id = attributes.get('id')
	if element_id:
		return f'//*[@id="{element_id}"]'
	parts = [tag.lower() if position <= 1 else f'{tag.lower()}[{position}]' for tag, position in segments]
	return '/' + '/'.join(parts)


def build_node(node_id: str, element: RawElement, viewport_width: float, viewport_height: float) -> InteractiveNode:
	score, reasons = score_clickability(element)
	tag = element.tag.lower()
	return InteractiveNode(
		id=node_id,
		tag_name=tag,
		attributes=curate_attributes(element.attributes),
		text_content=direct_text(element.text),
		bounding_box=element.rect,
		is_visible=is_visible(element),
		is_in_viewport=is_in_viewport(element.rect, viewport_width, viewport_height),
		clickability_score=score,
		clickability_reasons=reasons,
		is_interactive=score > INTERACTIVE_THRESHOLD,
		is_focusable=element.tab_index >= 0,
		xpath=build_xpath(element.attributes, element.xpath_segments),
		css_selector=build_css_selector(tag, element.attributes),
		computed_styles={
			'cursor': element.cursor,
			'display': element.display,
			'visibility': element.visibility,
		},
	)
