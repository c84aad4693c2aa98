from pydantic import BaseModel, ConfigDict, Field

# Score above which a node is reported as interactive
INTERACTIVE_THRESHOLD = 0.3

# Score above which a node is flagged in the LLM representation
HIGHLY_CLICKABLE_THRESHOLD = 0.7

STRUCTURAL_TAGS = {'div', 'span', 'section', 'article', 'main', 'header', 'footer'}


class ViewportInfo(BaseModel):
	"""Viewport at detection time."""

	width: int = 1280
	height: int = 720
	device_pixel_ratio: float = 1.0
	scroll_x: float = 0.0
	scroll_y: float = 0.0


class BoundingBox(BaseModel):
	"""Element box in viewport coordinates."""

	x: float = 0.0
	y: float = 0.0
	width: float = 0.0
	height: float = 0.0

	@property
	def area(self) -> float:
		return self.width * self.height

	def contains(self, x: float, y: float) -> bool:
		return self.x <= x <= self.x + self.width and self.y <= y <= self.y + self.height

	def center(self) -> tuple[float, float]:
		return self.x + self.width / 2, self.y + self.height / 2

	def intersects(self, other: 'BoundingBox') -> bool:
		return (
			self.x < other.x + other.width
			and self.x + self.width > other.x
			and self.y < other.y + other.height
			and self.y + self.height > other.y
		)


class NodeAttributes(BaseModel):
	"""Curated subset of an element's attributes."""

	model_config = ConfigDict(populate_by_name=True, extra='forbid')

	id: str | None = None
	class_: str | None = Field(default=None, alias='class')
	href: str | None = None
	src: str | None = None
	alt: str | None = None
	title: str | None = None
	placeholder: str | None = None
	value: str | None = None
	type: str | None = None
	name: str | None = None
	role: str | None = None
	aria_label: str | None = None
	aria_expanded: str | None = None
	aria_selected: str | None = None
	data: dict[str, str] = Field(default_factory=dict)


class InteractiveNode(BaseModel):
	"""One candidate interactive element from a detection pass.

	`id` is only unique within the DomSnapshot it belongs to.
	"""

	id: str
	tag_name: str
	attributes: NodeAttributes = Field(default_factory=NodeAttributes)
	text_content: str = ''
	bounding_box: BoundingBox = Field(default_factory=BoundingBox)
	is_visible: bool = False
	is_in_viewport: bool = False
	clickability_score: float = Field(default=0.0, ge=0.0, le=1.0)
	clickability_reasons: list[str] = Field(default_factory=list)
	is_interactive: bool = False
	is_focusable: bool = False
	# Hierarchy is not reconstructed: parent_id stays None and children stays empty
	parent_id: str | None = None
	children: list[str] = Field(default_factory=list)
	xpath: str = ''
	css_selector: str = ''
	computed_styles: dict[str, str] = Field(default_factory=dict)

	def is_relevant_for_llm(self) -> bool:
		if not self.is_visible:
			return False
		if not self.is_in_viewport and not self.is_interactive:
			return False
		if self.tag_name in STRUCTURAL_TAGS and not self.text_content.strip() and not self.is_interactive:
			return False
		return True

	def to_llm_string(self, index: int) -> str:
		"""One-line description, e.g. `[3] <input type=text> id=q placeholder="Search"`."""
		parts = [f'[{index}]']

		if self.attributes.type:
			parts.append(f'<{self.tag_name} type={self.attributes.type}>')
		else:
			parts.append(f'<{self.tag_name}>')

		if self.text_content:
			text = self.text_content
			if len(text) > 50:
				text = text[:47] + '...'
			parts.append(f'"{text.replace(chr(10), " ").strip()}"')

		if self.attributes.id:
			parts.append(f'id={self.attributes.id}')
		if self.attributes.placeholder:
			parts.append(f'placeholder="{self.attributes.placeholder}"')
		if self.attributes.aria_label:
			parts.append(f'aria-label="{self.attributes.aria_label}"')
		if self.attributes.role:
			parts.append(f'role={self.attributes.role}')

		if self.clickability_score > HIGHLY_CLICKABLE_THRESHOLD:
			parts.append('⬤')

		return ' '.join(parts)


class DomSnapshot(BaseModel):
	"""Result of one element detection pass over a page."""

	roots: list[str] = Field(default_factory=list)
	nodes: dict[str, InteractiveNode] = Field(default_factory=dict)
	viewport: ViewportInfo = Field(default_factory=ViewportInfo)
	timestamp: int = 0
	url: str = ''
	title: str = ''

	def interactive_elements(self) -> list[InteractiveNode]:
		return [n for n in self.nodes.values() if n.is_interactive and n.is_visible]

	def clickable_elements(self) -> list[InteractiveNode]:
		"""Visible nodes above the interactive threshold, most clickable first."""
		nodes = [n for n in self.nodes.values() if n.clickability_score > INTERACTIVE_THRESHOLD and n.is_visible]
		return sorted(nodes, key=lambda n: n.clickability_score, reverse=True)

	def visible_in_viewport(self) -> list[InteractiveNode]:
		return [n for n in self.nodes.values() if n.is_in_viewport and n.is_visible]

	def element_at(self, x: float, y: float) -> InteractiveNode | None:
		"""Innermost (smallest) visible node whose box contains the point."""
		candidates = [n for n in self.nodes.values() if n.is_visible and n.bounding_box.contains(x, y)]
		if not candidates:
			return None
		return min(candidates, key=lambda n: n.bounding_box.area)

	def to_llm_string(self) -> str:
		lines = [
			f'Page: {self.title}',
			f'URL: {self.url}',
			f'Viewport: {self.viewport.width}x{self.viewport.height}',
			'',
			'Interactive Elements:',
		]
		relevant = [n for n in self.nodes.values() if n.is_relevant_for_llm()]
		# reading order: top to bottom, then left to right
		relevant.sort(key=lambda n: (n.bounding_box.y, n.bounding_box.x))
		lines.extend(node.to_llm_string(i) for i, node in enumerate(relevant))
		return '\n'.join(lines) + '\n'
