"""Element detection command."""

import logging
from typing import Any

from browser_bridge.bridge.sessions import SessionRegistry
from browser_bridge.bridge.views import PageParams
from browser_bridge.dom.service import DomService

logger = logging.getLogger(__name__)

COMMANDS = {'getDomTree'}


async def handle(method: str, registry: SessionRegistry, params: dict[str, Any]) -> Any:
	"""Run element detection on a page and return the DomSnapshot as plain JSON data."""
	if method == 'getDomTree':
		page_id = PageParams.model_validate(params).page_id
		page = registry.get_page(page_id).page
		snapshot = await DomService(page).get_dom_tree()
		return snapshot.model_dump(mode='json', by_alias=True)

	raise ValueError(f'Unknown dom method: {method}')
