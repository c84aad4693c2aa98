from browser_bridge.dom.service import DomService
from browser_bridge.dom.views import BoundingBox, DomSnapshot, InteractiveNode, NodeAttributes, ViewportInfo

__all__ = ['DomService', 'DomSnapshot', 'InteractiveNode', 'NodeAttributes', 'BoundingBox', 'ViewportInfo']
