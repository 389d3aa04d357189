"""Data gathered while parsing the OSM network, shared with the zoning phase.

One ``NetworkReaderData`` instance is owned by a reader. It is written by the
main parse pass, then handed by reference (never copied) to the dependent
zoning phase, which may read it and add nodes it discovers later. There is
no internal locking; only one pass touches it at a time.
"""

import logging
from types import MappingProxyType

from shapely.geometry import box

from exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class NodeRegistry:
    """OSM nodes retained in memory during network parsing.

    Ways reference nodes by id before the node itself has been read, so an id
    can be pre-registered first and completed with the full node later.
    """

    def __init__(self):
        self._pre_registered = set()
        self._nodes = {}

    def pre_register(self, node_id):
        self._pre_registered.add(node_id)

    def register(self, node):
        """Store the full node, replacing whatever was stored for its id."""
        if node.id not in self._pre_registered:
            logger.debug(f"OSM node {node.id} registered without being pre-registered")
            self._pre_registered.add(node.id)
        self._nodes[node.id] = node

    def is_pre_registered(self, node_id):
        return node_id in self._pre_registered

    def contains(self, node_id):
        return node_id in self._nodes

    def get(self, node_id):
        return self._nodes.get(node_id)

    @property
    def registered_nodes(self):
        return MappingProxyType(self._nodes)

    def remove_if(self, predicate):
        """Drop every fully registered node for which predicate(node) holds."""
        for node_id in [nid for nid, node in self._nodes.items() if predicate(node)]:
            del self._nodes[node_id]
            self._pre_registered.discard(node_id)

    def __len__(self):
        return len(self._nodes)

    def reset(self):
        # fresh containers, the old nodes must not stay referenced
        self._pre_registered = set()
        self._nodes = {}


class LayerData:
    """Registries for one output network layer (road, rail or water)."""

    def __init__(self, layer_key):
        self.layer_key = layer_key
        self.vertex_by_node = {}
        self.ways = {}

    def get_or_create_vertex(self, node_id):
        vertex = self.vertex_by_node.get(node_id)
        if vertex is None:
            vertex = len(self.vertex_by_node)
            self.vertex_by_node[node_id] = vertex
        return vertex

    def register_way(self, way_id, node_ids):
        self.ways[way_id] = tuple(node_ids)
        for node_id in node_ids:
            self.get_or_create_vertex(node_id)

    def is_node_present(self, node_id):
        return node_id in self.vertex_by_node

    def reset(self):
        self.vertex_by_node = {}
        self.ways = {}

    def __repr__(self):
        return f"LayerData({self.layer_key!r}, ways={len(self.ways)}, vertices={len(self.vertex_by_node)})"


class NetworkReaderData:
    """Cross-phase registry: nodes, unusable ways, spatial extent and layer data."""

    def __init__(self, settings):
        if settings is None:
            logger.error("Network reader settings provided to network reader data are None")
            raise ConfigurationError("Network reader data requires settings")
        self.settings = settings
        self._init_state()

    def _init_state(self):
        self.node_registry = NodeRegistry()
        self._unavailable_ways = set()
        self._circular_ways = {}
        self._layer_data = {}
        self._bbox = None  # [min_lon, min_lat, max_lon, max_lat]
        self._eligible_nodes = set()
        self._eligible_ways = set()
        self._resolved_boundary = None

    # ── nodes ────────────────────────────────────────────────────────

    def pre_register_node(self, node_id):
        self.node_registry.pre_register(node_id)

    def register_node(self, node):
        self.node_registry.register(node)

    def get_registered_nodes(self):
        return self.node_registry.registered_nodes

    # ── ways ─────────────────────────────────────────────────────────

    def mark_way_unavailable(self, way_id):
        """Record a way that was processed but can not be used.

        Later lookups can skip it without warning about it again.
        """
        self._unavailable_ways.add(way_id)

    def is_way_unavailable(self, way_id):
        return way_id in self._unavailable_ways

    def add_circular_way(self, way):
        self._circular_ways[way.id] = way

    @property
    def circular_ways(self):
        return MappingProxyType(self._circular_ways)

    def clear_circular_ways(self):
        self._circular_ways = {}

    # ── spatial extent ───────────────────────────────────────────────

    def expand_bounding_box(self, lon, lat):
        if self._bbox is None:
            self._bbox = [lon, lat, lon, lat]
            return
        bbox = self._bbox
        if lon < bbox[0]:
            bbox[0] = lon
        if lat < bbox[1]:
            bbox[1] = lat
        if lon > bbox[2]:
            bbox[2] = lon
        if lat > bbox[3]:
            bbox[3] = lat

    def has_bounding_box(self):
        return self._bbox is not None

    def get_bounding_box(self):
        """Bounding box of all processed nodes as a shapely Polygon, None if nothing was processed."""
        if self._bbox is None:
            return None
        return box(*self._bbox)

    def get_boundary(self):
        """The boundary in use, with the polygon found while reading if it was given by name."""
        if self._resolved_boundary is not None:
            return self._resolved_boundary
        return self.settings.boundary

    def set_bounding_area_with_polygon(self, polygon):
        boundary = self.settings.boundary
        if boundary is None:
            raise ConfigurationError("No boundary configured to attach a polygon to")
        self._resolved_boundary = boundary.with_polygon(polygon)

    # ── spatial eligibility ──────────────────────────────────────────

    def mark_node_spatially_eligible(self, node_id):
        self._eligible_nodes.add(node_id)

    def is_node_spatially_eligible(self, node_id):
        return node_id in self._eligible_nodes

    def mark_way_spatially_eligible(self, way_id):
        self._eligible_ways.add(way_id)

    def is_way_spatially_eligible(self, way_id):
        return way_id in self._eligible_ways

    def mark_way_spatially_eligible_if_has_eligible_node(self, way):
        for node_id in way.node_ids:
            if node_id in self._eligible_nodes:
                self._eligible_ways.add(way.id)
                return True
        return False

    # ── layers ───────────────────────────────────────────────────────

    def get_or_create_layer_data(self, layer_key):
        layer_data = self._layer_data.get(layer_key)
        if layer_data is None:
            layer_data = LayerData(layer_key)
            self._layer_data[layer_key] = layer_data
        return layer_data

    def get_layer_data(self, layer_key):
        return self._layer_data.get(layer_key)

    @property
    def layer_data(self):
        return MappingProxyType(self._layer_data)

    def reset(self):
        """Release everything gathered during the last run."""
        self.node_registry.reset()
        for layer_data in self._layer_data.values():
            layer_data.reset()
        self._init_state()

    def summary(self):
        return {
            'nodes': len(self.node_registry),
            'unavailable_ways': len(self._unavailable_ways),
            'circular_ways': len(self._circular_ways),
            'layers': {key: len(data.ways) for key, data in self._layer_data.items()},
            'bounding_box': tuple(self._bbox) if self._bbox is not None else None,
        }
