#!/usr/bin/env python3
"""
network_reader.py — Parse road, rail and water infrastructure from an OSM XML extract.

Stages:
  0. Boundary:    when the boundary is given by name only, build its polygon from
                   the outer ways of the matching OSM boundary relation
  1. Pre-process: stream the ways, pre-register the nodes of every activated,
                   spatially eligible way
  2. Main pass:   register the pre-registered nodes, hand each accepted way to
                   the way builder, which fills the per layer data
  3. Hand over:   expose the gathered data to the zoning phase via
                   OsmNetworkReader.to_zoning_data()

Usage:
    python3 network_reader.py --input extract.osm
    python3 network_reader.py --download --bbox "39.85,-75.65,40.35,-74.85"
    python3 network_reader.py --input extract.osm --railway --exclude-way 123
"""

import argparse
import json
import logging
import os
from xml.etree import ElementTree as ET

from config import DATA_FILE, LOG_FILE
from shapely.geometry import LineString
from shapely.ops import polygonize, unary_union

import osm_tags
from exceptions import ConfigurationError, OsmConversionError, OsmReaderError
from infrastructure import InfrastructureClassifier
from osm_stream import (
    OsmNode, OsmRelation, OsmWay, iter_elements, iter_ways, download_osm_extract, parse_bbox,
)
from reader_data import NetworkReaderData
from reader_settings import Boundary, NetworkReaderSettings
from way_guard import WayProcessingGuard

logger = logging.getLogger(__name__)


def configure_logging(log_file=LOG_FILE, level=logging.INFO):
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler()
        ]
    )


class NodePreRegistration:
    """Pre-processing handler: marks the nodes of eligible ways for retention."""

    def __init__(self, data):
        self.data = data

    def accepts(self, way, tags):
        if self.data.get_boundary() is not None:
            if not self.data.mark_way_spatially_eligible_if_has_eligible_node(way):
                return False
        else:
            self.data.mark_way_spatially_eligible(way.id)

        for node_id in way.node_ids:
            self.data.pre_register_node(node_id)
        return True


class WayBuilder:
    """Main pass handler: resolves a way's nodes and registers it on its layer.

    Ways left with fewer than two usable nodes are marked unavailable and
    reported as conversion errors. Closed ways are kept aside as circular
    ways for the caller to split. No link geometry is built here.
    """

    def __init__(self, data, classifier):
        self.data = data
        self.classifier = classifier

    def accepts(self, way, tags):
        data = self.data
        if not data.is_way_spatially_eligible(way.id) or data.is_way_unavailable(way.id):
            return False

        nodes = [data.node_registry.get(node_id) for node_id in way.node_ids]
        available = [node for node in nodes if node is not None]
        if len({node.id for node in available}) < 2:
            data.mark_way_unavailable(way.id)
            raise OsmConversionError(
                f"OSM way {way.id} has fewer than two available nodes, ignored", osm_id=way.id)
        if len(available) < len(nodes):
            logger.warning(f"OSM way {way.id} references {len(nodes) - len(available)} "
                           f"unavailable nodes, truncated")

        layer_key = self.classifier.layer_key(tags)
        if layer_key is None:
            raise OsmConversionError(f"No network layer for OSM way {way.id}", osm_id=way.id)

        for node in available:
            data.expand_bounding_box(node.lon, node.lat)

        if way.is_closed():
            data.add_circular_way(way)

        data.get_or_create_layer_data(layer_key).register_way(
            way.id, [node.id for node in available])
        return True


def build_boundary_polygon(boundary, osm_path):
    """Build the polygon of a named boundary from its OSM relation.

    Three passes over the file: find the relation, collect its outer ways,
    then collect the coordinates of their nodes.
    """
    relation = next((element for element in iter_elements(osm_path)
                     if isinstance(element, OsmRelation) and boundary.matches_relation(element.tags)), None)
    if relation is None:
        raise OsmReaderError(f"No OSM boundary relation found for {boundary.name!r}")
    logger.info(f"Boundary identification: found OSM relation {relation.id} for {boundary.name!r}")

    outer_way_ids = set(relation.way_refs(osm_tags.OUTER_ROLE))
    outer_ways = [way for way in iter_ways(osm_path) if way.id in outer_way_ids]
    node_ids = {node_id for way in outer_ways for node_id in way.node_ids}
    coords = {element.id: (element.lon, element.lat) for element in iter_elements(osm_path)
              if isinstance(element, OsmNode) and element.id in node_ids}

    lines = []
    for way in outer_ways:
        points = [coords[node_id] for node_id in way.node_ids if node_id in coords]
        if len(points) >= 2:
            lines.append(LineString(points))
    noded = unary_union(lines)
    polygons = list(polygonize(getattr(noded, 'geoms', [noded])))
    if not polygons:
        raise OsmReaderError(f"Unable to construct a polygon for boundary {boundary.name!r} "
                             f"from {len(lines)} outer ways")
    logger.info(f"Boundary {boundary.name!r} built from {len(lines)} outer ways")
    return unary_union(polygons)


class NetworkToZoningData:
    """What the zoning phase gets to see of a finished network read.

    Wraps the reader's data by reference. Besides read access the zoning
    phase may add nodes it needs later on, e.g. for stop connectors.
    """

    def __init__(self, data, settings):
        if data is None:
            logger.error("Network data provided to network to zoning data is None")
            raise ConfigurationError("Network to zoning data requires network data")
        if settings is None:
            logger.error("Network reader settings provided to network to zoning data are None")
            raise ConfigurationError("Network to zoning data requires network reader settings")
        self._data = data
        self._settings = settings

    @property
    def settings(self):
        return self._settings

    def get_network_nodes(self):
        return self._data.get_registered_nodes()

    def get_bounding_box(self):
        return self._data.get_bounding_box()

    def get_boundary(self):
        return self._data.get_boundary()

    def is_way_unavailable(self, way_id):
        return self._data.is_way_unavailable(way_id)

    def get_layer_data(self, layer_key):
        return self._data.get_layer_data(layer_key)

    def pre_register_node(self, node_id):
        self._data.pre_register_node(node_id)

    def register_node(self, node):
        self._data.register_node(node)


class OsmNetworkReader:
    """Reads an OSM XML extract in two passes and keeps the gathered data."""

    def __init__(self, settings=None):
        self.settings = settings or NetworkReaderSettings()
        self.data = NetworkReaderData(self.settings)
        self.classifier = InfrastructureClassifier(self.settings)
        self.failures = []
        self.stats = {}

    def _guard(self, handler):
        return WayProcessingGuard(self.settings, handler, classifier=self.classifier)

    def _pre_process(self, osm_path):
        boundary = self.data.get_boundary()
        guard = self._guard(NodePreRegistration(self.data))
        for element in iter_elements(osm_path):
            if isinstance(element, OsmNode):
                if boundary is not None and boundary.contains(element.lon, element.lat):
                    self.data.mark_node_spatially_eligible(element.id)
            elif isinstance(element, OsmWay):
                guard.process(element)
        logger.info(f"Pre-processing: {len(guard.failures)} failures, stats {guard.stats.as_dict()}")

    def _main_process(self, osm_path):
        guard = self._guard(WayBuilder(self.data, self.classifier))
        node_registry = self.data.node_registry
        for element in iter_elements(osm_path):
            if isinstance(element, OsmNode):
                if node_registry.is_pre_registered(element.id):
                    self.data.register_node(element)
            elif isinstance(element, OsmWay):
                guard.process(element)
        return guard

    def read(self, osm_path):
        """Parse osm_path into the reader's data. Returns the data."""
        if not os.path.exists(osm_path):
            raise FileNotFoundError(f"OSM file not found: {osm_path}")

        self.settings.log_settings()
        logger.info(f"Parsing OSM network from {osm_path}")
        try:
            boundary = self.settings.boundary
            if boundary is not None and not boundary.has_polygon():
                self.data.set_bounding_area_with_polygon(build_boundary_polygon(boundary, osm_path))
            self._pre_process(osm_path)
            guard = self._main_process(osm_path)
        except ET.ParseError as e:
            logger.error(f"Error parsing XML: {e}")
            raise

        self.failures = list(guard.failures)
        self.stats = guard.stats.as_dict()
        logger.info(f"Parsed {self.stats['accepted']} OSM ways, "
                    f"{len(self.data.get_registered_nodes())} OSM nodes retained")
        if self.failures:
            logger.warning(f"{len(self.failures)} OSM ways could not be converted")
        return self.data

    def to_zoning_data(self):
        return NetworkToZoningData(self.data, self.settings)

    def reset(self):
        self.data.reset()
        self.failures = []
        self.stats = {}


def main():
    parser = argparse.ArgumentParser(
        description='Parse OSM road, rail and water infrastructure',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python network_reader.py --input extract.osm
  python network_reader.py --download --bbox "39.85,-75.65,40.35,-74.85" --stats
  python network_reader.py --input extract.osm --railway --no-highway
  python network_reader.py --input extract.osm --boundary-name "Philadelphia"
        """
    )

    parser.add_argument('--input', type=str, default=DATA_FILE, help='OSM XML file to read')
    parser.add_argument('--download', action='store_true', help='Download the extract from Overpass first')
    parser.add_argument('--bbox', type=str, help='Bounding box: min_lat,min_lon,max_lat,max_lon')
    parser.add_argument('--boundary', action='store_true', help='Restrict parsing to --bbox')
    parser.add_argument('--boundary-name', type=str, help='Restrict parsing to the OSM boundary relation with this name')
    parser.add_argument('--exclude-way', type=int, action='append', default=[], help='OSM way id to exclude')
    parser.add_argument('--no-highway', action='store_true', help='Do not parse highways')
    parser.add_argument('--railway', action='store_true', help='Parse railways')
    parser.add_argument('--waterway', action='store_true', help='Parse ferries and waterways')
    parser.add_argument('--stats', action='store_true', help='Display statistics about the parsed network')

    args = parser.parse_args()
    configure_logging()

    if (args.download or args.boundary) and not args.bbox:
        logger.error("--bbox is required for --download and --boundary")
        return False

    settings = NetworkReaderSettings()
    settings.highway_settings.activate_parser(not args.no_highway)
    settings.railway_settings.activate_parser(args.railway)
    settings.waterway_settings.activate_parser(args.waterway)
    settings.exclude_ways(args.exclude_way)

    if args.bbox:
        min_lat, min_lon, max_lat, max_lon = parse_bbox(args.bbox)
        if args.boundary:
            settings.boundary = Boundary.from_bbox(min_lon, min_lat, max_lon, max_lat)
        if args.download and not download_osm_extract((min_lat, min_lon, max_lat, max_lon), args.input):
            return False

    if args.boundary_name:
        settings.boundary = Boundary.of(args.boundary_name)

    reader = OsmNetworkReader(settings)
    try:
        reader.read(args.input)
    except (FileNotFoundError, ET.ParseError, OsmReaderError) as e:
        logger.error(f"Unable to read OSM network: {e}")
        return False

    if args.stats:
        logger.info(f"Network Statistics: {json.dumps(reader.data.summary() | reader.stats, indent=2)}")

    logger.info("Pipeline completed successfully")
    return True


if __name__ == '__main__':
    success = main()
    raise SystemExit(0 if success else 1)
