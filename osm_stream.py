"""Stream OSM XML elements one at a time and fetch extracts from Overpass."""

import logging
import time
from dataclasses import dataclass, field
from xml.etree import ElementTree as ET

import requests

from config import OVERPASS_URL, OVERPASS_TIMEOUT, DOWNLOAD_MAX_RETRIES, DOWNLOAD_RETRY_DELAY

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OsmNode:
    id: int
    lat: float
    lon: float
    tags: dict = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class OsmWay:
    id: int
    node_ids: tuple
    tags: dict = field(default_factory=dict, compare=False)

    def is_closed(self):
        return len(self.node_ids) > 2 and self.node_ids[0] == self.node_ids[-1]


@dataclass(frozen=True)
class OsmRelation:
    id: int
    members: tuple  # (type, ref, role) triples
    tags: dict = field(default_factory=dict, compare=False)

    def way_refs(self, role=None):
        return [ref for member_type, ref, member_role in self.members
                if member_type == 'way' and (role is None or member_role == role)]


def _read_tags(elem):
    return {t.get('k'): t.get('v', '') for t in elem.findall('tag')}


def _to_element(elem):
    if elem.tag == 'node':
        return OsmNode(
            id=int(elem.get('id')),
            lat=float(elem.get('lat')),
            lon=float(elem.get('lon')),
            tags=_read_tags(elem),
        )
    if elem.tag == 'way':
        return OsmWay(
            id=int(elem.get('id')),
            node_ids=tuple(int(nd.get('ref')) for nd in elem.findall('nd')),
            tags=_read_tags(elem),
        )
    return OsmRelation(
        id=int(elem.get('id')),
        members=tuple((m.get('type'), int(m.get('ref')), m.get('role', ''))
                      for m in elem.findall('member')),
        tags=_read_tags(elem),
    )


def iter_elements(osm_path):
    """Yield OsmNode, OsmWay and OsmRelation objects in file order.

    Each top level element is dropped from the parsed tree once converted, so
    only the element being read is held in memory. Malformed elements (no
    coordinates, non numeric ids or references) are skipped with a warning.
    """
    root = None
    for event, elem in ET.iterparse(str(osm_path), events=('start', 'end')):
        if event == 'start':
            if root is None:
                root = elem
            continue
        if elem.tag not in ('node', 'way', 'relation'):
            continue
        try:
            element = _to_element(elem)
        except (TypeError, ValueError):
            logger.warning(f"Skipping malformed OSM {elem.tag} (id:{elem.get('id')})")
            continue
        finally:
            root.clear()
        yield element


def iter_ways(osm_path):
    for element in iter_elements(osm_path):
        if isinstance(element, OsmWay):
            yield element


def build_overpass_query(bbox, timeout=OVERPASS_TIMEOUT):
    """Query all ways with a transport key and all boundary relations in bbox, plus their members."""
    min_lat, min_lon, max_lat, max_lon = bbox
    area = f"{min_lat},{min_lon},{max_lat},{max_lon}"
    return f"""
    [out:xml][timeout:{timeout}];
    (
      way["highway"]({area});
      way["railway"]({area});
      way["waterway"]({area});
      way["route"="ferry"]({area});
      relation["boundary"]({area});
    );
    (._;>;);
    out body;
    """


def parse_bbox(bbox_str):
    """Parse 'min_lat,min_lon,max_lat,max_lon' into a tuple of floats."""
    parts = bbox_str.split(',')
    if len(parts) != 4:
        raise ValueError("Bbox must have 4 values: min_lat,min_lon,max_lat,max_lon")
    return tuple(float(p) for p in parts)


def download_osm_extract(bbox, output_path, overpass_url=OVERPASS_URL,
                         max_retries=DOWNLOAD_MAX_RETRIES, retry_delay=DOWNLOAD_RETRY_DELAY):
    """Download an OSM XML extract for bbox into output_path.

    Retries on rate limiting and timeouts. Returns True on success.
    """
    query = build_overpass_query(bbox)
    logger.info(f"Starting OSM data download for bbox: {bbox}")

    for attempt in range(max_retries):
        try:
            logger.info(f"Attempt {attempt + 1}/{max_retries}")
            response = requests.post(
                overpass_url,
                data={'data': query},
                timeout=OVERPASS_TIMEOUT + 30
            )

            if response.status_code == 200:
                with open(output_path, 'w', encoding='utf-8') as f:
                    f.write(response.text)
                logger.info(f"OSM data saved to {output_path}")
                return True
            elif response.status_code == 429:
                logger.warning("Rate limited by Overpass API, retrying...")
                time.sleep(retry_delay * (attempt + 1))
            else:
                logger.error(f"Error downloading data: {response.status_code}")

        except requests.exceptions.Timeout:
            logger.warning(f"Request timeout on attempt {attempt + 1}, retrying...")
            time.sleep(retry_delay)
        except requests.exceptions.RequestException as e:
            logger.error(f"Network error: {e}")
            if attempt < max_retries - 1:
                time.sleep(retry_delay)

    logger.error("Failed to download OSM data after all retries")
    return False
