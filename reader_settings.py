"""Settings that control which OSM ways the network reader parses."""

import logging

from shapely.geometry import Point, Polygon, box

import osm_tags
from config import (
    DEFAULT_COUNTRY,
    DEFAULT_ACTIVATED_HIGHWAY_TYPES, DEFAULT_DEACTIVATED_HIGHWAY_TYPES,
    DEFAULT_ACTIVATED_RAILWAY_TYPES, DEFAULT_DEACTIVATED_RAILWAY_TYPES,
    DEFAULT_ACTIVATED_WATERWAY_TYPES, DEFAULT_DEACTIVATED_WATERWAY_TYPES,
    HIGHWAY_PARSER_ACTIVE, RAILWAY_PARSER_ACTIVE, WATERWAY_PARSER_ACTIVE,
)

logger = logging.getLogger(__name__)


class WaySettings:
    """Activation state for one category of ways (highway, railway or waterway).

    A type is only considered activated while the parser for the category is
    active, switching the parser off hides every activated type.
    """

    def __init__(self, key_tag, activated=(), deactivated=(), parser_active=True):
        self.key_tag = key_tag
        self._activated = set(activated)
        self._deactivated = set(deactivated) - self._activated
        self._parser_active = parser_active

    def is_parser_active(self):
        return self._parser_active

    def activate_parser(self, active=True):
        self._parser_active = active

    def is_type_activated(self, way_type):
        return self._parser_active and way_type in self._activated

    def activate_types(self, *way_types):
        """Activate types; activating anything also switches the parser on."""
        for way_type in way_types:
            self._activated.add(way_type)
            self._deactivated.discard(way_type)
        self._parser_active = True

    def deactivate_types(self, *way_types):
        for way_type in way_types:
            if way_type in self._activated:
                self._activated.remove(way_type)
                self._deactivated.add(way_type)

    def activate_all_types(self):
        self.activate_types(*self._deactivated)

    def deactivate_all_types(self):
        self._deactivated |= self._activated
        self._activated.clear()
        self._parser_active = False

    @property
    def activated_types(self):
        return frozenset(self._activated)

    @property
    def deactivated_types(self):
        return frozenset(self._deactivated)

    def log_deactivated_types(self):
        for way_type in sorted(self._deactivated):
            logger.info(f"[DEACTIVATED] {self.key_tag}={way_type}")


class HighwaySettings(WaySettings):
    def __init__(self):
        super().__init__(
            osm_tags.HIGHWAY,
            DEFAULT_ACTIVATED_HIGHWAY_TYPES,
            DEFAULT_DEACTIVATED_HIGHWAY_TYPES,
            parser_active=HIGHWAY_PARSER_ACTIVE,
        )


class RailwaySettings(WaySettings):
    def __init__(self):
        super().__init__(
            osm_tags.RAILWAY,
            DEFAULT_ACTIVATED_RAILWAY_TYPES,
            DEFAULT_DEACTIVATED_RAILWAY_TYPES,
            parser_active=RAILWAY_PARSER_ACTIVE,
        )


class WaterwaySettings(WaySettings):
    # the type lives under route=ferry or waterway=<type>, see osm_tags
    def __init__(self):
        super().__init__(
            osm_tags.WATERWAY,
            DEFAULT_ACTIVATED_WATERWAY_TYPES,
            DEFAULT_DEACTIVATED_WATERWAY_TYPES,
            parser_active=WATERWAY_PARSER_ACTIVE,
        )


class Boundary:
    """Area restricting which elements are eligible for processing.

    Either given directly as a polygon, or by the name (and optionally the
    boundary type and admin level) of an OSM boundary relation. A named
    boundary gets its polygon from the relation's outer ways while reading,
    see ``with_polygon``.
    """

    def __init__(self, polygon: Polygon | None = None, name: str | None = None,
                 boundary_type: str | None = None, admin_level: str | None = None):
        if polygon is None and name is None:
            raise ValueError("Boundary requires a polygon or a boundary name")
        if polygon is not None and polygon.is_empty:
            raise ValueError("Boundary requires a non-empty polygon")
        self.polygon = polygon
        self.name = name
        self.boundary_type = boundary_type
        self.admin_level = admin_level

    @classmethod
    def of(cls, name, boundary_type=None, admin_level=None):
        return cls(name=name, boundary_type=boundary_type, admin_level=admin_level)

    @classmethod
    def from_bbox(cls, min_lon, min_lat, max_lon, max_lat, name=None):
        return cls(box(min_lon, min_lat, max_lon, max_lat), name=name)

    def has_polygon(self):
        return self.polygon is not None

    def with_polygon(self, polygon):
        return Boundary(polygon, self.name, self.boundary_type, self.admin_level)

    def matches_relation(self, tags):
        """True for a boundary relation carrying this boundary's name, type and admin level."""
        if osm_tags.BOUNDARY not in tags or tags.get(osm_tags.NAME) != self.name:
            return False
        if self.boundary_type is not None and tags[osm_tags.BOUNDARY] != self.boundary_type:
            return False
        return self.admin_level is None or tags.get(osm_tags.ADMIN_LEVEL) == self.admin_level

    def contains(self, lon, lat):
        if self.polygon is None:
            raise ValueError(f"Boundary {self.name!r} has no polygon yet")
        # points on the edge count as inside
        return self.polygon.intersects(Point(lon, lat))

    def __repr__(self):
        bounds = self.polygon.bounds if self.polygon is not None else None
        return f"Boundary(name={self.name!r}, bounds={bounds})"


class NetworkReaderSettings:
    """Configuration surface consumed by the reader for a single run."""

    def __init__(self, country=DEFAULT_COUNTRY):
        self.country = country
        self.highway_settings = HighwaySettings()
        self.railway_settings = RailwaySettings()
        self.waterway_settings = WaterwaySettings()
        self._excluded_ways = set()
        self._boundary = None

    def is_highway_parser_active(self):
        return self.highway_settings.is_parser_active()

    def is_railway_parser_active(self):
        return self.railway_settings.is_parser_active()

    def is_waterway_parser_active(self):
        return self.waterway_settings.is_parser_active()

    def exclude_way(self, way_id):
        """Exclude a way from parsing regardless of its tags."""
        if isinstance(way_id, bool) or not isinstance(way_id, int) or way_id < 0:
            logger.warning(f"Invalid OSM way id ({way_id!r}) provided to be excluded, ignored")
            return
        self._excluded_ways.add(way_id)

    def exclude_ways(self, way_ids):
        for way_id in way_ids:
            self.exclude_way(way_id)

    def is_way_excluded(self, way_id):
        return way_id in self._excluded_ways

    @property
    def excluded_ways(self):
        return frozenset(self._excluded_ways)

    @property
    def boundary(self):
        return self._boundary

    @boundary.setter
    def boundary(self, value):
        if value is not None and not isinstance(value, Boundary):
            raise TypeError(f"Expected a Boundary, got {type(value).__name__}")
        self._boundary = value

    def has_boundary(self):
        return self._boundary is not None

    def log_settings(self):
        logger.info(f"Network reader settings for country: {self.country}")
        for settings in (self.highway_settings, self.railway_settings, self.waterway_settings):
            state = "active" if settings.is_parser_active() else "inactive"
            logger.info(f"{settings.key_tag} parser {state}, "
                        f"{len(settings.activated_types)} types activated")
            if settings.is_parser_active():
                settings.log_deactivated_types()
        if self._excluded_ways:
            logger.info(f"{len(self._excluded_ways)} OSM ways explicitly excluded")
        if self._boundary is not None:
            logger.info(f"Parsing restricted to {self._boundary}")
