"""OSM tag keys and values used to recognise road, rail and water infrastructure."""

HIGHWAY = "highway"
RAILWAY = "railway"
WATERWAY = "waterway"
ROUTE = "route"
AREA = "area"

FERRY = "ferry"
NO = "no"

BOUNDARY = "boundary"
NAME = "name"
ADMIN_LEVEL = "admin_level"
ADMINISTRATIVE = "administrative"
OUTER_ROLE = "outer"


def is_area(tags: dict) -> bool:
    """Return True when the tags mark a polygonal feature rather than a line."""
    return AREA in tags and tags[AREA] != NO


def has_highway_key_tag(tags: dict) -> bool:
    return HIGHWAY in tags


def has_railway_key_tag(tags: dict) -> bool:
    return RAILWAY in tags


def is_water_based_way(tags: dict) -> bool:
    """Return True for ferry routes and anything carrying a waterway key."""
    return get_waterway_key_tag(tags) is not None


def get_waterway_key_tag(tags: dict) -> str | None:
    """Return the key that holds the waterway type, or None.

    Ferries are mapped as route=ferry, so the route key wins when present;
    canals and rivers use the waterway key directly.
    """
    if tags.get(ROUTE) == FERRY:
        return ROUTE
    if WATERWAY in tags:
        return WATERWAY
    return None
