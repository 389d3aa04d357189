# config.py — OSM network reader configuration
# Edit this file to change default activated way types, download settings, etc.

# ── Country ──────────────────────────────────────────────────────────
# Used for logging only; country specific defaults are not applied by the reader
DEFAULT_COUNTRY = "Global"

# ── Highway types ────────────────────────────────────────────────────
# Value of the "highway" key that is parsed as road infrastructure by default
DEFAULT_ACTIVATED_HIGHWAY_TYPES = frozenset({
    "motorway", "motorway_link",
    "trunk", "trunk_link",
    "primary", "primary_link",
    "secondary", "secondary_link",
    "tertiary", "tertiary_link",
    "unclassified", "residential", "living_street", "service",
    "pedestrian", "track", "road",
})

# Known highway types that are recognised but not parsed unless activated
DEFAULT_DEACTIVATED_HIGHWAY_TYPES = frozenset({
    "footway", "bridleway", "steps", "corridor", "cycleway", "path",
    "elevator", "platform", "proposed", "construction", "turning_circle",
    "raceway",
})

# ── Railway types ────────────────────────────────────────────────────
DEFAULT_ACTIVATED_RAILWAY_TYPES = frozenset({
    "light_rail", "rail", "subway", "tram",
})

DEFAULT_DEACTIVATED_RAILWAY_TYPES = frozenset({
    "funicular", "monorail", "narrow_gauge", "abandoned", "construction",
    "disused", "miniature", "razed", "turntable", "proposed",
})

# ── Waterway types ───────────────────────────────────────────────────
# route=ferry is the way water based transport is mapped; canals and rivers
# carry a "waterway" key instead and are off unless activated
DEFAULT_ACTIVATED_WATERWAY_TYPES = frozenset({"ferry"})

DEFAULT_DEACTIVATED_WATERWAY_TYPES = frozenset({
    "canal", "river", "stream", "fairway", "ditch", "drain",
})

# ── Parsers ──────────────────────────────────────────────────────────
# Rail and water are opt-in, like roads they can be toggled per run
HIGHWAY_PARSER_ACTIVE = True
RAILWAY_PARSER_ACTIVE = False
WATERWAY_PARSER_ACTIVE = False

# ── Overpass ─────────────────────────────────────────────────────────
OVERPASS_URL = "https://overpass-api.de/api/interpreter"
OVERPASS_TIMEOUT = 180

# Number of attempts and base delay (seconds) when Overpass rate limits us
DOWNLOAD_MAX_RETRIES = 3
DOWNLOAD_RETRY_DELAY = 5

# ── Files ────────────────────────────────────────────────────────────
DATA_FILE = "osm_data.xml"
LOG_FILE = "osm_network_reader.log"
