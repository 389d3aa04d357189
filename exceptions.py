"""Exceptions raised while reading an OSM network."""


class OsmReaderError(Exception):
    """Base class for all reader errors."""


class OsmConversionError(OsmReaderError):
    """A single OSM element could not be converted.

    Raised by way handlers; the way processing guard logs it and moves on to
    the next element.
    """

    def __init__(self, message, osm_id=None):
        super().__init__(message)
        self.osm_id = osm_id


class ConfigurationError(OsmReaderError):
    """Required settings or data are missing; the reader cannot be used."""
