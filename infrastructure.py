"""Decide whether a set of OSM tags describes activated road, rail or water infrastructure."""

import osm_tags

# network layer each category of infrastructure ends up in
LAYER_BY_KEY_TAG = {
    osm_tags.HIGHWAY: 'road',
    osm_tags.RAILWAY: 'rail',
    osm_tags.WATERWAY: 'water',
}


class InfrastructureClassifier:
    """Tag based classifier driven by the activation state in the reader settings.

    Categories are checked highway first, then railway, then waterway. The
    first category whose parser is active and whose key is present decides
    the outcome, so a way tagged both highway and railway is judged on its
    highway value alone.
    """

    def __init__(self, settings):
        self.settings = settings

    def match(self, tags):
        """Return (way settings, type value) of the deciding category, or None."""
        if osm_tags.is_area(tags):
            return None

        settings = self.settings
        if settings.is_highway_parser_active() and osm_tags.has_highway_key_tag(tags):
            return settings.highway_settings, tags[osm_tags.HIGHWAY]
        if settings.is_railway_parser_active() and osm_tags.has_railway_key_tag(tags):
            return settings.railway_settings, tags[osm_tags.RAILWAY]
        if settings.is_waterway_parser_active() and osm_tags.is_water_based_way(tags):
            return settings.waterway_settings, tags[osm_tags.get_waterway_key_tag(tags)]
        return None

    def classify(self, tags):
        matched = self.match(tags)
        if matched is None:
            return False
        way_settings, way_type = matched
        return way_settings.is_type_activated(way_type)

    __call__ = classify

    def layer_key(self, tags):
        """Layer an accepted way belongs to, None when the tags are not infrastructure."""
        matched = self.match(tags)
        if matched is None:
            return None
        return LAYER_BY_KEY_TAG[matched[0].key_tag]
