import unittest

import pytest
from shapely.geometry import box

from exceptions import ConfigurationError
from osm_stream import OsmNode, OsmWay
from reader_data import LayerData, NetworkReaderData, NodeRegistry
from reader_settings import Boundary, NetworkReaderSettings


class TestNodeRegistry(unittest.TestCase):
    def setUp(self):
        self.registry = NodeRegistry()

    def test_pre_register_then_register(self):
        self.registry.pre_register(5)
        self.registry.pre_register(5)
        self.assertTrue(self.registry.is_pre_registered(5))
        self.assertNotIn(5, self.registry.registered_nodes)

        node = OsmNode(id=5, lat=1.0, lon=2.0)
        self.registry.register(node)
        self.assertEqual(self.registry.registered_nodes[5], node)

    def test_register_without_pre_registration(self):
        self.registry.register(OsmNode(id=9, lat=0.0, lon=0.0))
        self.assertTrue(self.registry.contains(9))
        self.assertTrue(self.registry.is_pre_registered(9))

    def test_register_twice_is_idempotent(self):
        node = OsmNode(id=3, lat=1.0, lon=1.0)
        self.registry.register(node)
        self.registry.register(OsmNode(id=3, lat=1.0, lon=1.0))
        self.assertEqual(len(self.registry.registered_nodes), 1)

    def test_last_write_wins(self):
        self.registry.register(OsmNode(id=3, lat=1.0, lon=1.0))
        self.registry.register(OsmNode(id=3, lat=2.0, lon=2.0))
        self.assertEqual(self.registry.get(3).lat, 2.0)

    def test_registered_nodes_is_read_only_live_view(self):
        view = self.registry.registered_nodes
        self.registry.register(OsmNode(id=1, lat=0.0, lon=0.0))
        self.assertIn(1, view)
        with self.assertRaises(TypeError):
            view[2] = OsmNode(id=2, lat=0.0, lon=0.0)

    def test_remove_if(self):
        self.registry.register(OsmNode(id=1, lat=0.0, lon=0.0))
        self.registry.register(OsmNode(id=2, lat=5.0, lon=0.0))
        self.registry.remove_if(lambda node: node.lat > 1.0)
        self.assertEqual(list(self.registry.registered_nodes), [1])
        self.assertFalse(self.registry.is_pre_registered(2))


class TestNetworkReaderData(unittest.TestCase):
    def setUp(self):
        self.settings = NetworkReaderSettings()
        self.data = NetworkReaderData(self.settings)

    def test_missing_settings_is_fatal(self):
        with self.assertRaises(ConfigurationError):
            NetworkReaderData(None)

    def test_pre_registration_does_not_block_registration(self):
        self.data.pre_register_node(5)
        self.data.register_node(OsmNode(id=5, lat=1.0, lon=2.0))
        node = self.data.get_registered_nodes()[5]
        self.assertEqual((node.lat, node.lon), (1.0, 2.0))

    def test_unavailable_ways(self):
        self.data.mark_way_unavailable(42)
        self.assertTrue(self.data.is_way_unavailable(42))
        self.assertFalse(self.data.is_way_unavailable(43))

    def test_bounding_box_empty_until_expanded(self):
        self.assertFalse(self.data.has_bounding_box())
        self.assertIsNone(self.data.get_bounding_box())

    def test_expand_bounding_box(self):
        for x, y in ((0, 0), (10, 10), (-5, 3)):
            self.data.expand_bounding_box(x, y)
        self.assertEqual(self.data.get_bounding_box().bounds, (-5.0, 0.0, 10.0, 10.0))

    def test_expand_with_contained_point_is_noop(self):
        self.data.expand_bounding_box(0, 0)
        self.data.expand_bounding_box(10, 10)
        self.data.expand_bounding_box(5, 5)
        self.assertEqual(self.data.get_bounding_box().bounds, (0.0, 0.0, 10.0, 10.0))

    def test_boundary_comes_from_settings(self):
        self.assertIsNone(self.data.get_boundary())
        boundary = Boundary.from_bbox(0, 0, 1, 1, name="unit")
        self.settings.boundary = boundary
        self.assertIs(self.data.get_boundary(), boundary)

    def test_named_boundary_resolved_with_polygon(self):
        self.settings.boundary = Boundary.of("unit")
        self.data.set_bounding_area_with_polygon(box(0, 0, 1, 1))
        resolved = self.data.get_boundary()
        self.assertEqual(resolved.name, "unit")
        self.assertTrue(resolved.contains(0.5, 0.5))
        self.assertFalse(self.settings.boundary.has_polygon())

        self.data.reset()
        self.assertIs(self.data.get_boundary(), self.settings.boundary)

    def test_polygon_without_configured_boundary_rejected(self):
        with self.assertRaises(ConfigurationError):
            self.data.set_bounding_area_with_polygon(box(0, 0, 1, 1))

    def test_layer_data_identity(self):
        first = self.data.get_or_create_layer_data("road")
        first.register_way(100, [1, 2])
        second = self.data.get_or_create_layer_data("road")
        self.assertIs(first, second)
        self.assertIn(100, second.ways)
        self.assertIsNone(self.data.get_layer_data("rail"))

    def test_circular_ways(self):
        way = OsmWay(id=8, node_ids=(1, 2, 3, 1))
        self.data.add_circular_way(way)
        self.assertIs(self.data.circular_ways[8], way)
        self.data.clear_circular_ways()
        self.assertEqual(len(self.data.circular_ways), 0)

    def test_spatial_eligibility(self):
        self.data.mark_node_spatially_eligible(2)
        self.assertTrue(self.data.mark_way_spatially_eligible_if_has_eligible_node(
            OsmWay(id=1, node_ids=(1, 2))))
        self.assertFalse(self.data.mark_way_spatially_eligible_if_has_eligible_node(
            OsmWay(id=2, node_ids=(3, 4))))
        self.assertTrue(self.data.is_way_spatially_eligible(1))
        self.assertFalse(self.data.is_way_spatially_eligible(2))

    def test_reset_releases_everything(self):
        self.data.register_node(OsmNode(id=1, lat=0.0, lon=0.0))
        self.data.mark_way_unavailable(42)
        self.data.expand_bounding_box(1, 1)
        layer = self.data.get_or_create_layer_data("road")
        layer.register_way(1, [1, 2])
        self.data.mark_node_spatially_eligible(1)

        self.data.reset()

        self.assertEqual(len(self.data.get_registered_nodes()), 0)
        self.assertFalse(self.data.node_registry.is_pre_registered(1))
        self.assertFalse(self.data.is_way_unavailable(42))
        self.assertIsNone(self.data.get_bounding_box())
        self.assertEqual(len(self.data.layer_data), 0)
        self.assertEqual(layer.ways, {})
        self.assertFalse(self.data.is_node_spatially_eligible(1))

    def test_summary(self):
        self.data.register_node(OsmNode(id=1, lat=0.0, lon=0.0))
        self.data.get_or_create_layer_data("rail").register_way(3, [1, 2])
        summary = self.data.summary()
        self.assertEqual(summary["nodes"], 1)
        self.assertEqual(summary["layers"], {"rail": 1})
        self.assertIsNone(summary["bounding_box"])


class TestLayerData:
    def test_vertices_are_stable(self):
        layer = LayerData("road")
        assert layer.get_or_create_vertex(10) == 0
        assert layer.get_or_create_vertex(20) == 1
        assert layer.get_or_create_vertex(10) == 0

    def test_register_way_creates_vertices(self):
        layer = LayerData("road")
        layer.register_way(1, [10, 20, 30])
        assert layer.ways[1] == (10, 20, 30)
        assert layer.is_node_present(20)
        assert not layer.is_node_present(40)

    @pytest.mark.parametrize("layer_key", ["road", "rail", "water"])
    def test_repr_mentions_layer(self, layer_key):
        assert layer_key in repr(LayerData(layer_key))


if __name__ == "__main__":
    unittest.main()
