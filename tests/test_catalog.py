import json
import tempfile
import unittest
from pathlib import Path

from tilecollapse.core.constants import Direction
from tilecollapse.core.exceptions import CatalogError
from tilecollapse.core.models import TileRule
from tilecollapse.data.catalog import TileCatalog, derive_catalog, load_catalog
from tilecollapse.engine.grid import TileGrid


class TileRuleTests(unittest.TestCase):
    def test_empty_allow_list_means_unrestricted(self) -> None:
        rule = TileRule("grass")
        for direction in Direction:
            self.assertTrue(rule.allows("anything", direction))

    def test_allow_list_restricts_only_its_direction(self) -> None:
        rule = TileRule("shore", allowed_neighbors={Direction.LEFT: ["sea"]})
        self.assertTrue(rule.allows("sea", Direction.LEFT))
        self.assertFalse(rule.allows("grass", Direction.LEFT))
        self.assertTrue(rule.allows("grass", Direction.RIGHT))

    def test_blank_neighbor_is_never_allowed(self) -> None:
        rule = TileRule("grass")
        self.assertFalse(rule.allows("", Direction.LEFT))
        self.assertFalse(rule.allows("   ", Direction.FORWARD))

    def test_compatibility_checks_both_sides(self) -> None:
        road = TileRule("road", allowed_neighbors={Direction.RIGHT: ["road", "house"]})
        house = TileRule("house", allowed_neighbors={Direction.LEFT: ["garden"]})
        other_road = TileRule("road")
        # road lets a house sit to its right, but the house refuses a road on its left
        self.assertFalse(road.compatible_with(house, Direction.RIGHT))
        self.assertTrue(road.compatible_with(other_road, Direction.RIGHT))

    def test_direction_opposites(self) -> None:
        self.assertIs(Direction.LEFT.opposite, Direction.RIGHT)
        self.assertIs(Direction.FORWARD.opposite, Direction.BACKWARD)
        self.assertEqual(Direction.FORWARD.step, (0, 1))
        self.assertEqual(Direction.LEFT.step, (-1, 0))


class TileCatalogTests(unittest.TestCase):
    def test_first_joker_wins_and_jokers_are_not_selectable(self) -> None:
        catalog = TileCatalog(
            [
                TileRule("grass"),
                TileRule("fill", is_joker=True),
                TileRule("fill2", is_joker=True),
                TileRule("rock", weight=0.0),
            ]
        )
        self.assertEqual(catalog.joker.type_id, "fill")
        self.assertEqual([r.type_id for r in catalog.selectable_rules], ["grass"])
        self.assertTrue(catalog.is_usable)

    def test_blank_type_ids_are_skipped(self) -> None:
        catalog = TileCatalog([TileRule(""), TileRule("grass")])
        self.assertEqual(catalog.type_ids, ["grass"])

    def test_duplicate_type_id_raises(self) -> None:
        with self.assertRaises(CatalogError):
            TileCatalog([TileRule("grass"), TileRule("grass", weight=2.0)])

    def test_negative_weight_raises(self) -> None:
        with self.assertRaises(CatalogError):
            TileCatalog([TileRule("grass", weight=-1.0)])

    def test_catalog_without_weight_or_joker_is_unusable(self) -> None:
        catalog = TileCatalog([TileRule("rock", weight=0.0)])
        self.assertFalse(catalog.is_usable)

    def test_partition_treats_empty_set_as_unrestricted(self) -> None:
        catalog = TileCatalog([TileRule("wall"), TileRule("floor"), TileRule("door")])
        blocked, unblocked = catalog.partition(frozenset({"wall"}), frozenset())
        self.assertEqual([r.type_id for r in blocked], ["wall"])
        self.assertEqual([r.type_id for r in unblocked], ["wall", "floor", "door"])

    def test_from_dict_parses_directions_case_insensitively(self) -> None:
        catalog = TileCatalog.from_dict(
            {
                "tiles": [
                    {"type_id": "sea", "weight": 3, "allowed_neighbors": {"left": ["sea"], "Forward": ["sand"]}},
                    {"type_id": "fill", "is_joker": True},
                ]
            }
        )
        sea = catalog.get("sea")
        self.assertEqual(sea.weight, 3.0)
        self.assertEqual(sea.allowed(Direction.LEFT), ["sea"])
        self.assertEqual(sea.allowed(Direction.FORWARD), ["sand"])
        self.assertEqual(catalog.joker.type_id, "fill")

    def test_from_dict_rejects_unknown_direction(self) -> None:
        with self.assertRaises(CatalogError):
            TileCatalog.from_dict({"tiles": [{"type_id": "sea", "allowed_neighbors": {"up": []}}]})

    def test_from_dict_rejects_non_object_payload(self) -> None:
        with self.assertRaises(CatalogError):
            TileCatalog.from_dict([{"type_id": "sea"}])

    def test_from_dict_rejects_list_valued_neighbor_map(self) -> None:
        with self.assertRaises(CatalogError):
            TileCatalog.from_dict({"tiles": [{"type_id": "sea", "allowed_neighbors": ["sea"]}]})

    def test_from_dict_rejects_string_allow_list(self) -> None:
        # a bare string would otherwise be split into single characters
        with self.assertRaises(CatalogError):
            TileCatalog.from_dict({"tiles": [{"type_id": "sea", "allowed_neighbors": {"left": "sea"}}]})

    def test_load_catalog_rejects_undecodable_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "catalog.json"
            path.write_bytes(b"\xff\xfe{not utf-8")
            with self.assertRaises(CatalogError):
                load_catalog(path)

    def test_load_catalog_rejects_top_level_list(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "catalog.json"
            path.write_text(json.dumps([{"type_id": "sea"}]), encoding="utf-8")
            with self.assertRaises(CatalogError):
                load_catalog(path)

    def test_load_catalog_round_trips_json_file(self) -> None:
        catalog = TileCatalog(
            [TileRule("sea", allowed_neighbors={Direction.RIGHT: ["sand"]}), TileRule("sand")]
        )
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "catalog.json"
            path.write_text(json.dumps(catalog.to_jsonable()), encoding="utf-8")
            loaded = load_catalog(path)
        self.assertEqual(loaded.type_ids, ["sea", "sand"])
        self.assertEqual(loaded.get("sea").allowed(Direction.RIGHT), ["sand"])

    def test_load_catalog_missing_file_raises(self) -> None:
        with self.assertRaises(CatalogError):
            load_catalog("does/not/exist.json")


class DeriveCatalogTests(unittest.TestCase):
    def test_derives_weights_and_symmetric_neighbors(self) -> None:
        sample = TileGrid.from_rows([["sea", "sand"], ["sea", "sand"]])
        catalog = derive_catalog(sample)

        self.assertEqual(catalog.type_ids, ["sand", "sea"])
        sea = catalog.get("sea")
        sand = catalog.get("sand")
        self.assertEqual(sea.weight, 2.0)
        self.assertEqual(sea.allowed(Direction.RIGHT), ["sand"])
        self.assertEqual(sea.allowed(Direction.FORWARD), ["sea"])
        self.assertEqual(sea.allowed(Direction.LEFT), [])
        self.assertEqual(sand.allowed(Direction.LEFT), ["sea"])
        self.assertIsNone(catalog.joker)

    def test_unpainted_sample_raises(self) -> None:
        with self.assertRaises(CatalogError):
            derive_catalog(TileGrid(2, 2))


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
