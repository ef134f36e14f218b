import os
import sys
import unittest


ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from lbinclude.component_sort import sort_components, sort_section_components
from lbinclude.models import LayoutDefinition, LayoutNotFound


class _Layouts:
    def __init__(self, *definitions: LayoutDefinition) -> None:
        self._definitions = {d.id: d for d in definitions}

    def get_definition(self, layout_id: str) -> LayoutDefinition:
        if layout_id not in self._definitions:
            raise LayoutNotFound(layout_id)
        return self._definitions[layout_id]


def _c(region: str, weight, name: str = "") -> dict:
    return {"uuid": name or f"{region}-{weight}", "region": region, "weight": weight}


class TestComponentSort(unittest.TestCase):
    def setUp(self) -> None:
        self.layouts = _Layouts(
            LayoutDefinition("sidebar", regions=["content", "sidebar"]),
            LayoutDefinition("onecol", regions=["content"]),
            LayoutDefinition("empty", regions=[]),
        )

    def _sorted(self, layout_id: str, components) -> list:
        sections = [{"layout_id": layout_id, "components": components}]
        return sort_section_components(sections, self.layouts)[0]["components"]

    def test_region_then_weight(self) -> None:
        out = self._sorted("sidebar", [_c("sidebar", 5), _c("content", 10), _c("content", 1)])
        self.assertEqual([(c["region"], c["weight"]) for c in out], [("content", 1), ("content", 10), ("sidebar", 5)])

    def test_single_region_sorts_by_weight_only(self) -> None:
        out = self._sorted("onecol", [_c("sidebar", 5), _c("content", 10), _c("content", 1)])
        self.assertEqual([c["weight"] for c in out], [1, 5, 10])

    def test_zero_regions_sorts_by_weight_only(self) -> None:
        out = self._sorted("empty", [_c("b", 2), _c("a", 1)])
        self.assertEqual([c["weight"] for c in out], [1, 2])

    def test_unknown_layout_falls_back_to_weight(self) -> None:
        with self.assertLogs("lbinclude.sort", level="WARNING"):
            out = self._sorted("missing", [_c("sidebar", 3), _c("content", 2)])
        self.assertEqual([c["weight"] for c in out], [2, 3])

    def test_equal_weights_keep_input_order(self) -> None:
        out = self._sorted("sidebar", [_c("content", 1, "x"), _c("content", 1, "y"), _c("content", 1, "z")])
        self.assertEqual([c["uuid"] for c in out], ["x", "y", "z"])

    def test_undeclared_regions_sort_last_in_input_order(self) -> None:
        out = self._sorted(
            "sidebar",
            [_c("footer", 0, "f1"), _c("sidebar", 9, "s"), _c("header", -5, "h"), _c("content", 3, "c")],
        )
        self.assertEqual([c["uuid"] for c in out], ["c", "s", "f1", "h"])

    def test_components_mapping_becomes_list(self) -> None:
        components = {"b": _c("content", 2, "b"), "a": _c("content", 1, "a")}
        out = self._sorted("onecol", components)
        self.assertIsInstance(out, list)
        self.assertEqual([c["uuid"] for c in out], ["a", "b"])

    def test_missing_weight_counts_as_zero(self) -> None:
        out = sort_components([{"uuid": "w", "weight": 1}, {"uuid": "none"}, {"uuid": "neg", "weight": -1}], None)
        self.assertEqual([c["uuid"] for c in out], ["neg", "none", "w"])

    def test_sections_without_components_are_skipped(self) -> None:
        sections = [{"layout_id": "onecol"}, "junk"]
        self.assertEqual(sort_section_components(sections, self.layouts), [{"layout_id": "onecol"}, "junk"])
        self.assertEqual(sort_section_components(None, self.layouts), [])


if __name__ == "__main__":
    unittest.main()
