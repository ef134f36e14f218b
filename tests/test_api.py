import json
import os
import sys
import unittest


ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from fastapi.testclient import TestClient

import app.main as main
from app.stores import load_fixtures

FIXTURES = os.path.join(os.path.dirname(__file__), "fixtures", "layout_site.json")


class TestApi(unittest.TestCase):
    def setUp(self) -> None:
        with open(FIXTURES, encoding="utf-8") as fh:
            main.configure(load_fixtures(json.load(fh)))
        self.client = TestClient(main.app)

    def test_health(self) -> None:
        res = self.client.get("/health")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json(), {"ok": True})

    def test_individual_without_include_is_raw(self) -> None:
        res = self.client.get("/jsonapi/node/page/n-home")
        self.assertEqual(res.status_code, 200)
        self.assertTrue(res.headers["content-type"].startswith("application/vnd.api+json"))
        data = res.json()["data"]
        self.assertEqual(data["attributes"]["title"], "Home")
        self.assertNotIn("layout_builder__layout", data)

    def test_individual_with_include_is_enriched(self) -> None:
        res = self.client.get("/jsonapi/node/page/n-home", params={"jsonapi_include": "1"})
        self.assertEqual(res.status_code, 200)
        data = res.json()["data"]
        self.assertEqual(data["title"], "Home")
        components = data["layout_builder__layout"][0]["components"]
        self.assertEqual([c["uuid"] for c in components], ["c-main1", "c-main10", "c-side"])
        self.assertEqual(components[2]["block"]["field_image"][0]["name"], "Hero")
        tags = res.headers["X-Cache-Tags"].split(" ")
        self.assertIn("node:1", tags)
        self.assertIn("block_content:10", tags)
        self.assertIn("config:core.entity_view_display.node.page.default", tags)
        self.assertIn("url.query_args:jsonapi_include", res.headers["X-Cache-Contexts"].split(" "))

    def test_etag_round_trip(self) -> None:
        first = self.client.get("/jsonapi/node/page/n-home", params={"jsonapi_include": "1"})
        etag = first.headers["ETag"]
        second = self.client.get(
            "/jsonapi/node/page/n-home",
            params={"jsonapi_include": "1"},
            headers={"If-None-Match": etag},
        )
        self.assertEqual(second.status_code, 304)

    def test_collection(self) -> None:
        res = self.client.get("/jsonapi/node/page", params={"jsonapi_include": "1"})
        self.assertEqual(res.status_code, 200)
        data = res.json()["data"]
        self.assertEqual(sorted(item["id"] for item in data), ["n-about", "n-home"])
        for item in data:
            self.assertIn("layout_builder__layout", item)
        self.assertIn("node_list", res.headers["X-Cache-Tags"].split(" "))

    def test_not_layout_managed_passes_through(self) -> None:
        res = self.client.get("/jsonapi/node/article/n-news", params={"jsonapi_include": "1"})
        data = res.json()["data"]
        self.assertEqual(data["title"], "News")
        self.assertNotIn("layout_builder__layout", data)

    def test_missing_resource_returns_error_document(self) -> None:
        res = self.client.get("/jsonapi/node/page/missing", params={"jsonapi_include": "1"})
        self.assertEqual(res.status_code, 404)
        errors = res.json()["errors"]
        self.assertEqual(errors[0]["status"], "404")
        self.assertEqual(errors[0]["code"], "RESOURCE_NOT_FOUND")

    def test_bundle_mismatch_is_not_found(self) -> None:
        res = self.client.get("/jsonapi/node/article/n-home")
        self.assertEqual(res.status_code, 404)


if __name__ == "__main__":
    unittest.main()
