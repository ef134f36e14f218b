import os
import sys
import unittest


ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from lbinclude.models import Entity, ResourceType
from sub_request import RESOURCE_TYPE_KEY, build_sub_request, requested_includes, resource_path


class TestSubRequest(unittest.TestCase):
    def setUp(self) -> None:
        self.entity = Entity("block_content", "basic", "b-1", id=3)
        self.resource_type = ResourceType("block_content", "basic", ["field_image", "field_media.field_file"])

    def test_resource_path(self) -> None:
        self.assertEqual(resource_path("/api/", self.entity), "/api/block_content/basic/b-1")

    def test_request_targets_entity(self) -> None:
        request = build_sub_request(self.entity, self.resource_type, base_path="jsonapi", host="example.com")
        self.assertEqual(request.method, "GET")
        self.assertEqual(request.url.path, "/jsonapi/block_content/basic/b-1")
        self.assertEqual(request.headers["host"], "example.com")
        self.assertIs(request.scope[RESOURCE_TYPE_KEY], self.resource_type)

    def test_query_carries_includes(self) -> None:
        request = build_sub_request(self.entity, self.resource_type, self.resource_type.default_includes)
        self.assertEqual(request.query_params["jsonapi_include"], "1")
        self.assertEqual(requested_includes(request), ["field_image", "field_media.field_file"])

    def test_no_includes(self) -> None:
        request = build_sub_request(self.entity, self.resource_type, [])
        self.assertNotIn("include", request.query_params)
        self.assertEqual(requested_includes(request), [])


if __name__ == "__main__":
    unittest.main()
