"""Tests for relative URL resolution."""

import os
import sys
import unittest

current_script_path = os.path.abspath(__file__)
project_root = os.path.dirname(os.path.dirname(current_script_path))
sys.path.append(project_root)

from jsonvet.urlresolve import is_absolute, resolve_url, split_url

BASE = "http://example.com/schemas/person.json"


class TestResolveUrl(unittest.TestCase):
    """Test merging relative references into a base URL."""

    def test_absolute_unchanged(self):
        self.assertEqual(resolve_url(BASE, "https://other.org/x.json#/a"), "https://other.org/x.json#/a")
        self.assertEqual(resolve_url(BASE, "urn:uuid:1234"), "urn:uuid:1234")

    def test_sibling_document(self):
        self.assertEqual(resolve_url(BASE, "address.json"), "http://example.com/schemas/address.json")

    def test_dot_segments(self):
        self.assertEqual(resolve_url(BASE, "./address.json#/definitions/street"),
                         "http://example.com/schemas/address.json#/definitions/street")
        self.assertEqual(resolve_url(BASE, "../common/types.json"), "http://example.com/common/types.json")

    def test_too_many_parent_segments(self):
        self.assertEqual(resolve_url(BASE, "../../../types.json"), "http://example.com/types.json")

    def test_absolute_path(self):
        self.assertEqual(resolve_url(BASE + "?v=1#frag", "/root.json"), "http://example.com/root.json")

    def test_scheme_relative(self):
        self.assertEqual(resolve_url(BASE, "//cdn.example.org/s.json"), "http://cdn.example.org/s.json")

    def test_fragment_only(self):
        self.assertEqual(resolve_url(BASE + "?v=1#old", "#/definitions/a"),
                         "http://example.com/schemas/person.json?v=1#/definitions/a")

    def test_query_only_clears_fragment(self):
        self.assertEqual(resolve_url(BASE + "?v=1#frag", "?v=2"), BASE + "?v=2")

    def test_relative_replaces_query_and_fragment(self):
        self.assertEqual(resolve_url(BASE + "?v=1#frag", "other.json"), "http://example.com/schemas/other.json")

    def test_user_password_and_port(self):
        self.assertEqual(resolve_url("http://user:pw@example.com:8080/a/b.json", "c.json"),
                         "http://user:pw@example.com:8080/a/c.json")

    def test_file_urls(self):
        self.assertEqual(resolve_url("file:///tmp/schemas/a.json", "b.json#/x"), "file:///tmp/schemas/b.json#/x")

    def test_scheme_less_base(self):
        self.assertEqual(resolve_url("A", "B#/x"), "B#/x")
        self.assertEqual(resolve_url("A", "#/definitions/x"), "A#/definitions/x")
        self.assertEqual(resolve_url("dir/a.json", "b.json"), "dir/b.json")

    def test_host_without_path(self):
        self.assertEqual(resolve_url("http://example.com", "a.json"), "http://example.com/a.json")


class TestSplitUrl(unittest.TestCase):
    """Test splitting URLs into base and fragment."""

    def test_split_decodes_fragment(self):
        self.assertEqual(split_url("http://x/a.json#/a%20b"), ("http://x/a.json", "/a b"))

    def test_split_without_fragment(self):
        self.assertEqual(split_url("http://x/a.json"), ("http://x/a.json", ""))

    def test_split_keeps_later_hashes(self):
        self.assertEqual(split_url("a#b#c"), ("a", "b#c"))

    def test_is_absolute(self):
        self.assertTrue(is_absolute("http://x"))
        self.assertFalse(is_absolute("a.json"))
        self.assertFalse(is_absolute("#/a"))


if __name__ == '__main__':
    unittest.main()
