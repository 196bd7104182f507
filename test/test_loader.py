"""Tests for loading schemas from files and URLs."""

import json
import os
import sys
import tempfile
import unittest
from unittest.mock import Mock, patch

current_script_path = os.path.abspath(__file__)
project_root = os.path.dirname(os.path.dirname(current_script_path))
sys.path.append(project_root)

from jsonvet.errors import ErrorCode, SchemaLoadError
from jsonvet.loader import SchemaLoader, load_json, load_schema, path_to_url
from jsonvet.schemastore import SchemaStore
from jsonvet.validator import validate


def get_schema(name):
    """Provides the path of a schema test file."""
    return os.path.join(os.path.dirname(__file__), 'schemas', name)


def mock_response(document):
    response = Mock()
    response.text = json.dumps(document)
    response.raise_for_status.return_value = None
    return response


class TestFileLoading(unittest.TestCase):
    """Test loading schemas from the file system."""

    def test_load_schema_resolves_relative_files(self):
        schema = load_schema(get_schema('person.json'))
        self.assertEqual(schema['properties']['address']['required'], ['street'])
        self.assertTrue(validate(load_json(get_schema('person_valid.json')), schema).valid)

    def test_invalid_instance(self):
        schema = load_schema(get_schema('person.json'))
        result = validate(load_json(get_schema('person_invalid.json')), schema)
        self.assertEqual([e.code for e in result.errors],
                         [ErrorCode.INVALID_TYPE, ErrorCode.NUMBER_MINIMUM, ErrorCode.OBJECT_REQUIRED])
        self.assertEqual(result.errors[2].data_path, '/address')
        self.assertEqual(result.errors[2].schema_path, '/properties/address/required/0')

    def test_load_without_resolving(self):
        store = SchemaStore()
        schema = load_schema(get_schema('person.json'), store=store, resolve=False)
        self.assertEqual(store.missing_references(), [path_to_url(get_schema('address.json'))])
        self.assertIn('$ref', schema['properties']['address'])

    def test_path_to_url(self):
        self.assertEqual(path_to_url('http://example.com/a.json'), 'http://example.com/a.json')
        self.assertTrue(path_to_url(get_schema('person.json')).startswith('file://'))

    def test_unresolvable_reference(self):
        with tempfile.TemporaryDirectory() as tmp:
            with open(os.path.join(tmp, 'root.json'), 'w', encoding='utf-8') as f:
                json.dump({"$ref": "defs.json#/definitions/missing"}, f)
            with open(os.path.join(tmp, 'defs.json'), 'w', encoding='utf-8') as f:
                json.dump({"definitions": {}}, f)
            with self.assertRaises(SchemaLoadError):
                load_schema(os.path.join(tmp, 'root.json'))

    def test_invalid_json(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, 'broken.json')
            with open(path, 'w', encoding='utf-8') as f:
                f.write('{"type": ')
            with self.assertRaises(SchemaLoadError):
                load_schema(path)

    def test_unsupported_scheme(self):
        with self.assertRaises(SchemaLoadError):
            SchemaLoader().fetch_content('ftp://example.com/schema.json')


class TestHttpLoading(unittest.TestCase):
    """Test loading schemas over HTTP."""

    @patch('jsonvet.loader.requests.get')
    def test_resolve_missing_fetches_references(self, mock_get):
        documents = {
            'http://example.com/root.json': {"items": {"$ref": "types.json#/definitions/id"}},
            'http://example.com/types.json': {"definitions": {"id": {"type": "integer"}}},
        }
        mock_get.side_effect = lambda url, timeout: mock_response(documents[url])

        loader = SchemaLoader(timeout=5)
        loader.load('http://example.com/root.json')
        self.assertEqual(loader.resolve_missing(), ['http://example.com/types.json'])
        schema = loader.store.get_normalized_schema('http://example.com/root.json')
        self.assertEqual(schema['items'], {"type": "integer"})
        mock_get.assert_any_call('http://example.com/types.json', timeout=5)

    @patch('jsonvet.loader.requests.get')
    def test_fetched_content_is_cached(self, mock_get):
        mock_get.return_value = mock_response({"type": "string"})
        loader = SchemaLoader()
        loader.fetch_content('http://example.com/s.json')
        loader.fetch_content('http://example.com/s.json')
        self.assertEqual(mock_get.call_count, 1)

    @patch('jsonvet.loader.requests.get')
    def test_document_limit(self, mock_get):
        def endless(url, timeout):
            index = int(url.rsplit('/', 1)[1][3:-5])
            return mock_response({"items": {"$ref": f"doc{index + 1}.json"}})
        mock_get.side_effect = endless

        loader = SchemaLoader()
        loader.load('http://example.com/doc0.json')
        with self.assertRaises(SchemaLoadError):
            loader.resolve_missing(max_documents=2)

    @patch('jsonvet.loader.requests.get')
    def test_fragment_selects_subschema(self, mock_get):
        mock_get.return_value = mock_response({"definitions": {"a": {"type": "null"}}})
        schema = load_schema('http://example.com/defs.json#/definitions/a')
        self.assertEqual(schema, {"type": "null"})
        mock_get.assert_called_once_with('http://example.com/defs.json', timeout=30)


if __name__ == '__main__':
    unittest.main()
