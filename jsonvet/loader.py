"""Loads schema documents from files and URLs into a SchemaStore."""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import ParseResult, unquote, urlparse

import requests

from jsonvet.errors import SchemaLoadError
from jsonvet.schemastore import SchemaStore
from jsonvet.urlresolve import split_url

logger = logging.getLogger(__name__)

# Upper bound of documents resolve_missing pulls in one call
MAX_DOCUMENTS = 100


def path_to_url(path: str) -> str:
    """Turns a file system path into a file:// URL; URLs are returned unchanged."""
    parsed = urlparse(path)
    if parsed.scheme in ('http', 'https', 'file'):
        return path
    return Path(path).resolve().as_uri()


def load_json(file_path: str) -> Any:
    """Reads a JSON document from a file."""
    with open(file_path, 'r', encoding='utf-8') as f:
        return json.load(f)


class SchemaLoader:
    """
    Fetches schema documents and registers them with a store.

    Attributes:
        store: The SchemaStore documents are added to
        timeout: HTTP timeout in seconds
        content_cache: Fetched document text by URL
    """

    def __init__(self, store: Optional[SchemaStore] = None, timeout: int = 30) -> None:
        self.store = store if store is not None else SchemaStore()
        self.timeout = timeout
        self.content_cache: Dict[str, str] = {}

    def fetch_content(self, url: str | ParseResult) -> str:
        """
        Fetches the content from the specified URL.

        Args:
            url (str or ParseResult): The URL to fetch the content from.

        Returns:
            str: The fetched content.

        Raises:
            requests.RequestException: If there is an error while making the HTTP request.
            SchemaLoadError: If the URL scheme is not supported.
            OSError: If there is an error while reading the file.
        """
        if isinstance(url, str):
            parsed_url = urlparse(url)
        else:
            parsed_url = url

        if parsed_url.geturl() in self.content_cache:
            return self.content_cache[parsed_url.geturl()]
        scheme = parsed_url.scheme

        if scheme in ['http', 'https']:
            logger.info("Fetching %s", parsed_url.geturl())
            response = requests.get(parsed_url.geturl(), timeout=self.timeout)
            # 4XX/5XX raise an HTTPError
            response.raise_for_status()
            self.content_cache[parsed_url.geturl()] = response.text
            return response.text

        elif scheme == 'file' or scheme == '':
            file_path = unquote(parsed_url.netloc + parsed_url.path if scheme == 'file' else parsed_url.path)
            # On Windows, a file URL might start with a '/' but it's not part of the actual path
            if os.name == 'nt' and file_path.startswith('/'):
                file_path = file_path[1:]
            logger.info("Reading %s", file_path)
            with open(file_path, 'r', encoding='utf-8') as file:
                text = file.read()
                self.content_cache[parsed_url.geturl()] = text
                return text
        else:
            raise SchemaLoadError(parsed_url.geturl(), f"Unsupported URL scheme: {scheme}")

    def load(self, url: str, trusted: bool = False) -> Any:
        """Fetches a schema document and adds it to the store.

        Args:
            url: URL of the document (a fragment selects a part of it)
            trusted: Register every id the document declares

        Returns:
            The schema registered for `url`
        """
        base_url, _ = split_url(url)
        content = self.fetch_content(base_url)
        try:
            schema = json.loads(content)
        except json.JSONDecodeError as e:
            raise SchemaLoadError(base_url, f"Invalid JSON: {e}")
        self.store.add(base_url, schema, trusted)
        return self.store.get(url)

    def resolve_missing(self, max_documents: int = MAX_DOCUMENTS) -> List[str]:
        """Loads referenced documents until no reference is pending.

        Returns:
            The base URLs that were loaded

        Raises:
            SchemaLoadError: If a loaded document does not contain a
                referenced schema, or more than max_documents are needed
        """
        loaded: List[str] = []
        while True:
            missing = self.store.missing_references()
            if not missing:
                return loaded
            for base_url in missing:
                if base_url in loaded:
                    pending = self.store.pending_references().get(base_url, [])
                    raise SchemaLoadError(base_url, "Unresolvable references: " + ', '.join(pending))
                if len(loaded) >= max_documents:
                    raise SchemaLoadError(base_url, f"More than {max_documents} documents referenced")
                self.load(base_url)
                loaded.append(base_url)


def load_schema(url_or_path: str, store: Optional[SchemaStore] = None, trusted: bool = False,
                resolve: bool = True) -> Any:
    """Loads a schema and, optionally, everything it references.

    Args:
        url_or_path: A URL or file system path
        store: The store to add to; a new one is created if omitted
        trusted: Register every id the root document declares
        resolve: Also load the referenced documents

    Returns:
        The normalized schema when resolve is set, otherwise the registered one
    """
    loader = SchemaLoader(store)
    url = path_to_url(url_or_path)
    loader.load(url, trusted)
    if resolve:
        loader.resolve_missing()
        return loader.store.get_normalized_schema(url)
    return loader.store.get(url)
