"""
Registry of JSON schemas keyed by URL.

Schemas added to the store are normalized in place:

- every `$ref` is made absolute and the node holding it is replaced by the
  referenced schema node, so all referrers share the same object
- every `id` is made absolute and starts a new base URL for its subtree;
  it is registered as a schema of its own when it stays inside the
  namespace of the URL the document was added under

References whose target document has not been added yet are remembered as
pending slots (container, key) and rewritten as soon as that document
arrives, so documents can be added in any order.

The store is not thread-safe; normalization rewrites schema nodes in place.
"""

import logging
import re
from typing import Any, Dict, List, Tuple, Union

from jsonvet.errors import SchemaNotFoundError, SchemaNotNormalizedError, StructuralError
from jsonvet.pointer import pointer_parts, pointer_step
from jsonvet.urlresolve import resolve_url, split_url

logger = logging.getLogger(__name__)

# Maximum nesting depth walked while normalizing a schema document
MAX_NORMALIZE_DEPTH = 256

# Members whose values are data, never schemas
DATA_KEYWORDS = ('enum', 'default')

# Members mapping arbitrary names to schemas
MAP_KEYWORDS = ('properties', 'patternProperties', 'definitions', 'dependencies')

Slot = Tuple[Union[dict, list], Any]


def _is_ref(node: Any) -> bool:
    return isinstance(node, dict) and isinstance(node.get('$ref'), str)


class _Normalization:
    """State of normalizing one added document."""

    def __init__(self, trust_prefix: Union[str, bool]):
        self.trust_prefix = trust_prefix
        self.visited: set = set()
        self.slots: List[Tuple[Union[dict, list], Any, str]] = []
        self.registered: List[str] = []


class SchemaStore:
    """Holds schemas by URL and resolves references between them."""

    def __init__(self):
        self._schemas: Dict[str, Any] = {}
        # target base URL -> target URL -> slots still holding the $ref node
        self._refs: Dict[str, Dict[str, List[Slot]]] = {}
        # URLs being looked up, to stop pointers that lead through themselves
        self._navigating: set = set()

    def missing_references(self) -> List[str]:
        """Returns the base URLs of documents that pending references point to."""
        return list(self._refs.keys())

    def pending_references(self) -> Dict[str, List[str]]:
        """Returns the unresolved reference URLs grouped by target base URL."""
        return {base: list(refs.keys()) for base, refs in self._refs.items()}

    def has_base_schema(self, url: str) -> bool:
        """Returns True if a document is registered for the URL's base."""
        base_url, _ = split_url(url)
        return base_url in self._schemas

    def loaded_schemas(self) -> Dict[str, Any]:
        """Returns a snapshot of every registered URL and its schema."""
        return dict(self._schemas)

    def add(self, url: str, schema: Any, trusted: bool = False) -> None:
        """Registers and normalizes a schema document.

        Args:
            url: The URL of the document, optionally with a fragment
            schema: The schema; normalized in place
            trusted: Register every embedded `id`, not only those below `url`

        Raises:
            StructuralError: If the document nests too deeply or contains a
                reference that only ever refers to itself
        """
        self._add(url, schema, trusted, normalized=False)

    def add_normalized_schema(self, url: str, schema: Any) -> None:
        """Registers a schema previously obtained from get_normalized_schema.

        No attempt is made to verify that the schema really is normalized.
        """
        self._add(url, schema, True, normalized=True)

    def _add(self, url: str, schema: Any, trusted: bool, normalized: bool) -> None:
        base_url, _ = split_url(url)
        trust_prefix: Union[str, bool] = True if trusted else base_url.partition('?')[0]
        logger.debug("Adding schema %s", url)

        self._schemas[url] = schema
        normalization = _Normalization(trust_prefix)
        if not normalized:
            self._walk(self._schemas, url, url, normalization, 0)
        if self._alias_base(url):
            normalization.slots.extend((self._schemas, base_url, ref_url)
                                       for container, key, ref_url in list(normalization.slots)
                                       if container is self._schemas and key == url)
        for container, key, ref_url in normalization.slots:
            self._link(container, key, ref_url)

        self._resolve_pending(base_url)
        for registered in normalization.registered:
            self._resolve_pending(split_url(registered)[0])

    def _alias_base(self, url: str) -> bool:
        """Makes a 'base#' URL also answer for 'base'. The first writer wins."""
        base_url, fragment = split_url(url)
        if fragment == '' and url != base_url and base_url not in self._schemas:
            self._schemas[base_url] = self._schemas[url]
            return True
        return False

    def _is_trusted(self, url: str, trust_prefix: Union[str, bool]) -> bool:
        if trust_prefix is True:
            return True
        return re.match('^' + re.escape(trust_prefix) + r'(?:[#/?].*)?$', url) is not None

    def _walk(self, container: Union[dict, list], key: Any, base: str,
              normalization: _Normalization, depth: int) -> None:
        """Makes references and ids below container[key] absolute and collects the $ref slots."""
        if depth > MAX_NORMALIZE_DEPTH:
            raise StructuralError(f"Schema nesting exceeds {MAX_NORMALIZE_DEPTH} levels", base)
        node = container[key]
        if isinstance(node, dict):
            if _is_ref(node):
                if id(node) not in normalization.visited:
                    normalization.visited.add(id(node))
                    node['$ref'] = resolve_url(base, node['$ref'])
                normalization.slots.append((container, key, node['$ref']))
                return
            if id(node) in normalization.visited:
                return
            normalization.visited.add(id(node))

            id_member = next((m for m in ('id', '$id') if isinstance(node.get(m), str)), None)
            if id_member:
                base = node[id_member] = resolve_url(base, node[id_member])
                if base not in self._schemas and self._is_trusted(base, normalization.trust_prefix):
                    logger.debug("Registering embedded schema %s", base)
                    self._schemas[base] = node
                    self._alias_base(base)
                    normalization.registered.append(base)

            for member, value in node.items():
                if member in DATA_KEYWORDS or not isinstance(value, (dict, list)):
                    continue
                if member in MAP_KEYWORDS and isinstance(value, dict):
                    for name in value:
                        if isinstance(value[name], (dict, list)):
                            self._walk(value, name, base, normalization, depth + 1)
                else:
                    self._walk(node, member, base, normalization, depth + 1)
        elif isinstance(node, list):
            if id(node) in normalization.visited:
                return
            normalization.visited.add(id(node))
            for index in range(len(node)):
                if isinstance(node[index], (dict, list)):
                    self._walk(node, index, base, normalization, depth + 1)

    def _link(self, container: Union[dict, list], key: Any, ref_url: str) -> bool:
        """Points container[key] at the schema behind ref_url, or records it as pending.

        Chains of reference-only nodes are followed to their end, so the slot
        never ends up holding another $ref node.
        """
        seen = set()
        target_url = ref_url
        target = self.get(target_url)
        while _is_ref(target):
            if target_url in seen:
                raise StructuralError("Circular reference", ref_url)
            seen.add(target_url)
            target_url = target['$ref']
            target = self.get(target_url)

        if target is None:
            target_base, _ = split_url(target_url)
            logger.debug("Deferring reference %s", target_url)
            self._refs.setdefault(target_base, {}).setdefault(target_url, []).append((container, key))
            return False
        container[key] = target
        return True

    def _resolve_pending(self, base_url: str) -> None:
        pending = self._refs.pop(base_url, None)
        if not pending:
            return
        for full_url, slots in pending.items():
            logger.debug("Resolving %d pending reference(s) to %s", len(slots), full_url)
            for container, key in slots:
                self._link(container, key, full_url)

    def _navigate(self, schema: Any, pointer: str) -> Any:
        """Follows a JSON pointer, stepping through reference nodes on the way."""
        for part in pointer_parts(pointer):
            if _is_ref(schema):
                schema = self.get(schema['$ref'])
            try:
                schema = pointer_step(schema, part)
            except KeyError:
                return None
        return schema

    def get(self, url: str, strict: bool = False) -> Any:
        """Looks up a schema by URL.

        The fragment may be a JSON pointer ('base#/definitions/a') or start
        with a named anchor registered through an id ('base#anchor/properties/x').

        Args:
            url: The URL to look up
            strict: Raise instead of returning None when nothing is found

        Returns:
            The schema node, or None

        Raises:
            SchemaNotFoundError: If nothing is found and strict is set
        """
        if url in self._schemas:
            return self._schemas[url]
        base_url, fragment = split_url(url)
        schema = None
        if base_url in self._schemas and url not in self._navigating:
            self._navigating.add(url)
            try:
                schema = self._lookup(base_url, fragment)
            finally:
                self._navigating.discard(url)
            if schema is not None and not _is_ref(schema):
                self._schemas[url] = schema

        if schema is None and strict:
            raise SchemaNotFoundError(url)
        return schema

    def _lookup(self, base_url: str, fragment: str) -> Any:
        if fragment == '' or fragment.startswith('/'):
            return self._navigate(self._schemas[base_url], fragment)
        anchor, _, rest = fragment.partition('/')
        anchored = self._schemas.get(f"{base_url}#{anchor}")
        if anchored is None:
            return None
        return self._navigate(anchored, '/' + rest if rest else '')

    def get_normalized_schema(self, url: str) -> Any:
        """Like get(strict=True), but fails while the schema depends on unloaded documents.

        Raises:
            SchemaNotFoundError: If no schema exists for the URL
            SchemaNotNormalizedError: If a reference reachable from the schema
                is still pending
        """
        schema = self.get(url, strict=True)
        missing = self._unresolved_references(schema)
        if missing:
            raise SchemaNotNormalizedError(url, missing)
        return schema

    def _unresolved_references(self, schema: Any) -> List[str]:
        """Collects the $ref URLs still held by nodes reachable from schema."""
        missing: List[str] = []
        seen = set()
        stack = [(schema, False)]
        while stack:
            node, is_map = stack.pop()
            if id(node) in seen:
                continue
            seen.add(id(node))
            if _is_ref(node) and not is_map:
                if node['$ref'] not in missing:
                    missing.append(node['$ref'])
                continue
            if isinstance(node, dict):
                for member, value in node.items():
                    if not isinstance(value, (dict, list)):
                        continue
                    if is_map:
                        stack.append((value, False))
                    elif member not in DATA_KEYWORDS:
                        stack.append((value, member in MAP_KEYWORDS and isinstance(value, dict)))
            elif isinstance(node, list):
                stack.extend((value, False) for value in node if isinstance(value, (dict, list)))
        return missing
