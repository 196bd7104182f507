"""
Resolution of relative schema URLs against a base URL.

This is a reduced RFC 3986 merge: it knows enough about URLs to resolve
the `$ref` and `id` values found in schemas, and it keeps the parts of the
base URL that a schema reference is expected to inherit.
"""

from typing import Optional, Tuple
from urllib.parse import urlsplit, unquote


class _UrlParts:
    """The components of a URL, with None marking absent query or fragment."""

    def __init__(self, url: str):
        parsed = urlsplit(url)
        self.scheme = parsed.scheme
        self.has_authority = bool(self.scheme) and url[len(self.scheme) + 1:].startswith('//')
        self.netloc = parsed.netloc
        self.path = parsed.path
        before_fragment, hash_mark, fragment = url.partition('#')
        self.fragment: Optional[str] = fragment if hash_mark else None
        _, question_mark, query = before_fragment.partition('?')
        self.query: Optional[str] = query if question_mark else None

    def geturl(self) -> str:
        result = ''
        if self.scheme:
            result += self.scheme + ':'
            if self.has_authority:
                result += '//' + self.netloc
        result += self.path
        if self.query is not None:
            result += '?' + self.query
        if self.fragment is not None:
            result += '#' + self.fragment
        return result


def is_absolute(url: str) -> bool:
    """Returns True if the URL carries a scheme."""
    try:
        return bool(urlsplit(url).scheme)
    except ValueError:
        return False


def split_url(url: str) -> Tuple[str, str]:
    """Splits a URL into its base and its percent-decoded fragment."""
    base, _, fragment = url.partition('#')
    return base, unquote(fragment)


def resolve_url(base: str, relative: str) -> str:
    """Resolves a relative reference against a base URL.

    Args:
        base: The URL of the document containing the reference
        relative: The reference, e.g. 'other.json#/definitions/a'

    Returns:
        The absolute reference. A relative reference that already has a
        scheme is returned unchanged.
    """
    if is_absolute(relative):
        return relative

    parts = _UrlParts(base)
    if relative == '':
        parts.fragment = None
    elif relative.startswith('?'):
        query, hash_mark, fragment = relative[1:].partition('#')
        parts.query = query
        parts.fragment = fragment if hash_mark else None
    elif relative.startswith('#'):
        parts.fragment = relative[1:]
    elif relative.startswith('//'):
        return f"{parts.scheme}:{relative}" if parts.scheme else relative
    else:
        rel = _UrlParts(relative)
        parts.query = rel.query
        parts.fragment = rel.fragment
        if rel.path.startswith('/'):
            parts.path = rel.path
        else:
            parts.path = _merge_paths(parts.path, rel.path, parts.has_authority or parts.path.startswith('/'))
    return parts.geturl()


def _merge_paths(base_path: str, relative_path: str, rooted: bool) -> str:
    """Appends a relative path to the directory of the base path, folding '.' and '..'."""
    segments = base_path.split('/')
    segments.pop()
    for segment in relative_path.split('/'):
        if segment == '..':
            if len(segments) > 1 or (segments and segments[0] != ''):
                segments.pop()
        elif segment != '.':
            segments.append(segment)
    path = '/'.join(segments)
    if rooted and not path.startswith('/'):
        path = '/' + path
    return path
