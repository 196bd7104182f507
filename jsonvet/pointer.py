"""JSON Pointer (RFC 6901) navigation over JSON values."""

from typing import Any, Iterable, List

from jsonpointer import JsonPointer, JsonPointerException

from jsonvet.errors import StructuralError


def pointer_parts(pointer: str) -> List[str]:
    """Splits a pointer into its unescaped reference tokens.

    Args:
        pointer: The JSON pointer, either empty or starting with '/'

    Returns:
        The list of tokens ('~1' decoded to '/' before '~0' to '~')

    Raises:
        StructuralError: If the pointer is malformed
    """
    if pointer == '':
        return []
    try:
        return JsonPointer(pointer).parts
    except JsonPointerException as e:
        raise StructuralError(f"Invalid path: {e}", pointer)


def pointer_join(parts: Iterable[Any]) -> str:
    """Builds a pointer from raw tokens, escaping '~' before '/'."""
    return JsonPointer.from_parts([str(part) for part in parts]).path


def pointer_step(value: Any, part: str) -> Any:
    """Descends one reference token; raises KeyError if it does not exist."""
    if isinstance(value, (list, tuple)):
        if not part.isdigit():
            raise KeyError(part)
        index = int(part)
        if index >= len(value):
            raise KeyError(part)
        return value[index]
    if isinstance(value, dict):
        if part in value:
            return value[part]
        if part.isdigit() and int(part) in value:
            return value[int(part)]
        raise KeyError(part)
    raise KeyError(part)


def pointer_get(value: Any, pointer: str = '', strict: bool = False) -> Any:
    """Resolves a JSON pointer against a value.

    Args:
        value: The document to navigate
        pointer: The JSON pointer; the empty pointer addresses the document
        strict: Raise instead of returning None when the path does not exist

    Returns:
        The addressed node, or None when it does not exist and strict is off

    Raises:
        StructuralError: If the pointer is malformed, or missing while strict
    """
    for part in pointer_parts(pointer):
        try:
            value = pointer_step(value, part)
        except KeyError:
            if strict:
                raise StructuralError("Path does not exist", pointer)
            return None
    return value
