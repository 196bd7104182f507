"""Common helpers for working with JSON values."""

import copy
from typing import Any, Dict, List


def is_number(value: Any) -> bool:
    """Returns True for int and float values. Booleans are not numbers."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_integral(value: Any) -> bool:
    """Returns True for numbers without a fractional part."""
    if not is_number(value):
        return False
    if isinstance(value, int):
        return True
    return value.is_integer()


def is_object(value: Any) -> bool:
    """Returns True for dicts whose keys are all strings."""
    return isinstance(value, dict) and all(isinstance(k, str) for k in value)


def is_associative(value: Any) -> bool:
    """Returns True for dicts that carry at least one non-string key.

    Such dicts are "associative arrays": they are arrays when their keys are
    exactly 0..n-1 in insertion order and ordered maps otherwise.
    """
    return isinstance(value, dict) and not is_object(value)


def is_sequential(value: Any) -> bool:
    """Returns True if the value's keys are exactly 0..n-1 in order."""
    if isinstance(value, (list, tuple)):
        return True
    if isinstance(value, dict):
        for counter, key in enumerate(value):
            if isinstance(key, bool) or key != counter:
                return False
        return True
    return False


def json_type_name(value: Any) -> str:
    """Returns the JSON Schema type name detected for a value.

    Floats with an integral value are reported as 'integer'.
    """
    if value is None:
        return 'null'
    if isinstance(value, bool):
        return 'boolean'
    if is_number(value):
        return 'integer' if is_integral(value) else 'number'
    if isinstance(value, str):
        return 'string'
    if isinstance(value, (list, tuple)) or (is_associative(value) and is_sequential(value)):
        return 'array'
    return 'object'


def deep_equal(a: Any, b: Any) -> bool:
    """Structural equality of two JSON values.

    Arrays compare element-wise in order, objects by key set and per-key
    value regardless of insertion order. Scalars must agree on JSON type and
    value, so True never equals 1, while 1 equals 1.0.
    """
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    if is_number(a) or is_number(b):
        return is_number(a) and is_number(b) and a == b
    if isinstance(a, (list, tuple)):
        if not isinstance(b, (list, tuple)) or len(a) != len(b):
            return False
        return all(deep_equal(x, y) for x, y in zip(a, b))
    if isinstance(a, dict):
        if not isinstance(b, dict) or len(a) != len(b):
            return False
        for key, value in a.items():
            if key not in b:
                return False
            if not deep_equal(value, b[key]):
                return False
        return True
    return type(a) is type(b) and a == b


def clone(value: Any) -> Any:
    """Returns a structural copy of a JSON value."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    return copy.deepcopy(value)


def find_key(value: Dict[Any, Any], name: Any) -> Any:
    """Returns the key under which an object stores a property, or None.

    Associative arrays store numeric property names as int keys, so '1'
    also finds the key 1.
    """
    if name in value:
        return name
    if isinstance(name, str) and name.isdigit() and int(name) in value:
        return int(name)
    return None


def type_list(schema_type: Any) -> List[str]:
    """Normalizes a schema 'type' member to a list of type names."""
    if isinstance(schema_type, str):
        return [schema_type]
    if isinstance(schema_type, (list, tuple)):
        return [t for t in schema_type if isinstance(t, str)]
    return []
