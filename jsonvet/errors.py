"""Error model for jsonvet.

Validation failures are plain records (`ValidationError`) collected on a
`ValidationResult`. Conditions the engine cannot interpret at all raise
`StructuralError`, and the schema store raises `SchemaStoreError`
subclasses.
"""

from enum import IntEnum
from typing import Any, List, Optional


class ErrorCode(IntEnum):
    """Stable numeric codes for validation errors."""

    INVALID_TYPE = 0
    ENUM_MISMATCH = 1
    ANY_OF_MISSING = 10
    ONE_OF_MISSING = 11
    ONE_OF_MULTIPLE = 12
    NOT_PASSED = 13

    # Numeric errors
    NUMBER_MULTIPLE_OF = 100
    NUMBER_MINIMUM = 101
    NUMBER_MINIMUM_EXCLUSIVE = 102
    NUMBER_MAXIMUM = 103
    NUMBER_MAXIMUM_EXCLUSIVE = 104

    # String errors
    STRING_LENGTH_SHORT = 200
    STRING_LENGTH_LONG = 201
    STRING_PATTERN = 202

    # Object errors
    OBJECT_PROPERTIES_MINIMUM = 300
    OBJECT_PROPERTIES_MAXIMUM = 301
    OBJECT_REQUIRED = 302
    OBJECT_ADDITIONAL_PROPERTIES = 303
    OBJECT_DEPENDENCY_KEY = 304

    # Array errors
    ARRAY_LENGTH_SHORT = 400
    ARRAY_LENGTH_LONG = 401
    ARRAY_UNIQUE = 402
    ARRAY_ADDITIONAL_ITEMS = 403

    # Same value tv4 uses for banned unknown properties
    UNKNOWN_PROPERTY = 1000


class ValidationError:
    """A single schema violation.

    Attributes:
        code: The ErrorCode of the violation
        data_path: JSON pointer into the validated value
        schema_path: JSON pointer into the schema
        message: Human-readable description
        sub_results: Branch results of a failed anyOf/oneOf, if any
    """

    def __init__(self, code: ErrorCode, data_path: str, schema_path: str, message: str,
                 sub_results: Optional[List[Any]] = None):
        self.code = code
        self.data_path = data_path
        self.schema_path = schema_path
        self.message = message
        self.sub_results = sub_results

    def prefix(self, data_prefix: str, schema_prefix: str) -> 'ValidationError':
        """Returns a copy of this error relocated below the given path prefixes."""
        return ValidationError(self.code, data_prefix + self.data_path,
                               schema_prefix + self.schema_path, self.message, self.sub_results)

    def to_dict(self) -> dict:
        """Returns the error as a JSON-compatible dict."""
        result = {
            'code': int(self.code),
            'dataPath': self.data_path,
            'schemaPath': self.schema_path,
            'message': self.message,
        }
        if self.sub_results is not None:
            result['subErrors'] = [[e.to_dict() for e in r.errors] for r in self.sub_results]
        return result

    def __str__(self) -> str:
        location = self.data_path or '/'
        return f"{self.message} at {location} (schema {self.schema_path or '/'})"

    def __repr__(self) -> str:
        return (f"ValidationError(code={self.code.name}, data_path={self.data_path!r}, "
                f"schema_path={self.schema_path!r}, message={self.message!r})")


class StructuralError(Exception):
    """
    Raised when the input or the schema is malformed in a way the validator
    cannot interpret, such as a non-sequential array outside associative mode,
    an invalid JSON pointer or an invalid regular expression.

    Attributes:
        message: Human-readable error description
        path: Optional pointer or URL locating the problem
    """

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        self.message = message
        self.path = path
        full_message = message
        if path:
            full_message = f"{message} (at {path})"
        super().__init__(full_message)


class SchemaStoreError(Exception):
    """Base class for schema store failures."""


class SchemaNotFoundError(SchemaStoreError):
    """Raised by a strict lookup when no schema exists for a URL."""

    def __init__(self, url: str) -> None:
        self.url = url
        super().__init__(f"Schema not found: {url}")


class SchemaNotNormalizedError(SchemaStoreError):
    """Raised when a schema still depends on references that are not loaded."""

    def __init__(self, url: str, missing: List[str]) -> None:
        self.url = url
        self.missing = missing
        super().__init__(f"Schema is not normalized: {url}. Missing: {', '.join(missing)}")


class SchemaLoadError(SchemaStoreError):
    """Raised when a schema document cannot be retrieved or parsed."""

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Error loading schema from {url}: {reason}")
