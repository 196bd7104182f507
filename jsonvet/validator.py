"""Validates JSON values against JSON Schema draft 4 documents.

The validator walks a value and a schema together and collects every
violation as a ValidationError with JSON pointers into both documents.
Schemas are plain JSON values; `$ref` indirection must already be resolved,
which is what SchemaStore.get_normalized_schema provides.

Options can make validation mutate the value:
- expand_defaults inserts the schema default for a missing required property
- AdditionalProperties.REMOVE deletes properties no schema accounts for

Defaults are inserted as they are found. Deletions are collected during the
walk and applied once it ends, and only those requested by branches that
apply to the value: allOf branches and the first passing anyOf/oneOf
branch, never a failed alternative or a `not` schema. Mutations requested
before an aborted walk (first_error_only) are kept.
"""

import logging
import re
from enum import Enum
from fractions import Fraction
from functools import lru_cache
from typing import Any, Dict, List, Optional, Set, Tuple, Union

from jsonvet.common import (clone, deep_equal, find_key, is_associative, is_integral, is_number,
                            is_sequential, json_type_name, type_list)
from jsonvet.errors import ErrorCode, StructuralError, ValidationError
from jsonvet.pointer import pointer_join

logger = logging.getLogger(__name__)

# Maximum nesting of sub-validations, composite branches included
# (guards against cyclic schemas)
MAX_VALIDATION_DEPTH = 256

PATTERN_FLAGS = {
    'i': re.IGNORECASE,
    'm': re.MULTILINE,
    's': re.DOTALL,
    'x': re.VERBOSE,
    'u': re.UNICODE,
}


class AdditionalProperties(Enum):
    """What to do with object properties that no schema declares."""

    ALLOW = 'allow'
    ERROR = 'error'
    REMOVE = 'remove'

    @classmethod
    def parse(cls, value: Union[str, 'AdditionalProperties', None]) -> 'AdditionalProperties':
        if value is None or value == 'none':
            return cls.ALLOW
        if isinstance(value, cls):
            return value
        return cls(value)


class ValidationOptions:
    """Settings for a validation run.

    Args:
        first_error_only: Stop at the first error and report only that one
        expand_defaults: Create missing required properties from schema defaults
        additional_properties: Policy for properties no schema declares
        associative_arrays_as_objects: Validate non-sequential associative
            arrays (dicts with int keys) as objects instead of failing
        max_depth: Maximum nesting of sub-validations; every property, item
            and composite branch visited counts one level
    """

    def __init__(self, first_error_only: bool = False, expand_defaults: bool = False,
                 additional_properties: Union[str, AdditionalProperties, None] = AdditionalProperties.ALLOW,
                 associative_arrays_as_objects: bool = False, max_depth: int = MAX_VALIDATION_DEPTH):
        self.first_error_only = first_error_only
        self.expand_defaults = expand_defaults
        self.additional_properties = AdditionalProperties.parse(additional_properties)
        self.associative_arrays_as_objects = associative_arrays_as_objects
        self.max_depth = max_depth

    def __repr__(self) -> str:
        return (f"ValidationOptions(first_error_only={self.first_error_only}, "
                f"expand_defaults={self.expand_defaults}, "
                f"additional_properties={self.additional_properties.value}, "
                f"associative_arrays_as_objects={self.associative_arrays_as_objects}, "
                f"max_depth={self.max_depth})")


class ValidationResult:
    """Result of validating a value against a schema."""

    def __init__(self, errors: Optional[List[ValidationError]] = None, value: Any = None):
        self.errors = errors or []
        self.value = value

    @property
    def valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        return {'valid': self.valid, 'errors': [e.to_dict() for e in self.errors]}

    def __bool__(self) -> bool:
        return self.valid

    def __str__(self) -> str:
        if self.valid:
            return "✓ Valid"
        return "✗ Invalid: " + "; ".join(str(e) for e in self.errors)

    def __repr__(self) -> str:
        return f"ValidationResult(valid={self.valid}, errors={self.errors})"


class _FirstError(Exception):
    """Carries the first error out of the walk when first_error_only is set."""

    def __init__(self, error: ValidationError):
        super().__init__(error.message)
        self.error = error


@lru_cache(maxsize=256)
def _compile_pattern(pattern: str, flags: str = '') -> 're.Pattern[str]':
    re_flags = 0
    for flag in flags:
        if flag not in PATTERN_FLAGS:
            raise StructuralError(f"Unsupported pattern flag '{flag}'", pattern)
        re_flags |= PATTERN_FLAGS[flag]
    try:
        return re.compile(pattern, re_flags)
    except re.error as e:
        raise StructuralError(f"Invalid regular expression: {e}", pattern)


def _is_multiple_of(value: Union[int, float], divisor: Union[int, float]) -> bool:
    if isinstance(value, int) and isinstance(divisor, int):
        return value % divisor == 0
    return Fraction(str(value)) % Fraction(str(divisor)) == 0


def _apply_removals(removals: List[Tuple[dict, Any]]) -> None:
    for container, key in removals:
        if key in container:
            del container[key]


def _format_number(value: Union[int, float]) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class _Evaluation:
    """One visit of a value against a (sub)schema.

    Properties consumed by any schema applying to the same object are
    removed from `unchecked`, a set shared by reference with the frames of
    the enclosing allOf/anyOf/oneOf branches. The frame that created the
    set (a non-composite one) reports or removes what is left at the end.
    """

    def __init__(self, options: ValidationOptions, data: Any, schema: Any,
                 unchecked: Optional[Set[str]] = None, composite: bool = False, depth: int = 0):
        self.options = options
        self.data = data
        self.schema = schema
        self.unchecked = unchecked
        self.composite = composite
        self.depth = depth
        self.errors: List[ValidationError] = []
        # (object, key) deletions requested by this frame and the branches it adopted
        self.removals: List[Tuple[dict, Any]] = []

    def run(self) -> List[ValidationError]:
        if self.depth > self.options.max_depth:
            logger.warning("Maximum validation depth exceeded (%d)", self.options.max_depth)
            raise StructuralError(f"Maximum validation depth ({self.options.max_depth}) exceeded")
        if not isinstance(self.schema, dict):
            return self.errors

        data = self.data
        if isinstance(data, (list, tuple)) or is_associative(data):
            self._check_array()
        elif isinstance(data, dict):
            self._check_object()
        elif isinstance(data, str):
            self._check_string()
        elif isinstance(data, bool):
            if 'type' in self.schema:
                self._check_type('boolean')
        elif is_number(data):
            self._check_number()
        elif 'type' in self.schema:
            self._check_type('null')

        if 'enum' in self.schema:
            self._check_enum()
        self._check_composite()

        if (not self.composite and self.unchecked
                and self.options.additional_properties != AdditionalProperties.ALLOW):
            self._check_unknown_properties()
        return self.errors

    # -- error plumbing

    def _fail(self, code: ErrorCode, data_path: str, schema_path: str, message: str,
              sub_results: Optional[List[ValidationResult]] = None) -> None:
        error = ValidationError(code, data_path, schema_path, message, sub_results)
        if self.options.first_error_only:
            raise _FirstError(error)
        self.errors.append(error)

    def _include(self, data: Any, schema: Any, data_prefix: Union[str, list], schema_prefix: Union[str, list],
                 unchecked: Optional[Set[str]] = None, composite: bool = False) -> None:
        """Validates a nested value or branch and adopts its errors under the given prefixes."""
        if isinstance(data_prefix, list):
            data_prefix = pointer_join(data_prefix)
        if isinstance(schema_prefix, list):
            schema_prefix = pointer_join(schema_prefix)
        sub = _Evaluation(self.options, data, schema, unchecked, composite, self.depth + 1)
        try:
            errors = sub.run()
        except _FirstError as e:
            self.removals.extend(sub.removals)
            raise _FirstError(e.error.prefix(data_prefix, schema_prefix))
        self.removals.extend(sub.removals)
        self.errors.extend(error.prefix(data_prefix, schema_prefix) for error in errors)

    def _attempt(self, schema: Any, unchecked: Optional[Set[str]]) -> Tuple[ValidationResult, list]:
        """Validates the current value against an alternative branch in isolation.

        Returns the branch result and the deletions the branch requested;
        the caller adopts them only if it picks the branch.
        """
        sub = _Evaluation(self.options, self.data, schema, unchecked, True, self.depth + 1)
        try:
            errors = sub.run()
        except _FirstError as e:
            errors = [e.error]
        return ValidationResult(errors, self.data), sub.removals

    def _mark_checked(self, name: Any) -> None:
        if self.unchecked is not None:
            self.unchecked.discard(str(name))

    # -- generic keywords

    def _check_type(self, actual_type: str) -> None:
        types = type_list(self.schema['type'])
        if actual_type in types:
            return
        if 'integer' in types and actual_type == 'number' and is_integral(self.data):
            return
        detected = json_type_name(self.data)
        self._fail(ErrorCode.INVALID_TYPE, '', '/type', f"Invalid type: {detected}")

    def _check_enum(self) -> None:
        for option in self.schema['enum']:
            if deep_equal(self.data, option):
                return
        self._fail(ErrorCode.ENUM_MISMATCH, '', '/enum', "Value must be one of the enum options")

    # -- objects

    def _check_object(self) -> None:
        schema = self.schema
        data = self.data
        if 'type' in schema:
            self._check_type('object')

        banning = self.options.additional_properties != AdditionalProperties.ALLOW
        if banning and self.unchecked is None:
            # outermost schema for this object: every property starts unchecked
            self.unchecked = {str(key) for key in data}

        required = schema.get('required')
        if isinstance(required, list):
            for index, name in enumerate(required):
                if find_key(data, name) is None:
                    if self.options.expand_defaults and self._create_default(name):
                        continue
                    self._fail(ErrorCode.OBJECT_REQUIRED, '', f"/required/{index}",
                               f"Missing required property: {name}")
                else:
                    self._mark_checked(name)

        min_properties = schema.get('minProperties')
        if is_number(min_properties) and len(data) < min_properties:
            message = ("Object cannot be empty" if min_properties == 1
                       else f"Object must have at least {min_properties} defined properties")
            self._fail(ErrorCode.OBJECT_PROPERTIES_MINIMUM, '', '/minProperties', message)
        max_properties = schema.get('maxProperties')
        if is_number(max_properties) and len(data) > max_properties:
            message = ("Object must have at most one defined property" if max_properties == 1
                       else f"Object must have at most {max_properties} defined properties")
            self._fail(ErrorCode.OBJECT_PROPERTIES_MAXIMUM, '', '/maxProperties', message)

        checked: Set[str] = set()
        properties = schema.get('properties')
        if isinstance(properties, dict):
            for name, sub_schema in properties.items():
                checked.add(name)
                key = find_key(data, name)
                if key is not None:
                    self._include(data[key], sub_schema, [name], ['properties', name])
                self._mark_checked(name)

        pattern_properties = schema.get('patternProperties')
        if isinstance(pattern_properties, dict):
            for pattern, sub_schema in pattern_properties.items():
                regex = _compile_pattern(pattern)
                for key in list(data):
                    name = str(key)
                    if regex.search(name):
                        checked.add(name)
                        self._include(data[key], sub_schema, [name], ['patternProperties', pattern])
                        self._mark_checked(name)

        additional = schema.get('additionalProperties', True)
        if additional is False:
            for key in list(data):
                name = str(key)
                if name in checked:
                    continue
                self._mark_checked(name)
                if self.options.additional_properties == AdditionalProperties.REMOVE:
                    self.removals.append((data, key))
                else:
                    self._fail(ErrorCode.OBJECT_ADDITIONAL_PROPERTIES, pointer_join([name]),
                               '/additionalProperties', "Additional properties not allowed")
        elif isinstance(additional, dict):
            for key in list(data):
                name = str(key)
                if name in checked:
                    continue
                self._include(data[key], additional, [name], '/additionalProperties')
                self._mark_checked(name)

        dependencies = schema.get('dependencies')
        if isinstance(dependencies, dict):
            for name, dependency in dependencies.items():
                if find_key(data, name) is None:
                    continue
                if isinstance(dependency, dict):
                    # same object, so it shares the property bookkeeping like an allOf branch
                    self._include(data, dependency, '', ['dependencies', name], self.unchecked, True)
                elif isinstance(dependency, list):
                    for index, dependency_name in enumerate(dependency):
                        self._check_dependency_key(name, dependency_name, ['dependencies', name, index])
                elif isinstance(dependency, str):
                    self._check_dependency_key(name, dependency, ['dependencies', name])

    def _check_dependency_key(self, name: str, dependency_name: str, schema_path: list) -> None:
        if find_key(self.data, dependency_name) is None:
            self._fail(ErrorCode.OBJECT_DEPENDENCY_KEY, '', pointer_join(schema_path),
                       f"Property {name} depends on {dependency_name}")
        else:
            self._mark_checked(dependency_name)

    def _create_default(self, name: str) -> bool:
        """Inserts a copy of the default value declared for a missing property."""
        schema = self.schema
        sub_schema = None
        properties = schema.get('properties')
        if isinstance(properties, dict) and name in properties:
            sub_schema = properties[name]
        elif isinstance(schema.get('patternProperties'), dict):
            for pattern, pattern_schema in schema['patternProperties'].items():
                if _compile_pattern(pattern).search(name):
                    sub_schema = pattern_schema
                    break
        if sub_schema is None and isinstance(schema.get('additionalProperties'), dict):
            sub_schema = schema['additionalProperties']
        if isinstance(sub_schema, dict) and 'default' in sub_schema:
            key = name
            if is_associative(self.data) and isinstance(name, str) and name.isdigit():
                key = int(name)
            self.data[key] = clone(sub_schema['default'])
            return True
        return False

    def _check_unknown_properties(self) -> None:
        data = self.data
        names = [str(key) for key in data if str(key) in self.unchecked]
        if not names:
            return
        if self.options.additional_properties == AdditionalProperties.REMOVE:
            self.removals.extend((data, find_key(data, name)) for name in names)
            self.unchecked.clear()
        else:
            self._fail(ErrorCode.UNKNOWN_PROPERTY, '', '',
                       "Unknown properties not defined in schema: " + ', '.join(names))

    # -- arrays

    def _check_array(self) -> None:
        data = self.data
        if not is_sequential(data):
            if self.options.associative_arrays_as_objects:
                self._check_object()
                return
            raise StructuralError("Arrays must only be numerically-indexed")

        schema = self.schema
        count = len(data)
        if 'type' in schema:
            self._check_type('array')
        min_items = schema.get('minItems')
        if is_number(min_items) and count < min_items:
            self._fail(ErrorCode.ARRAY_LENGTH_SHORT, '', '/minItems',
                       f"Array is too short (must have at least {min_items} items)")
        max_items = schema.get('maxItems')
        if is_number(max_items) and count > max_items:
            self._fail(ErrorCode.ARRAY_LENGTH_LONG, '', '/maxItems',
                       f"Array is too long (must have at most {max_items} items)")

        items = schema.get('items')
        if isinstance(items, (list, tuple)):
            additional = schema.get('additionalItems', True)
            for index in range(count):
                if index < len(items):
                    self._include(data[index], items[index], [index], ['items', index])
                elif additional is False:
                    self._fail(ErrorCode.ARRAY_ADDITIONAL_ITEMS, f"/{index}", '/additionalItems',
                               f"Additional items (index {len(items)} or more) are not allowed")
                elif isinstance(additional, dict):
                    self._include(data[index], additional, [index], '/additionalItems')
        elif isinstance(items, dict):
            for index in range(count):
                self._include(data[index], items, [index], '/items')

        if schema.get('uniqueItems') is True:
            self._check_unique(count)

    def _check_unique(self, count: int) -> None:
        data = self.data
        for second in range(1, count):
            for first in range(second):
                if deep_equal(data[first], data[second]):
                    self._fail(ErrorCode.ARRAY_UNIQUE, '', '/uniqueItems',
                               f"Array items must be unique (items {first} and {second})")
                    return

    # -- scalars

    def _check_string(self) -> None:
        schema = self.schema
        data = self.data
        if 'type' in schema:
            self._check_type('string')
        min_length = schema.get('minLength')
        if is_number(min_length) and len(data) < min_length:
            self._fail(ErrorCode.STRING_LENGTH_SHORT, '', '/minLength',
                       f"String must be at least {min_length} characters long")
        max_length = schema.get('maxLength')
        if is_number(max_length) and len(data) > max_length:
            self._fail(ErrorCode.STRING_LENGTH_LONG, '', '/maxLength',
                       f"String must be at most {max_length} characters long")
        pattern = schema.get('pattern')
        if isinstance(pattern, str):
            flags = schema.get('patternFlags') or ''
            if not _compile_pattern(pattern, flags).search(data):
                self._fail(ErrorCode.STRING_PATTERN, '', '/pattern', f"String does not match pattern: {pattern}")

    def _check_number(self) -> None:
        schema = self.schema
        data = self.data
        if 'type' in schema:
            self._check_type('number')

        multiple_of = schema.get('multipleOf')
        if is_number(multiple_of):
            if multiple_of <= 0:
                raise StructuralError("multipleOf must be greater than 0", '/multipleOf')
            if not _is_multiple_of(data, multiple_of):
                self._fail(ErrorCode.NUMBER_MULTIPLE_OF, '', '/multipleOf',
                           f"Number must be a multiple of {_format_number(multiple_of)}")

        minimum = schema.get('minimum')
        if is_number(minimum):
            if schema.get('exclusiveMinimum') is True:
                if data <= minimum:
                    self._fail(ErrorCode.NUMBER_MINIMUM_EXCLUSIVE, '', '/minimum',
                               f"Number must be > {_format_number(minimum)}")
            elif data < minimum:
                self._fail(ErrorCode.NUMBER_MINIMUM, '', '/minimum',
                           f"Number must be >= {_format_number(minimum)}")

        maximum = schema.get('maximum')
        if is_number(maximum):
            if schema.get('exclusiveMaximum') is True:
                if data >= maximum:
                    self._fail(ErrorCode.NUMBER_MAXIMUM_EXCLUSIVE, '', '/maximum',
                               f"Number must be < {_format_number(maximum)}")
            elif data > maximum:
                self._fail(ErrorCode.NUMBER_MAXIMUM, '', '/maximum',
                           f"Number must be <= {_format_number(maximum)}")

    # -- composition

    def _check_composite(self) -> None:
        schema = self.schema

        all_of = schema.get('allOf')
        if isinstance(all_of, list):
            for index, sub_schema in enumerate(all_of):
                self._include(self.data, sub_schema, '', f"/allOf/{index}", self.unchecked, True)

        any_of = schema.get('anyOf')
        if isinstance(any_of, list):
            failed = []
            for sub_schema in any_of:
                branch_unchecked = None if self.unchecked is None else set(self.unchecked)
                result, removals = self._attempt(sub_schema, branch_unchecked)
                if result.valid:
                    if self.unchecked is not None:
                        self.unchecked.intersection_update(branch_unchecked)
                    self.removals.extend(removals)
                    break
                failed.append(result)
            else:
                self._fail(ErrorCode.ANY_OF_MISSING, '', '/anyOf',
                           "Value must satisfy at least one of the options", failed)

        one_of = schema.get('oneOf')
        if isinstance(one_of, list):
            failed = []
            success_index = None
            for index, sub_schema in enumerate(one_of):
                branch_unchecked = None if self.unchecked is None else set(self.unchecked)
                result, removals = self._attempt(sub_schema, branch_unchecked)
                if not result.valid:
                    failed.append(result)
                elif success_index is None:
                    success_index = index
                    if self.unchecked is not None:
                        self.unchecked.intersection_update(branch_unchecked)
                    self.removals.extend(removals)
                else:
                    self._fail(ErrorCode.ONE_OF_MULTIPLE, '', '/oneOf',
                               f"Value satisfies more than one of the options ({success_index} and {index})")
            if success_index is None:
                self._fail(ErrorCode.ONE_OF_MISSING, '', '/oneOf',
                           "Value must satisfy one of the options", failed)

        if 'not' in schema:
            result, _ = self._attempt(schema['not'], None)
            if result.valid:
                self._fail(ErrorCode.NOT_PASSED, '', '/not', "Value satisfies prohibited schema")


class Validator:
    """Validates values against JSON Schema draft 4 schemas.

    A Validator holds only its options, so one instance can be reused for
    any number of validations.
    """

    def __init__(self, options: Optional[ValidationOptions] = None, **kwargs):
        if options is None:
            options = ValidationOptions(**kwargs)
        elif kwargs:
            raise TypeError("Pass either a ValidationOptions instance or keyword options, not both")
        self.options = options

    def validate(self, data: Any, schema: Any) -> ValidationResult:
        """Validates a value against a schema.

        Args:
            data: The JSON value; may be mutated depending on the options
            schema: The resolved schema

        Returns:
            ValidationResult listing every violation (or just the first)

        Raises:
            StructuralError: If the value or schema cannot be interpreted
        """
        evaluation = _Evaluation(self.options, data, schema)
        try:
            errors = evaluation.run()
        except _FirstError as e:
            errors = [e.error]
        _apply_removals(evaluation.removals)
        return ValidationResult(errors, data)


def validate(data: Any, schema: Any, options: Optional[ValidationOptions] = None, **kwargs) -> ValidationResult:
    """Validates a value against a schema, see Validator.validate."""
    return Validator(options, **kwargs).validate(data, schema)


def is_valid(data: Any, schema: Any, associative_arrays_as_objects: bool = False) -> bool:
    """Returns True if the value satisfies the schema."""
    options = ValidationOptions(first_error_only=True,
                                associative_arrays_as_objects=associative_arrays_as_objects)
    return Validator(options).validate(data, schema).valid


def copy_and_validate(data: Any, schema: Any, options: Optional[ValidationOptions] = None,
                      **kwargs) -> ValidationResult:
    """Validates a structural copy of the value.

    The caller's value is left untouched; the copy, including any defaults
    inserted or properties removed, is returned as `result.value`.
    """
    return Validator(options, **kwargs).validate(clone(data), schema)
