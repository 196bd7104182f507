"""

Command line utility to validate JSON documents against JSON Schema draft 4.

"""


import argparse
import json
import logging
import sys

from jsonvet import _version
from jsonvet.loader import SchemaLoader, path_to_url
from jsonvet.validator import AdditionalProperties, ValidationOptions, Validator


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with its subcommands."""
    parser = argparse.ArgumentParser(description='Validate JSON documents against JSON Schema draft 4.')
    parser.add_argument('--version', action='store_true', help='Print the version of jsonvet.')
    parser.add_argument('--verbose', action='store_true', help='Log schema loading and reference resolution.')

    subparsers = parser.add_subparsers(dest='command')

    validate_parser = subparsers.add_parser('validate', help='Validate a JSON instance against a schema')
    validate_parser.add_argument('input', nargs='?', help='JSON instance file. Reads stdin if omitted.')
    validate_parser.add_argument('--schema', required=True, help='Schema file path or URL.')
    validate_parser.add_argument('--expand-defaults', dest='expand_defaults', action='store_true',
                                 help='Create missing required properties from schema defaults.')
    validate_parser.add_argument('--additional-properties', dest='additional_properties',
                                 choices=[p.value for p in AdditionalProperties], default='allow',
                                 help='What to do with properties no schema declares.')
    validate_parser.add_argument('--first-error-only', dest='first_error_only', action='store_true',
                                 help='Stop at the first error.')
    validate_parser.add_argument('--trusted', action='store_true',
                                 help='Register every id the schema declares.')
    validate_parser.add_argument('--out', help='Write the validated (possibly modified) instance to this file.')

    refs_parser = subparsers.add_parser('refs', help='List the references a schema leaves unresolved')
    refs_parser.add_argument('schema', help='Schema file path or URL.')
    refs_parser.add_argument('--resolve', action='store_true', help='Fetch referenced documents first.')
    return parser


def run_validate(args: argparse.Namespace) -> int:
    """Validate the instance named by args and print the errors. Returns the exit code."""
    loader = SchemaLoader()
    schema_url = path_to_url(args.schema)
    loader.load(schema_url, getattr(args, 'trusted', False))
    loader.resolve_missing()
    schema = loader.store.get_normalized_schema(schema_url)

    if getattr(args, 'input', None):
        with open(args.input, 'r', encoding='utf-8') as f:
            instance = json.load(f)
    else:
        instance = json.load(sys.stdin)

    options = ValidationOptions(
        first_error_only=getattr(args, 'first_error_only', False),
        expand_defaults=getattr(args, 'expand_defaults', False),
        additional_properties=getattr(args, 'additional_properties', 'allow'))
    result = Validator(options).validate(instance, schema)

    out = getattr(args, 'out', None)
    if out:
        with open(out, 'w', encoding='utf-8') as f:
            json.dump(result.value, f, indent=2)
    for error in result.errors:
        print(f"{error.code.name} ({int(error.code)}): {error}")
    print("✓ Valid" if result.valid else f"✗ Invalid: {len(result.errors)} error(s)")
    return 0 if result.valid else 1


def run_refs(args: argparse.Namespace) -> int:
    """Print the unresolved references of a schema. Returns the exit code."""
    loader = SchemaLoader()
    loader.load(path_to_url(args.schema))
    if getattr(args, 'resolve', False):
        loader.resolve_missing()
    pending = loader.store.pending_references()
    for refs in pending.values():
        for ref in refs:
            print(ref)
    return 1 if pending else 0


def main():
    """Main function for the command line utility."""
    parser = create_parser()
    args = parser.parse_args()

    if getattr(args, 'version', False):
        print(f'jsonvet {_version.version}')
        return

    if args.command is None:
        parser.print_help()
        return

    logging.basicConfig(level=logging.DEBUG if getattr(args, 'verbose', False) else logging.WARNING,
                        format='%(levelname)s %(name)s: %(message)s')
    commands = {
        'validate': run_validate,
        'refs': run_refs,
    }
    try:
        exit_code = commands[args.command](args)
    except Exception as e:
        print("Error: ", str(e))
        sys.exit(1)
    if exit_code:
        sys.exit(exit_code)


if __name__ == "__main__":
    main()
