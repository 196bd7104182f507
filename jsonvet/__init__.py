import importlib

mod = "jsonvet"
class LazyLoader:
    """
    Lazy loader for the jsonvet functions and classes to speed up startup time.
    """
    def __init__(self, mappings):
        self._modules = {}
        self._mappings = mappings

    def _load_module(self, module_name):
        if module_name not in self._modules:
            self._modules[module_name] = importlib.import_module(module_name)
        return self._modules[module_name]

    def __getattr__(self, item):
        if item in self._mappings:
            module_name, attr_name = self._mappings[item]
            module = self._load_module(module_name)
            return getattr(module, attr_name)
        else:
            return self._load_module(f"{mod}.{item}")

# Define the public names and their corresponding module paths
_mappings = {
    "validate": (f"{mod}.validator", "validate"),
    "is_valid": (f"{mod}.validator", "is_valid"),
    "copy_and_validate": (f"{mod}.validator", "copy_and_validate"),
    "Validator": (f"{mod}.validator", "Validator"),
    "ValidationOptions": (f"{mod}.validator", "ValidationOptions"),
    "ValidationResult": (f"{mod}.validator", "ValidationResult"),
    "AdditionalProperties": (f"{mod}.validator", "AdditionalProperties"),
    "SchemaStore": (f"{mod}.schemastore", "SchemaStore"),
    "SchemaLoader": (f"{mod}.loader", "SchemaLoader"),
    "load_schema": (f"{mod}.loader", "load_schema"),
    "ErrorCode": (f"{mod}.errors", "ErrorCode"),
    "ValidationError": (f"{mod}.errors", "ValidationError"),
    "StructuralError": (f"{mod}.errors", "StructuralError"),
    "SchemaNotFoundError": (f"{mod}.errors", "SchemaNotFoundError"),
    "SchemaNotNormalizedError": (f"{mod}.errors", "SchemaNotNormalizedError"),
    "SchemaLoadError": (f"{mod}.errors", "SchemaLoadError"),
    "pointer_get": (f"{mod}.pointer", "pointer_get"),
    "pointer_join": (f"{mod}.pointer", "pointer_join"),
    "resolve_url": (f"{mod}.urlresolve", "resolve_url"),
}

_lazy_loader = LazyLoader(_mappings)

def __getattr__(name):
    return getattr(_lazy_loader, name)
