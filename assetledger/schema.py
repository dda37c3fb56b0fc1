"""JSON Schema validation infrastructure.

Provides the strict boundary validation used by the contract:
- Automatic schema resolution via $ref
- Cross-reference registry for all bundled schemas
- Cached validators
- Integer checks that reject floats with a zero fraction (``2023.0``),
  since such values have no canonical encoding
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, List

from jsonschema import Draft202012Validator, ValidationError
from jsonschema.validators import extend
from referencing import Registry, Resource
from referencing.jsonschema import DRAFT202012

from assetledger.core import PACKAGE_ROOT, load_json

SCHEMAS_DIR = PACKAGE_ROOT / "schemas"
SCHEMA_BASE_URI = "https://schemas.assetledger.dev/"


def _is_strict_integer(checker: Any, instance: Any) -> bool:
    return isinstance(instance, int) and not isinstance(instance, bool)


StrictValidator = extend(
    Draft202012Validator,
    type_checker=Draft202012Validator.TYPE_CHECKER.redefine("integer", _is_strict_integer),
)


@lru_cache(maxsize=1)
def _schema_registry(schemas_dir: Path = SCHEMAS_DIR) -> Registry:
    """Build a schema registry for all bundled schemas.

    This enables $ref resolution across the schema corpus.
    """
    if not schemas_dir.is_dir():
        return Registry()

    resources = []
    for schema_path in sorted(schemas_dir.glob("*.schema.json")):
        schema = load_json(schema_path)
        if not isinstance(schema, dict):
            continue
        schema_id = schema.get("$id") or f"{SCHEMA_BASE_URI}{schema_path.name}"
        resource = Resource.from_contents(schema, default_specification=DRAFT202012)
        resources.append((schema_id, resource))

    return Registry().with_resources(resources)


@lru_cache(maxsize=None)
def schema_validator(schema_name: str, schemas_dir: Path = SCHEMAS_DIR) -> Draft202012Validator:
    """Create a validator for a bundled schema file.

    Args:
        schema_name: File name under ``assetledger/schemas`` (e.g. ``asset.schema.json``)
        schemas_dir: Directory holding the schema corpus

    Returns:
        A configured validator with strict integer checks
    """
    schema = load_json(schemas_dir / schema_name)
    return StrictValidator(schema, registry=_schema_registry(schemas_dir))


def schema_errors(obj: Any, schema_name: str) -> List[ValidationError]:
    """All validation errors for ``obj``, ordered by JSON path then message."""
    validator = schema_validator(schema_name)
    return sorted(validator.iter_errors(obj), key=lambda e: (e.json_path, e.message))


def validate_against_schema(obj: Any, schema_name: str) -> List[str]:
    """Validate an object against a bundled schema.

    Returns:
        List of ``"<json path>: <message>"`` strings (empty if valid), in a
        stable order.
    """
    errors = schema_errors(obj, schema_name)
    return [f"{error.json_path}: {error.message}" for error in errors]
