"""entitykit: declarative object-graph marshaling and validation.

Declare a type, then parse plain data into instances and back::

    from entitykit import entity, string_field, int_field, parse, to_json

    @entity
    class User:
        name = string_field(min_length=3)
        age = int_field(min=0, optional=True)

    user = await parse(User, {"name": "Jo"})      # one SOFT problem at "name"
    to_json(user)                                  # {"name": "Jo"}

Layers: ``domain`` (declarations, problems, registries) → ``services``
(engines) → ``plugins``; ``config`` holds settings and logging.
"""

from __future__ import annotations

from entitykit.domain.declare import (
    collection_entity,
    entity,
    scalar_entity,
    type_validator,
    variant,
)
from entitykit.domain.fields import (
    MISSING,
    Cardinality,
    DeclarationError,
    FieldDeclaration,
    array_field,
    bigint_field,
    bool_field,
    date_field,
    discriminated_field,
    entity_field,
    enum_field,
    field,
    injected_field,
    int_field,
    number_field,
    passthrough_field,
    polymorphic_field,
    schema_field,
    serializable_field,
    string_field,
    stringifiable_field,
)
from entitykit.domain.instance import get_problems, get_raw_input, set_problems, set_raw_input
from entitykit.domain.primitives import BigInt
from entitykit.domain.problem import EntityError, Problem, ValidationError
from entitykit.domain.registry import (
    REGISTRY,
    EntityKind,
    MetadataRegistry,
    TypeDeclaration,
    UnregisteredTypeError,
    is_entity,
)
from entitykit.domain.validators import schema_validator
from entitykit.services.compare import DiffEntry, EntityTypeMismatchError, changes, diff, equals
from entitykit.services.dependencies import (
    DependencyResolutionError,
    Provider,
    Token,
    configure,
    resolve,
)
from entitykit.services.parse import parse, partial_parse, safe_parse, safe_partial_parse
from entitykit.services.result import PartialRecord, SafeResult
from entitykit.services.schema import EntitySchema
from entitykit.services.serialize import to_json
from entitykit.services.update import safe_update, update
from entitykit.services.validate import validate

__version__ = "0.1.0"

__all__ = [
    "MISSING",
    "REGISTRY",
    "BigInt",
    "Cardinality",
    "DeclarationError",
    "DependencyResolutionError",
    "DiffEntry",
    "EntityError",
    "EntityKind",
    "EntitySchema",
    "EntityTypeMismatchError",
    "FieldDeclaration",
    "MetadataRegistry",
    "PartialRecord",
    "Problem",
    "Provider",
    "SafeResult",
    "Token",
    "TypeDeclaration",
    "UnregisteredTypeError",
    "ValidationError",
    "__version__",
    "array_field",
    "bigint_field",
    "bool_field",
    "changes",
    "collection_entity",
    "configure",
    "date_field",
    "diff",
    "discriminated_field",
    "entity",
    "entity_field",
    "enum_field",
    "equals",
    "field",
    "get_problems",
    "get_raw_input",
    "injected_field",
    "int_field",
    "is_entity",
    "number_field",
    "parse",
    "partial_parse",
    "passthrough_field",
    "polymorphic_field",
    "resolve",
    "safe_parse",
    "safe_partial_parse",
    "safe_update",
    "scalar_entity",
    "schema_field",
    "schema_validator",
    "serializable_field",
    "set_problems",
    "set_raw_input",
    "string_field",
    "stringifiable_field",
    "to_json",
    "type_validator",
    "update",
    "validate",
    "variant",
]
