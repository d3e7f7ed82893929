"""
Centralized constants for DTO Auto Generator.

This module contains the decorator names, generator kinds, operations and
default values shared by the resolvers, generators and configuration layer.
"""

from enum import Enum
from typing import Dict, FrozenSet, List


# =============================================================================
# OPERATIONS AND GENERATOR KINDS
# =============================================================================

class Operation(str, Enum):
    """Generation contexts used to decide per-field inclusion."""

    DATA = "data"
    CREATE = "create"
    UPDATE = "update"
    FIND_MANY = "findMany"


class GeneratorKind(str, Enum):
    """Artifact types that can be produced for a single entity."""

    DTO = "dto"
    CREATE_DTO = "create-dto"
    UPDATE_DTO = "update-dto"
    FIND_MANY_DTO = "find-many-dto"
    FIND_MANY_RESPONSE_DTO = "find-many-response-dto"
    FIND_MANY_TO_FILTER = "find-many-to-filter"
    ENTITY_TO_DTO = "entity-to-dto"
    CREATE_DTO_TO_ENTITY = "create-dto-to-entity"
    UPDATE_DTO_TO_ENTITY = "update-dto-to-entity"

    @classmethod
    def values(cls) -> List[str]:
        return [kind.value for kind in cls]


# Declaration order doubles as the order failures are reported in
ALL_GENERATOR_KINDS: List[GeneratorKind] = list(GeneratorKind)


# =============================================================================
# DECORATOR NAMES
# =============================================================================

class DecoratorNames:
    """Names of the decorators the resolvers understand."""

    ENTITY = "Entity"
    PRIMARY_KEY = "PrimaryKey"
    PROPERTY = "Property"
    ENUM = "Enum"
    DTO_OPTIONS = "DtoOptions"

    ONE_TO_MANY = "OneToMany"
    MANY_TO_ONE = "ManyToOne"
    MANY_TO_MANY = "ManyToMany"
    ONE_TO_ONE = "OneToOne"

    RELATIONS: FrozenSet[str] = frozenset({ONE_TO_MANY, MANY_TO_ONE, MANY_TO_MANY, ONE_TO_ONE})
    TO_MANY_RELATIONS: FrozenSet[str] = frozenset({ONE_TO_MANY, MANY_TO_MANY})
    SCALARS: FrozenSet[str] = frozenset({PROPERTY, ENUM})

    # Relation decorators in the order they are looked up on a property
    RELATION_LOOKUP_ORDER = (ONE_TO_MANY, MANY_TO_ONE, MANY_TO_MANY, ONE_TO_ONE)


class OptionNames:
    """Option keys read from decorator object literals."""

    EXCLUDE = "exclude"
    NULLABLE = "nullable"
    COMMENT = "comment"
    ITEMS = "items"


# =============================================================================
# TYPE EXPRESSIONS
# =============================================================================

class TypeNames:
    """Type names with special meaning during relation inference."""

    NULLISH: FrozenSet[str] = frozenset({"null", "undefined"})
    COLLECTION_WRAPPERS: FrozenSet[str] = frozenset({"Collection"})
    REFERENCE_WRAPPERS: FrozenSet[str] = frozenset({
        "Ref", "Reference", "IdentifiedReference", "EntityRef",
    })
    WRAPPERS: FrozenSet[str] = COLLECTION_WRAPPERS | REFERENCE_WRAPPERS


class OperatorDtos:
    """Filter operator DTOs referenced by findMany artifacts."""

    STRING = "StringFieldOperatorsDto"
    NUMBER = "NumberFieldOperatorsDto"
    BOOLEAN = "BooleanFieldOperatorsDto"
    DATE = "DateFieldOperatorsDto"
    GENERIC = "GenericFieldOperatorsDto"

    ALL = [STRING, NUMBER, BOOLEAN, DATE, GENERIC]


# =============================================================================
# DEFAULTS
# =============================================================================

class DefaultConfig:
    """Default configuration values."""

    OUTPUT_DIR = "./src"
    GENERATED_DIR_NAME = "generated"
    CONCURRENCY_LIMIT = 4
    MAX_WORKER_COUNT = 16
    OPERATORS_MODULE = "../../types/find-many-operators.dto"


class CacheDefaults:
    """Bounds for the process-global memoization store."""

    MAX_ENTRIES = 1000
    SWEEP_INTERVAL = 100
    TTL_SECONDS = 5 * 60


MAX_INHERITANCE_DEPTH = 64


# Operation whose field policy each artifact kind follows
GENERATOR_OPERATIONS: Dict[GeneratorKind, Operation] = {
    GeneratorKind.DTO: Operation.DATA,
    GeneratorKind.CREATE_DTO: Operation.CREATE,
    GeneratorKind.UPDATE_DTO: Operation.UPDATE,
    GeneratorKind.FIND_MANY_DTO: Operation.FIND_MANY,
    GeneratorKind.FIND_MANY_RESPONSE_DTO: Operation.DATA,
    GeneratorKind.FIND_MANY_TO_FILTER: Operation.FIND_MANY,
    GeneratorKind.ENTITY_TO_DTO: Operation.DATA,
    GeneratorKind.CREATE_DTO_TO_ENTITY: Operation.CREATE,
    GeneratorKind.UPDATE_DTO_TO_ENTITY: Operation.UPDATE,
}


# Artifact file names, keyed by kind; "{stem}" is the lower-cased entity name
ARTIFACT_FILE_PATTERNS: Dict[GeneratorKind, str] = {
    GeneratorKind.DTO: "{stem}.dto.ts",
    GeneratorKind.CREATE_DTO: "{stem}.create.dto.ts",
    GeneratorKind.UPDATE_DTO: "{stem}.update.dto.ts",
    GeneratorKind.FIND_MANY_DTO: "{stem}.find-many.dto.ts",
    GeneratorKind.FIND_MANY_RESPONSE_DTO: "{stem}.find-many.response.dto.ts",
    GeneratorKind.FIND_MANY_TO_FILTER: "{stem}.find-many.filter.ts",
    GeneratorKind.ENTITY_TO_DTO: "{stem}.mapping.ts",
    GeneratorKind.CREATE_DTO_TO_ENTITY: "{stem}.create.mapping.ts",
    GeneratorKind.UPDATE_DTO_TO_ENTITY: "{stem}.update.mapping.ts",
}
