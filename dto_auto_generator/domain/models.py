"""
Core domain models for DTO Auto Generator.

These models describe the already-parsed entity declarations handed over by
the declaration front end, and the derived metadata the resolvers compute
from them. Declarations use identity semantics (``eq=False``) so they can key
weak, per-declaration caches.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..constants import DecoratorNames, GeneratorKind, Operation


class DecoratorShape(Enum):
    """Shapes of a decorator's first argument."""

    THUNK = "thunk"                 # () => Target
    REFERENCE = "reference"         # Target
    OPTIONS = "options"             # { ... }
    NO_ARGUMENTS = "no_arguments"   # @Decorator()
    EXPRESSION = "expression"       # anything else


class RelationKind(Enum):
    """Cardinality of a relation as seen from the owning entity."""

    TO_ONE = "to_one"
    TO_MANY = "to_many"


class FieldCategory(Enum):
    """How a property is mapped onto an output field."""

    PRIMARY_KEY = "primary_key"
    SCALAR = "scalar"
    RELATION = "relation"


@dataclass(frozen=True)
class SourceLocation:
    """Where a declaration came from. Used only for diagnostics."""

    file: Optional[str] = None
    line: Optional[int] = None

    def __str__(self) -> str:
        if self.file and self.line is not None:
            return f"{self.file}:{self.line}"
        return self.file or "<unknown>"


@dataclass(frozen=True)
class DecoratorInvocation:
    """
    A decorator applied to a class or property, parsed once by the front end.

    ``shape`` and ``target`` describe the first argument; ``options`` merges
    every object-literal argument. Option values are raw expression text or
    already-structured Python values.
    """

    name: str
    shape: DecoratorShape = DecoratorShape.NO_ARGUMENTS
    target: Optional[str] = None
    options: Mapping[str, Any] = field(default_factory=dict)
    arguments: Tuple[str, ...] = ()

    @property
    def text(self) -> str:
        """Source-like rendering, stable enough to key caches on."""
        return f"@{self.name}({', '.join(self.arguments)})"

    def option(self, name: str, default: Any = None) -> Any:
        return self.options.get(name, default)

    def has_option(self, name: str) -> bool:
        return name in self.options

    @property
    def is_relation(self) -> bool:
        return self.name in DecoratorNames.RELATIONS


@dataclass(eq=False)
class PropertyDeclaration:
    """A property declared directly on one entity."""

    name: str
    type_text: str
    optional: bool = False
    decorators: List[DecoratorInvocation] = field(default_factory=list)
    entity_name: Optional[str] = None
    location: SourceLocation = field(default_factory=SourceLocation)
    comment: Optional[str] = None

    def decorator(self, name: str) -> Optional[DecoratorInvocation]:
        """Return the first decorator called ``name``, if any."""
        for decorator in self.decorators:
            if decorator.name == name:
                return decorator
        return None

    def has_decorator(self, name: str) -> bool:
        return self.decorator(name) is not None

    @property
    def qualified_name(self) -> str:
        return f"{self.entity_name or '?'}.{self.name}"

    def __repr__(self) -> str:
        return f"PropertyDeclaration({self.qualified_name}: {self.type_text})"


@dataclass(eq=False)
class EntityDeclaration:
    """
    A named class-like declaration.

    Owns its direct properties in declaration order and an optional base
    declaration (single inheritance).
    """

    name: str
    properties: List[PropertyDeclaration] = field(default_factory=list)
    base: Optional["EntityDeclaration"] = None
    decorators: List[DecoratorInvocation] = field(default_factory=list)
    source_path: Optional[str] = None
    imports: Dict[str, str] = field(default_factory=dict)
    location: SourceLocation = field(default_factory=SourceLocation)

    def __post_init__(self):
        """Stamp ownership on the direct properties."""
        for prop in self.properties:
            if prop.entity_name is None:
                prop.entity_name = self.name

    @property
    def is_entity(self) -> bool:
        """Whether the class is decorated as a persistent entity."""
        return any(d.name == DecoratorNames.ENTITY for d in self.decorators)

    def get_property(self, name: str) -> Optional[PropertyDeclaration]:
        for prop in self.properties:
            if prop.name == name:
                return prop
        return None

    def __repr__(self) -> str:
        base = f" extends {self.base.name}" if self.base else ""
        return f"EntityDeclaration({self.name}{base})"


@dataclass(frozen=True)
class RelationDescriptor:
    """
    A relation as declared on a property. Computed on demand and never mutated.

    ``target`` is None when no declaration matches the decorator or declared
    type; the kind is still known so callers can decide how fatal that is.
    """

    property: PropertyDeclaration
    decorator: DecoratorInvocation
    target: Optional[EntityDeclaration]
    kind: RelationKind
    nullable: bool

    @property
    def decorator_name(self) -> str:
        return self.decorator.name

    @property
    def is_collection(self) -> bool:
        return self.kind is RelationKind.TO_MANY

    @property
    def is_resolved(self) -> bool:
        return self.target is not None


@dataclass(frozen=True)
class FieldPolicy:
    """Per (property, operation) inclusion and nullability."""

    excluded: bool
    nullable: bool


@dataclass
class ResolvedField:
    """One field of a generation context, ready for the template layer."""

    name: str
    type_text: str
    base_type_text: str
    category: FieldCategory
    required: bool
    optional: bool
    nullable: bool
    enum_type: Optional[str] = None
    description: Optional[str] = None
    relation_decorator: Optional[str] = None
    target_entity: Optional[str] = None
    target_primary_key_type: Optional[str] = None
    target_primary_key_name: Optional[str] = None
    target_source_path: Optional[str] = None
    is_collection: bool = False
    is_reference: bool = False
    operator_dto: Optional[str] = None

    @property
    def is_primary_key(self) -> bool:
        return self.category is FieldCategory.PRIMARY_KEY

    @property
    def is_relation(self) -> bool:
        return self.category is FieldCategory.RELATION

    @property
    def is_scalar(self) -> bool:
        return self.category is FieldCategory.SCALAR


@dataclass
class GenerationContext:
    """Everything the template layer needs to render one artifact."""

    entity_name: str
    kind: GeneratorKind
    operation: Operation
    fields: List[ResolvedField]
    file_name: str
    primary_key_name: Optional[str] = None
    primary_key_type: Optional[str] = None
    source_path: Optional[str] = None
    imports: Dict[str, str] = field(default_factory=dict)

    @property
    def enum_types(self) -> List[str]:
        seen: List[str] = []
        for f in self.fields:
            if f.enum_type and f.enum_type not in seen:
                seen.append(f.enum_type)
        return seen


@dataclass
class GenerationResult:
    """Result of generating one artifact for one entity."""

    entity_name: str
    kind: GeneratorKind
    code: str
    file_path: Optional[str] = None
    written: bool = False
    generation_time_ms: Optional[float] = None
    code_lines: Optional[int] = None

    def __post_init__(self):
        if self.code_lines is None:
            self.code_lines = len(self.code.splitlines())
