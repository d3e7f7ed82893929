"""
Domain module for DTO Auto Generator.

This module contains the metadata resolution engine: declaration models,
the entity registry, the inheritance, relation and field policy resolvers,
the memoization cache, and the field mapper that feeds the generators.
"""

from .models import (
    DecoratorShape,
    DecoratorInvocation,
    PropertyDeclaration,
    EntityDeclaration,
    SourceLocation,
    RelationKind,
    RelationDescriptor,
    FieldPolicy,
    FieldCategory,
    ResolvedField,
    GenerationContext,
    GenerationResult
)

from .decorators import (
    parse_decorator,
    parse_object_literal,
    parse_reference
)

from .cache import (
    CACHE_MISS,
    BoundedCache,
    DeclarationCache,
    ResolutionCache
)

from .registry import EntityRegistry

from .inheritance import PropertyInheritanceResolver

from .field_policy import (
    FieldPolicyResolver,
    parse_exclusion
)

from .relationships import RelationResolver

from .field_mapping import (
    FieldMapper,
    classify_property,
    operator_dto_for
)

from .naming import (
    file_stem,
    to_camel_case,
    pluralize,
    dto_class_name
)

__all__ = [
    # Core models
    'DecoratorShape',
    'DecoratorInvocation',
    'PropertyDeclaration',
    'EntityDeclaration',
    'SourceLocation',
    'RelationKind',
    'RelationDescriptor',
    'FieldPolicy',
    'FieldCategory',
    'ResolvedField',
    'GenerationContext',
    'GenerationResult',

    # Decorator parsing
    'parse_decorator',
    'parse_object_literal',
    'parse_reference',

    # Caching
    'CACHE_MISS',
    'BoundedCache',
    'DeclarationCache',
    'ResolutionCache',

    # Resolvers
    'EntityRegistry',
    'PropertyInheritanceResolver',
    'FieldPolicyResolver',
    'parse_exclusion',
    'RelationResolver',

    # Field mapping
    'FieldMapper',
    'classify_property',
    'operator_dto_for',

    # Naming
    'file_stem',
    'to_camel_case',
    'pluralize',
    'dto_class_name'
]
