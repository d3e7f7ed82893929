"""
Field mapping domain logic for DTO Auto Generator.

This module turns an entity declaration into the ordered, exclusion-filtered
field list a generator renders for one operation, and wraps it into a
``GenerationContext``.
"""

import logging
import re
from typing import List, Optional, Union

from ..constants import (
    ARTIFACT_FILE_PATTERNS,
    GENERATOR_OPERATIONS,
    DecoratorNames,
    GeneratorKind,
    Operation,
    OperatorDtos,
    TypeNames,
)
from ..exceptions import EntityResolutionError
from .cache import ResolutionCache
from .field_policy import FieldPolicyResolver
from .inheritance import PropertyInheritanceResolver
from .models import (
    EntityDeclaration,
    FieldCategory,
    GenerationContext,
    PropertyDeclaration,
    ResolvedField,
)
from .naming import file_stem
from .registry import EntityRegistry
from .relationships import RelationResolver
from .type_expressions import non_nullable_member, strip_nullish, wrapper_argument

logger = logging.getLogger(__name__)

_NULL_WORD = re.compile(r"(?<![\w$])null(?![\w$])")


def classify_property(prop: PropertyDeclaration) -> Optional[FieldCategory]:
    """
    Category of a property based on its decorators.

    Properties without a ``PrimaryKey``, scalar or relation decorator are not
    persisted fields and give None.
    """
    names = {decorator.name for decorator in prop.decorators}
    if DecoratorNames.PRIMARY_KEY in names:
        return FieldCategory.PRIMARY_KEY
    if names & DecoratorNames.SCALARS:
        return FieldCategory.SCALAR
    if names & DecoratorNames.RELATIONS:
        return FieldCategory.RELATION
    return None


def operator_dto_for(base_type: str, is_enum: bool = False) -> str:
    """Filter operator DTO matching a non-nullable base type."""
    if is_enum:
        return OperatorDtos.GENERIC
    if re.search(r"\bstring\b", base_type):
        return OperatorDtos.STRING
    if re.search(r"\b(number|bigint)\b", base_type):
        return OperatorDtos.NUMBER
    if re.search(r"\bboolean\b", base_type):
        return OperatorDtos.BOOLEAN
    if re.search(r"\bDate\b", base_type):
        return OperatorDtos.DATE
    return OperatorDtos.GENERIC


def with_null(type_text: str) -> str:
    """Append ``| null`` unless the type already mentions ``null``."""
    if _NULL_WORD.search(type_text):
        return type_text
    return f"{type_text} | null"


class FieldMapper:
    """
    Builds resolved field lists and generation contexts.

    Owns one of each resolver, all sharing the run's ``ResolutionCache``.
    """

    def __init__(self, registry: EntityRegistry, cache: Optional[ResolutionCache] = None):
        self.registry = registry
        self.cache = cache or registry.cache
        self.inheritance = PropertyInheritanceResolver(self.cache)
        self.policy = FieldPolicyResolver(self.cache)
        self.relations = RelationResolver(self.cache, self.policy)

    def map_fields(
        self,
        entity: EntityDeclaration,
        operation: Union[Operation, str],
        generator_type: Optional[str] = None,
    ) -> List[ResolvedField]:
        """
        Resolve every field of ``entity`` that appears in ``operation``.

        Raises:
            EntityResolutionError: a relation cannot be represented
        """
        operation = Operation(operation)
        fields: List[ResolvedField] = []

        for prop in self.inheritance.resolve(entity):
            if self.policy.is_excluded(prop, operation):
                continue

            category = classify_property(prop)
            if category is None:
                continue
            if category is FieldCategory.PRIMARY_KEY and operation is not Operation.DATA:
                continue

            if category is FieldCategory.RELATION:
                resolved = self._map_relation(entity, prop, operation, generator_type)
            else:
                resolved = self._map_scalar(prop, category, operation)

            if resolved is not None:
                fields.append(resolved)

        return fields

    def _required(self, prop: PropertyDeclaration, operation: Operation) -> bool:
        if operation in (Operation.DATA, Operation.CREATE):
            return not prop.optional
        return False

    def _map_scalar(
        self,
        prop: PropertyDeclaration,
        category: FieldCategory,
        operation: Operation,
    ) -> ResolvedField:
        nullable = self.policy.is_nullable(prop)
        enum_type = self.policy.enum_type(prop)

        if category is FieldCategory.PRIMARY_KEY:
            base_type = prop.type_text.replace("!", "").strip()
        else:
            base_type = enum_type or strip_nullish(prop.type_text)

        type_text = enum_type or prop.type_text.strip()
        if nullable and not prop.optional:
            type_text = with_null(type_text)

        return ResolvedField(
            name=prop.name,
            type_text=type_text,
            base_type_text=base_type,
            category=category,
            required=self._required(prop, operation),
            optional=prop.optional,
            nullable=nullable,
            enum_type=enum_type,
            description=self.policy.description(prop),
            operator_dto=(
                operator_dto_for(base_type, is_enum=enum_type is not None)
                if operation is Operation.FIND_MANY else None
            ),
        )

    def _map_relation(
        self,
        entity: EntityDeclaration,
        prop: PropertyDeclaration,
        operation: Operation,
        generator_type: Optional[str],
    ) -> Optional[ResolvedField]:
        relation = self.relations.describe(prop, self.registry)
        decorator = relation.decorator

        if not relation.is_resolved:
            if relation.is_collection:
                raise EntityResolutionError(
                    f"Cannot resolve the target of collection relation '{prop.name}' in entity '{entity.name}'",
                    entity_name=entity.name,
                    property_name=prop.name,
                    operation=operation.value,
                    target_type=prop.type_text,
                    generator_type=generator_type,
                )
            logger.warning(
                f"Skipping relation {entity.name}.{prop.name}: "
                f"no declaration found for {decorator.text} ({prop.type_text})"
            )
            return None

        target = relation.target
        key_type = self.inheritance.require_primary_key_type(
            target,
            entity_name=entity.name,
            property_name=prop.name,
            operation=operation.value,
            generator_type=generator_type,
        )
        target_key = self.inheritance.primary_key(target)

        nullable = relation.nullable
        is_collection = relation.is_collection
        type_text = f"{key_type}[]" if is_collection else key_type
        if nullable:
            type_text = with_null(type_text)

        is_reference = wrapper_argument(
            non_nullable_member(prop.type_text), TypeNames.REFERENCE_WRAPPERS
        ) is not None

        return ResolvedField(
            name=prop.name,
            type_text=type_text,
            base_type_text=key_type,
            category=FieldCategory.RELATION,
            required=self._required(prop, operation),
            optional=prop.optional,
            nullable=nullable,
            description=self.policy.description(prop) or f"{decorator.name} relation",
            relation_decorator=decorator.name,
            target_entity=target.name,
            target_primary_key_type=key_type,
            target_primary_key_name=target_key.name,
            target_source_path=target.source_path,
            is_collection=is_collection,
            is_reference=is_reference,
            operator_dto=operator_dto_for(key_type) if operation is Operation.FIND_MANY else None,
        )

    def build_context(self, entity: EntityDeclaration, kind: Union[GeneratorKind, str]) -> GenerationContext:
        """Resolved context for rendering one artifact of ``entity``."""
        kind = GeneratorKind(kind)
        operation = GENERATOR_OPERATIONS[kind]

        fields = self.map_fields(entity, operation, generator_type=kind.value)
        primary_key = self.inheritance.primary_key(entity)

        return GenerationContext(
            entity_name=entity.name,
            kind=kind,
            operation=operation,
            fields=fields,
            file_name=ARTIFACT_FILE_PATTERNS[kind].format(stem=file_stem(entity.name)),
            primary_key_name=primary_key.name if primary_key else None,
            primary_key_type=self.inheritance.primary_key_type(entity),
            source_path=entity.source_path,
            imports=dict(entity.imports),
        )
