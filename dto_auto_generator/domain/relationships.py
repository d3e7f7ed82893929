"""
Relation target resolution.

Given a property and its relation decorator, find the target entity
declaration. Resolution paths, tried in order:

1. ``@ManyToOne(() => Target)``: look ``Target`` up in the registry
2. ``@ManyToOne(Target)``: same
3. ``@ManyToOne({ ... })``: infer the target from the declared type
4. ``@ManyToOne()``: same

Only exact registry names are used; an absent match is reported as not found
and callers decide whether that is fatal.
"""

import logging
from typing import Optional

from ..constants import DecoratorNames
from .cache import CACHE_MISS, ResolutionCache
from .models import (
    DecoratorInvocation,
    DecoratorShape,
    EntityDeclaration,
    PropertyDeclaration,
    RelationDescriptor,
    RelationKind,
)
from .registry import EntityRegistry
from .type_expressions import infer_entity_name, is_collection_type
from .field_policy import FieldPolicyResolver

logger = logging.getLogger(__name__)


class RelationResolver:
    """Resolves relation decorators to target declarations."""

    def __init__(self, cache: ResolutionCache, policy: Optional[FieldPolicyResolver] = None):
        self.cache = cache
        self.policy = policy or FieldPolicyResolver(cache)

    @staticmethod
    def relation_decorator(prop: PropertyDeclaration) -> Optional[DecoratorInvocation]:
        """First relation decorator on the property, in lookup order."""
        for name in DecoratorNames.RELATION_LOOKUP_ORDER:
            decorator = prop.decorator(name)
            if decorator is not None:
                return decorator
        return None

    def resolve(
        self,
        decorator: DecoratorInvocation,
        prop: PropertyDeclaration,
        registry: EntityRegistry,
    ) -> Optional[EntityDeclaration]:
        """
        Return the target declaration or None when it cannot be found.

        The memoized value is the target *name*, so a hit is re-looked-up in
        the registry passed to this call.
        """
        # The declared type feeds inference, so it is part of the key
        key = f"relation:{prop.qualified_name}:{prop.type_text}:{decorator.text}"
        cached = self.cache.get(key)
        if cached is not CACHE_MISS:
            return registry.lookup(cached)

        name = self._target_name(decorator, prop)
        self.cache.set(key, name)

        target = registry.lookup(name)
        if target is None:
            logger.debug(f"No declaration named {name!r} for relation {prop.qualified_name}")
        return target

    def _target_name(self, decorator: DecoratorInvocation, prop: PropertyDeclaration) -> Optional[str]:
        if decorator.shape in (DecoratorShape.THUNK, DecoratorShape.REFERENCE):
            return decorator.target

        if decorator.shape in (DecoratorShape.OPTIONS, DecoratorShape.NO_ARGUMENTS):
            return infer_entity_name(prop.type_text)

        logger.debug(f"Cannot resolve target of {decorator.text} on {prop.qualified_name}")
        return None

    def relation_kind(self, decorator: DecoratorInvocation, prop: PropertyDeclaration) -> RelationKind:
        if decorator.name in DecoratorNames.TO_MANY_RELATIONS or is_collection_type(prop.type_text):
            return RelationKind.TO_MANY
        return RelationKind.TO_ONE

    def describe(self, prop: PropertyDeclaration, registry: EntityRegistry) -> Optional[RelationDescriptor]:
        """
        Relation descriptor of ``prop``, or None when it has no relation decorator.

        An unresolved target is reported as ``target=None``.
        """
        decorator = self.relation_decorator(prop)
        if decorator is None:
            return None

        return RelationDescriptor(
            property=prop,
            decorator=decorator,
            target=self.resolve(decorator, prop, registry),
            kind=self.relation_kind(decorator, prop),
            nullable=self.policy.is_nullable(prop),
        )
