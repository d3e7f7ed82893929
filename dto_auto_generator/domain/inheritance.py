"""
Property inheritance and primary key resolution.

An entity's effective property list is its base chain's properties followed by
its own, where an own property shadows any inherited property of the same
name. The walk is iterative over the ``base`` pointer and capped at
``MAX_INHERITANCE_DEPTH``.
"""

import logging
from typing import List, Optional

from ..constants import DecoratorNames, MAX_INHERITANCE_DEPTH
from .cache import ResolutionCache
from .models import EntityDeclaration, PropertyDeclaration
from ..exceptions import EntityResolutionError

logger = logging.getLogger(__name__)

_PROPERTIES = "inherited-properties"
_PRIMARY_KEY = "primary-key"


class PropertyInheritanceResolver:
    """Computes effective property lists, memoized per declaration."""

    def __init__(self, cache: ResolutionCache, max_depth: int = MAX_INHERITANCE_DEPTH):
        self.cache = cache
        self.max_depth = max_depth

    def resolve(self, entity: EntityDeclaration) -> List[PropertyDeclaration]:
        """
        Return the ordered effective properties of ``entity``.

        Inherited properties keep their base order; overridden ones are
        dropped (not merged) and the override appears among the entity's own
        properties.
        """
        scope = self.cache.scope(entity, _PROPERTIES)
        if "value" in scope:
            return list(scope["value"])

        chain = self._base_chain(entity)

        # Fold from the root down so every level applies its own overrides
        properties: List[PropertyDeclaration] = []
        for declaration in reversed(chain):
            own_names = {prop.name for prop in declaration.properties}
            properties = [prop for prop in properties if prop.name not in own_names]
            properties.extend(declaration.properties)

        scope["value"] = tuple(properties)
        return properties

    def _base_chain(self, entity: EntityDeclaration) -> List[EntityDeclaration]:
        """``[entity, base, base-of-base, ...]``"""
        chain: List[EntityDeclaration] = []
        current: Optional[EntityDeclaration] = entity
        while current is not None:
            if len(chain) >= self.max_depth:
                raise EntityResolutionError(
                    f"Inheritance chain of '{entity.name}' exceeds {self.max_depth} levels",
                    entity_name=entity.name,
                    operation="resolve-properties",
                    suggestions=["Check the 'extends' chain for a cycle"],
                )
            chain.append(current)
            current = current.base
        return chain

    def primary_key(self, entity: EntityDeclaration) -> Optional[PropertyDeclaration]:
        """First effective property carrying a ``PrimaryKey`` decorator."""
        scope = self.cache.scope(entity, _PRIMARY_KEY)
        if "property" in scope:
            return scope["property"]

        found = None
        for prop in self.resolve(entity):
            if prop.has_decorator(DecoratorNames.PRIMARY_KEY):
                found = prop
                break

        scope["property"] = found
        return found

    def primary_key_type(self, entity: EntityDeclaration) -> Optional[str]:
        """Declared type of the primary key with ``!`` markers removed."""
        prop = self.primary_key(entity)
        if prop is None:
            return None
        return prop.type_text.replace("!", "").strip()

    def require_primary_key_type(self, entity: EntityDeclaration, **context) -> str:
        """Like ``primary_key_type`` but raises when the entity has none."""
        key_type = self.primary_key_type(entity)
        if not key_type:
            context.setdefault("operation", "extract-primary-key-type")
            raise EntityResolutionError(
                f"Entity '{entity.name}' has no @{DecoratorNames.PRIMARY_KEY} property",
                target_type=entity.name,
                **context,
            )
        return key_type
