"""
Name-indexed symbol table over every loaded declaration.

The registry is built once per generation run and is read-only afterwards.
Adding a declaration means building a new registry.
"""

import logging
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Mapping, Optional

from .cache import ResolutionCache
from .models import EntityDeclaration

logger = logging.getLogger(__name__)


class EntityRegistry:
    """
    Immutable mapping from declared name to ``EntityDeclaration``.

    Duplicate names are a logic error in the input. The first declaration
    registered under a name wins; later ones are reported and kept in
    ``duplicates`` for diagnostics.
    """

    def __init__(self, declarations: Iterable[EntityDeclaration], cache: Optional[ResolutionCache] = None):
        index: Dict[str, EntityDeclaration] = {}
        duplicates: List[EntityDeclaration] = []

        for declaration in declarations:
            existing = index.get(declaration.name)
            if existing is None:
                index[declaration.name] = declaration
                continue
            if existing is declaration:
                continue
            duplicates.append(declaration)
            logger.warning(
                f"Duplicate declaration '{declaration.name}' "
                f"({declaration.source_path or declaration.location}); "
                f"keeping the one from {existing.source_path or existing.location}"
            )

        self._index: Mapping[str, EntityDeclaration] = MappingProxyType(index)
        self.duplicates: List[EntityDeclaration] = duplicates
        self.cache = cache or ResolutionCache()

    @classmethod
    def build(cls, declarations: Iterable[EntityDeclaration], cache: Optional[ResolutionCache] = None) -> "EntityRegistry":
        return cls(declarations, cache=cache)

    def lookup(self, name: Optional[str]) -> Optional[EntityDeclaration]:
        """Return the declaration registered under ``name``, or None."""
        if not name:
            return None
        return self._index.get(name)

    @property
    def mapping(self) -> Mapping[str, EntityDeclaration]:
        return self._index

    def names(self) -> List[str]:
        return list(self._index)

    def entities(self) -> List[EntityDeclaration]:
        """Declarations decorated as entities, in registry order."""
        return [declaration for declaration in self._index.values() if declaration.is_entity]

    def discard(self) -> None:
        """Drop every declaration-scoped cache entry built against this registry."""
        self.cache.drop_declarations()

    def __contains__(self, name: object) -> bool:
        return name in self._index

    def __len__(self) -> int:
        return len(self._index)

    def __iter__(self) -> Iterator[EntityDeclaration]:
        return iter(self._index.values())

    def __repr__(self) -> str:
        return f"EntityRegistry({len(self)} declarations)"
