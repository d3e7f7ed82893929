"""
Artifact generators, one class per ``GeneratorKind``.
"""

from pathlib import Path
from typing import Dict, Iterable, Type, Union

from ..codegen import TemplateRenderer
from ..constants import GeneratorKind
from ..domain.field_mapping import FieldMapper
from ..exceptions import ConfigurationError
from .base import ArtifactGenerator
from .dtos import (
    CreateDtoGenerator,
    DataDtoGenerator,
    FindManyDtoGenerator,
    FindManyResponseDtoGenerator,
    UpdateDtoGenerator,
)
from .mappings import (
    CreateDtoToEntityGenerator,
    EntityToDtoGenerator,
    FindManyToFilterGenerator,
    UpdateDtoToEntityGenerator,
)

GENERATOR_CLASSES: Dict[GeneratorKind, Type[ArtifactGenerator]] = {
    cls.kind: cls
    for cls in (
        DataDtoGenerator,
        CreateDtoGenerator,
        UpdateDtoGenerator,
        FindManyDtoGenerator,
        FindManyResponseDtoGenerator,
        FindManyToFilterGenerator,
        EntityToDtoGenerator,
        CreateDtoToEntityGenerator,
        UpdateDtoToEntityGenerator,
    )
}


def build_generators(
    kinds: Iterable[Union[GeneratorKind, str]],
    mapper: FieldMapper,
    renderer: TemplateRenderer,
    output_dir: Union[str, Path],
    dry_run: bool = False,
) -> Dict[GeneratorKind, ArtifactGenerator]:
    """Instantiate one generator per requested kind, in request order."""
    generators: Dict[GeneratorKind, ArtifactGenerator] = {}
    for kind in kinds:
        try:
            kind = GeneratorKind(kind)
        except ValueError:
            raise ConfigurationError(
                f"Unknown generator kind '{kind}'. Valid kinds: {', '.join(GeneratorKind.values())}"
            )
        generators[kind] = GENERATOR_CLASSES[kind](mapper, renderer, output_dir=output_dir, dry_run=dry_run)
    return generators


__all__ = [
    'ArtifactGenerator',
    'DataDtoGenerator',
    'CreateDtoGenerator',
    'UpdateDtoGenerator',
    'FindManyDtoGenerator',
    'FindManyResponseDtoGenerator',
    'FindManyToFilterGenerator',
    'EntityToDtoGenerator',
    'CreateDtoToEntityGenerator',
    'UpdateDtoToEntityGenerator',
    'GENERATOR_CLASSES',
    'build_generators',
]
