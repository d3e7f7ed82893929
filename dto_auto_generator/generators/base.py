"""
Base class for per-entity artifact generators.

A generator resolves the entity's ``GenerationContext`` through the
``FieldMapper``, renders its template, and writes the result below
``<output_dir>/generated/<entity>/``.
"""

import logging
import time
from pathlib import Path
from typing import Any, Dict, Optional, Union

from ..codegen import TemplateRenderer, relative_import, resolve_module, write_generated_file
from ..constants import DefaultConfig, GeneratorKind
from ..domain.field_mapping import FieldMapper
from ..domain.models import EntityDeclaration, GenerationContext, GenerationResult
from ..domain.naming import file_stem
from ..exceptions import DtoGeneratorError

logger = logging.getLogger(__name__)


class ArtifactGenerator:
    """Renders one artifact kind for one entity at a time."""

    kind: GeneratorKind
    template_name: str

    def __init__(
        self,
        mapper: FieldMapper,
        renderer: TemplateRenderer,
        output_dir: Union[str, Path] = DefaultConfig.OUTPUT_DIR,
        dry_run: bool = False,
    ):
        self.mapper = mapper
        self.renderer = renderer
        self.output_dir = Path(output_dir)
        self.dry_run = dry_run

    def entity_dir(self, entity_name: str) -> Path:
        return self.output_dir / DefaultConfig.GENERATED_DIR_NAME / file_stem(entity_name)

    def class_name(self, context: GenerationContext) -> str:
        raise NotImplementedError

    def template_context(self, context: GenerationContext, entity_dir: Path) -> Dict[str, Any]:
        """Variables shared by every template; subclasses add their own."""
        entity_import = (
            relative_import(entity_dir, context.source_path) if context.source_path else None
        )

        enum_imports: Dict[str, str] = {}
        for enum_name in context.enum_types:
            specifier = context.imports.get(enum_name)
            if specifier:
                enum_imports[enum_name] = resolve_module(specifier, context.source_path, entity_dir)
            elif entity_import:
                # Enums declared next to the entity are imported from its file
                enum_imports[enum_name] = entity_import

        return {
            "entity_name": context.entity_name,
            "class_name": self.class_name(context),
            "fields": context.fields,
            "operation": context.operation.value,
            "kind": context.kind.value,
            "stem": file_stem(context.entity_name),
            "primary_key_name": context.primary_key_name,
            "primary_key_type": context.primary_key_type,
            "entity_import": entity_import,
            "enum_imports": enum_imports,
        }

    def render(self, context: GenerationContext, entity_dir: Optional[Path] = None) -> str:
        entity_dir = entity_dir or self.entity_dir(context.entity_name)
        return self.renderer.render(self.template_name, self.template_context(context, entity_dir))

    def generate(self, entity: EntityDeclaration) -> GenerationResult:
        """
        Generate this artifact for ``entity``.

        Raises:
            EntityResolutionError: a field cannot be represented
            GenerationError: the template failed to render
            FileSystemError: the file could not be written
        """
        start_time = time.perf_counter()

        try:
            context = self.mapper.build_context(entity, self.kind)
            entity_dir = self.entity_dir(entity.name)
            code = self.render(context, entity_dir)
        except DtoGeneratorError as e:
            e.context.setdefault("entity_name", entity.name)
            e.context.setdefault("generator_type", self.kind.value)
            raise

        output_path = entity_dir / context.file_name
        if not self.dry_run:
            write_generated_file(output_path, code)

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.debug(f"Generated {self.kind.value} for {entity.name} in {elapsed_ms:.1f}ms")

        return GenerationResult(
            entity_name=entity.name,
            kind=self.kind,
            code=code,
            file_path=str(output_path),
            written=not self.dry_run,
            generation_time_ms=elapsed_ms,
        )

    def __call__(self, entity: EntityDeclaration) -> GenerationResult:
        return self.generate(entity)
