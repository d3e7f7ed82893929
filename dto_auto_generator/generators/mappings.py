"""Mapping function generators between entities, DTOs and ORM filters."""

from pathlib import Path
from typing import Any, Dict

from ..codegen import relative_import
from ..constants import GeneratorKind
from ..domain.models import GenerationContext
from ..domain.naming import dto_class_name, file_stem
from .base import ArtifactGenerator


class EntityToDtoGenerator(ArtifactGenerator):
    """``<Entity>ToDto(entity)``: relations collapse to primary keys."""

    kind = GeneratorKind.ENTITY_TO_DTO
    template_name = "entity_to_dto.ts.j2"

    def class_name(self, context: GenerationContext) -> str:
        return dto_class_name(context.entity_name)

    def template_context(self, context: GenerationContext, entity_dir: Path) -> Dict[str, Any]:
        variables = super().template_context(context, entity_dir)
        variables["function_name"] = f"{context.entity_name}ToDto"
        variables["dto_class_name"] = dto_class_name(context.entity_name)
        variables["dto_module"] = f"./{file_stem(context.entity_name)}.dto"
        return variables


class DtoToEntityGenerator(ArtifactGenerator):
    """Shared rendering of the create/update DTO to entity mappings."""

    template_name = "dto_to_entity.ts.j2"
    mode: str
    class_suffix: str

    def class_name(self, context: GenerationContext) -> str:
        return dto_class_name(context.entity_name, self.class_suffix)

    def template_context(self, context: GenerationContext, entity_dir: Path) -> Dict[str, Any]:
        variables = super().template_context(context, entity_dir)

        # Targets of single relations are needed for em.getReference()
        target_imports: Dict[str, str] = {}
        for f in context.fields:
            if f.is_relation and not f.is_collection and f.target_entity != context.entity_name:
                if f.target_source_path:
                    target_imports.setdefault(f.target_entity, relative_import(entity_dir, f.target_source_path))

        variables.update({
            "mode": self.mode,
            "function_name": f"{self.mode}{context.entity_name}FromDto",
            "dto_class_name": self.class_name(context),
            "dto_module": f"./{file_stem(context.entity_name)}.{self.mode}.dto",
            "target_imports": target_imports,
            "uses_ref": any(f.is_reference and not f.is_collection for f in context.fields),
        })
        return variables


class CreateDtoToEntityGenerator(DtoToEntityGenerator):
    kind = GeneratorKind.CREATE_DTO_TO_ENTITY
    mode = "create"
    class_suffix = "Create"


class UpdateDtoToEntityGenerator(DtoToEntityGenerator):
    kind = GeneratorKind.UPDATE_DTO_TO_ENTITY
    mode = "update"
    class_suffix = "Update"


class FindManyToFilterGenerator(ArtifactGenerator):
    """``<Entity>FindManyDtoToFilter(dto)``: query DTO to an ORM filter object."""

    kind = GeneratorKind.FIND_MANY_TO_FILTER
    template_name = "find_many_filter.ts.j2"

    def class_name(self, context: GenerationContext) -> str:
        return dto_class_name(context.entity_name, "FindMany")

    def template_context(self, context: GenerationContext, entity_dir: Path) -> Dict[str, Any]:
        variables = super().template_context(context, entity_dir)
        variables["function_name"] = f"{context.entity_name}FindManyDtoToFilter"
        variables["dto_class_name"] = self.class_name(context)
        variables["dto_module"] = f"./{file_stem(context.entity_name)}.find-many.dto"
        return variables
