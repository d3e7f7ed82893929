"""DTO class generators: data, create, update, findMany and findMany response."""

from pathlib import Path
from typing import Any, Dict

from ..constants import DefaultConfig, GeneratorKind, OperatorDtos
from ..domain.models import GenerationContext
from ..domain.naming import dto_class_name, file_stem
from .base import ArtifactGenerator


class DataDtoGenerator(ArtifactGenerator):
    """``<Entity>Dto``: every non-excluded field, primary key included."""

    kind = GeneratorKind.DTO
    template_name = "dto.ts.j2"
    class_suffix = ""

    def class_name(self, context: GenerationContext) -> str:
        return dto_class_name(context.entity_name, self.class_suffix)


class CreateDtoGenerator(DataDtoGenerator):
    kind = GeneratorKind.CREATE_DTO
    class_suffix = "Create"


class UpdateDtoGenerator(DataDtoGenerator):
    """Every field optional; absent fields are left untouched on update."""

    kind = GeneratorKind.UPDATE_DTO
    class_suffix = "Update"


class FindManyDtoGenerator(ArtifactGenerator):
    """Query DTO: each field accepts a value or an operator object, plus paging."""

    kind = GeneratorKind.FIND_MANY_DTO
    template_name = "find_many_dto.ts.j2"

    def class_name(self, context: GenerationContext) -> str:
        return dto_class_name(context.entity_name, "FindMany")

    def template_context(self, context: GenerationContext, entity_dir: Path) -> Dict[str, Any]:
        variables = super().template_context(context, entity_dir)
        used = {f.operator_dto for f in context.fields}
        variables["operator_dtos"] = [name for name in OperatorDtos.ALL if name in used]
        variables["operators_module"] = DefaultConfig.OPERATORS_MODULE
        return variables


class FindManyResponseDtoGenerator(ArtifactGenerator):
    """Paged response wrapper around the data DTO."""

    kind = GeneratorKind.FIND_MANY_RESPONSE_DTO
    template_name = "find_many_response_dto.ts.j2"

    def class_name(self, context: GenerationContext) -> str:
        return dto_class_name(context.entity_name, "FindManyResponse")

    def template_context(self, context: GenerationContext, entity_dir: Path) -> Dict[str, Any]:
        variables = super().template_context(context, entity_dir)
        variables["dto_class_name"] = dto_class_name(context.entity_name)
        variables["dto_module"] = f"./{file_stem(context.entity_name)}.dto"
        return variables
