"""
Rendering tests for the artifact generators and the template layer.
"""
import os
import tempfile
import unittest
from pathlib import Path

from builders import dec, entity, pk, prop, scalar
from dto_auto_generator.codegen import (
    TemplateRenderer,
    jinja2_quote_filter,
    jinja2_swagger_type_filter,
    relative_import,
    resolve_module,
    write_generated_file,
)
from dto_auto_generator.constants import ALL_GENERATOR_KINDS, GeneratorKind
from dto_auto_generator.domain.cache import ResolutionCache
from dto_auto_generator.domain.field_mapping import FieldMapper
from dto_auto_generator.domain.registry import EntityRegistry
from dto_auto_generator.exceptions import (
    ConfigurationError,
    EntityResolutionError,
    FileSystemError,
    GenerationError,
    GenerationRunError,
)
from dto_auto_generator.generators import (
    CreateDtoGenerator,
    CreateDtoToEntityGenerator,
    DataDtoGenerator,
    EntityToDtoGenerator,
    FindManyDtoGenerator,
    FindManyResponseDtoGenerator,
    FindManyToFilterGenerator,
    UpdateDtoGenerator,
    UpdateDtoToEntityGenerator,
    build_generators,
)
from dto_auto_generator.scheduler import GenerationScheduler


class TestCodegenHelpers(unittest.TestCase):

    def test_relative_import(self):
        self.assertEqual(relative_import("src/generated/user", "src/entities/User.ts"), "../../entities/User")
        self.assertEqual(relative_import("src", "src/user.entity.ts"), "./user.entity")

    def test_resolve_module(self):
        self.assertEqual(
            resolve_module("./status.enum", "src/entities/user.entity.ts", "src/generated/user"),
            "../../entities/status.enum",
        )
        self.assertEqual(
            resolve_module("@mikro-orm/core", "src/entities/user.entity.ts", "src/generated/user"),
            "@mikro-orm/core",
        )

    def test_filters(self):
        self.assertEqual(jinja2_quote_filter('say "hi"'), '"say \\"hi\\""')
        self.assertEqual(jinja2_quote_filter(None), '""')
        self.assertEqual(jinja2_swagger_type_filter("number"), "Number")
        self.assertEqual(jinja2_swagger_type_filter("UserStatus"), "")

    def test_missing_template(self):
        with tempfile.TemporaryDirectory() as empty_dir:
            renderer = TemplateRenderer(empty_dir)
            with self.assertRaises(GenerationError) as ctx:
                renderer.render("dto.ts.j2", {})

        self.assertEqual(ctx.exception.context["template"], "dto.ts.j2")

    def test_write_generated_file_creates_directories(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = write_generated_file(Path(tmp) / "a" / "b" / "x.ts", "export {};\n")

            self.assertEqual(path.read_text(encoding="utf-8"), "export {};\n")

    def test_write_into_a_file_fails(self):
        with tempfile.TemporaryDirectory() as tmp:
            blocker = Path(tmp) / "blocker"
            blocker.write_text("", encoding="utf-8")

            with self.assertRaises(FileSystemError) as ctx:
                write_generated_file(blocker / "x.ts", "")

        self.assertEqual(ctx.exception.context["operation"], "create-directory")


class GeneratorTestCase(unittest.TestCase):
    """Shared model: User, Post and Tag declared under <tmp>/src/entities."""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.root = Path(self._tmp.name)
        self.output_dir = self.root / "src"
        entities_dir = self.output_dir / "entities"

        self.user = entity(
            "User",
            pk(),
            scalar("email", "string", "{ comment: 'Login email' }"),
            scalar("bio", optional=True),
            prop("status", "UserStatus", dec("Enum", "() => UserStatus")),
            prop("posts", "Collection<Post>", dec("OneToMany", "() => Post")),
            source_path=str(entities_dir / "user.entity.ts"),
            imports={"UserStatus": "./user-status.enum"},
        )
        self.post = entity(
            "Post",
            pk(),
            scalar("title"),
            scalar("publishedAt", "Date | null"),
            prop("author", "Ref<User>", dec("ManyToOne", "() => User")),
            prop("tags", "Collection<Tag>", dec("ManyToMany")),
            source_path=str(entities_dir / "post.entity.ts"),
        )
        self.tag = entity("Tag", pk("slug", "string"), source_path=str(entities_dir / "tag.entity.ts"))

        registry = EntityRegistry([self.user, self.post, self.tag], cache=ResolutionCache())
        self.mapper = FieldMapper(registry)
        self.renderer = TemplateRenderer()

    def generator(self, cls, dry_run=False):
        return cls(self.mapper, self.renderer, output_dir=self.output_dir, dry_run=dry_run)


class TestDtoGenerators(GeneratorTestCase):

    def test_data_dto_written(self):
        result = self.generator(DataDtoGenerator).generate(self.user)

        expected_path = self.output_dir / "generated" / "user" / "user.dto.ts"
        self.assertTrue(result.written)
        self.assertEqual(result.file_path, str(expected_path))
        self.assertEqual(expected_path.read_text(encoding="utf-8"), result.code)
        self.assertEqual(result.code_lines, len(result.code.splitlines()))

        code = result.code
        self.assertIn("import { ApiProperty } from '@nestjs/swagger';", code)
        self.assertIn("import { UserStatus } from '../../entities/user-status.enum';", code)
        self.assertIn("export class UserDto {", code)
        self.assertIn("  @ApiProperty({ required: true, type: Number })\n  id: number;", code)
        self.assertIn('@ApiProperty({ required: true, type: String, description: "Login email" })', code)
        self.assertIn("  bio?: string;", code)
        self.assertIn('enum: UserStatus, enumName: "UserStatus"', code)
        self.assertIn("isArray: true", code)
        self.assertIn("  posts: number[];", code)

    def test_create_and_update_dtos(self):
        create = self.generator(CreateDtoGenerator).generate(self.post).code
        update = self.generator(UpdateDtoGenerator).generate(self.post).code

        self.assertIn("export class PostCreateDto {", create)
        self.assertNotIn("  id: number;", create)
        self.assertIn("  title: string;", create)
        self.assertIn("  publishedAt: Date | null;", create)
        self.assertIn("export class PostUpdateDto {", update)
        self.assertIn("  title?: string;", update)
        self.assertTrue((self.output_dir / "generated" / "post" / "post.update.dto.ts").is_file())

    def test_dry_run_writes_nothing(self):
        result = self.generator(DataDtoGenerator, dry_run=True).generate(self.user)

        self.assertFalse(result.written)
        self.assertIn("export class UserDto {", result.code)
        self.assertFalse(Path(result.file_path).exists())

    def test_find_many_dto(self):
        code = self.generator(FindManyDtoGenerator).generate(self.post).code

        self.assertIn(
            "import { StringFieldOperatorsDto, NumberFieldOperatorsDto, DateFieldOperatorsDto } "
            "from '../../types/find-many-operators.dto';",
            code,
        )
        self.assertIn("export class PostFindManyDto {", code)
        self.assertIn("  title?: string | StringFieldOperatorsDto;", code)
        self.assertIn("  author?: number | NumberFieldOperatorsDto;", code)
        self.assertIn("  sortOrder?: 'asc' | 'desc';", code)

    def test_find_many_response_dto(self):
        code = self.generator(FindManyResponseDtoGenerator).generate(self.user).code

        self.assertIn("import { UserDto } from './user.dto';", code)
        self.assertIn("export class UserFindManyResponseDto {", code)
        self.assertIn('description: "List of Users"', code)
        self.assertIn("  data: UserDto[];", code)
        self.assertIn("  count: number;", code)


class TestMappingGenerators(GeneratorTestCase):

    def test_entity_to_dto(self):
        result = self.generator(EntityToDtoGenerator).generate(self.post)
        code = result.code

        self.assertTrue(result.file_path.endswith(os.path.join("post", "post.mapping.ts")))
        self.assertIn("import { Post } from '../../entities/post.entity';", code)
        self.assertIn("export function PostToDto(entity: Post): PostDto {", code)
        self.assertIn("    id: entity.id,", code)
        self.assertIn("    author: entity.author?.id ?? null,", code)
        self.assertIn("    tags: entity.tags?.map((tag) => tag.slug) ?? [],", code)

    def test_create_dto_to_entity(self):
        code = self.generator(CreateDtoToEntityGenerator).generate(self.post).code

        self.assertIn("import { EntityManager, ref } from '@mikro-orm/core';", code)
        self.assertIn("import { User } from '../../entities/user.entity';", code)
        self.assertIn("import { PostCreateDto } from './post.create.dto';", code)
        self.assertIn("export function createPostFromDto(dto: PostCreateDto, em?: EntityManager): Post {", code)
        self.assertIn("  const entity = new Post();", code)
        self.assertIn("    entity.author = ref(em.getReference(User, dto.author));", code)
        self.assertIn("  entity.publishedAt = dto.publishedAt ?? null;", code)
        self.assertIn("  // tags is a collection relation", code)

    def test_update_dto_to_entity(self):
        code = self.generator(UpdateDtoToEntityGenerator).generate(self.user).code

        self.assertIn("import { EntityManager } from '@mikro-orm/core';", code)
        self.assertIn(
            "export function updateUserFromDto(dto: UserUpdateDto, entity: User, em?: EntityManager): User {",
            code,
        )
        self.assertIn("  if (dto.email !== undefined) {\n    entity.email = dto.email;\n  }", code)
        self.assertNotIn("new User()", code)

    def test_find_many_to_filter(self):
        code = self.generator(FindManyToFilterGenerator).generate(self.post).code

        self.assertIn("import { PostFindManyDto } from './post.find-many.dto';", code)
        self.assertIn("export function PostFindManyDtoToFilter(dto: PostFindManyDto): FilterQuery<Post> {", code)
        self.assertIn("filter.title = { $ilike: '%' + operators.contains + '%' };", code)
        self.assertIn("filter.tags = { $in: dto.tags };", code)
        self.assertIn("if (dto.publishedAt instanceof Date) {", code)
        self.assertIn("  return filter;", code)


class TestGeneratorErrors(GeneratorTestCase):

    def test_resolution_errors_carry_generator_context(self):
        broken = entity("Broken", pk(), prop("items", "Collection<Missing>", dec("OneToMany")))

        with self.assertRaises(EntityResolutionError) as ctx:
            self.generator(DataDtoGenerator).generate(broken)

        self.assertEqual(ctx.exception.context["entity_name"], "Broken")
        self.assertEqual(ctx.exception.context["generator_type"], "dto")

    def test_unwritable_output(self):
        blocker = self.root / "blocker"
        blocker.write_text("", encoding="utf-8")
        generator = DataDtoGenerator(self.mapper, self.renderer, output_dir=blocker)

        with self.assertRaises(FileSystemError):
            generator.generate(self.user)

    def test_write_failures_are_aggregated_by_the_scheduler(self):
        blocker = self.root / "blocker"
        blocker.write_text("", encoding="utf-8")
        scheduler = GenerationScheduler({
            GeneratorKind.DTO: DataDtoGenerator(self.mapper, self.renderer, output_dir=blocker),
            GeneratorKind.ENTITY_TO_DTO: self.generator(EntityToDtoGenerator),
        })

        with self.assertLogs("dto_auto_generator", level="ERROR"):
            with self.assertRaises(GenerationRunError) as ctx:
                scheduler.run_sync([self.user, self.tag])

        failures = ctx.exception.failures
        self.assertEqual([(f.entity_name, f.kind) for f in failures],
                         [("User", GeneratorKind.DTO), ("Tag", GeneratorKind.DTO)])
        self.assertTrue(all(f.code == "FILE_SYSTEM_ERROR" for f in failures))

        report = ctx.exception.report
        self.assertEqual(report.failed_entities, ["User", "Tag"])
        self.assertEqual(report.artifact_count, 2)
        self.assertTrue((self.output_dir / "generated" / "user" / "user.mapping.ts").is_file())
        self.assertTrue((self.output_dir / "generated" / "tag" / "tag.mapping.ts").is_file())


class TestBuildGenerators(GeneratorTestCase):

    def test_every_kind(self):
        generators = build_generators(ALL_GENERATOR_KINDS, self.mapper, self.renderer, self.output_dir)

        self.assertEqual(list(generators), ALL_GENERATOR_KINDS)
        for kind, generator in generators.items():
            self.assertIs(generator.kind, kind)

    def test_kind_names(self):
        generators = build_generators(["entity-to-dto"], self.mapper, self.renderer, self.output_dir, dry_run=True)

        generator = generators[GeneratorKind.ENTITY_TO_DTO]
        self.assertIsInstance(generator, EntityToDtoGenerator)
        self.assertTrue(generator.dry_run)

    def test_unknown_kind(self):
        with self.assertRaises(ConfigurationError):
            build_generators(["delete-dto"], self.mapper, self.renderer, self.output_dir)


if __name__ == '__main__':
    unittest.main()
