"""
Unit tests for the concurrency-bounded generation scheduler.
"""
import asyncio
import unittest

from dto_auto_generator.constants import GeneratorKind
from dto_auto_generator.domain.models import EntityDeclaration
from dto_auto_generator.exceptions import (
    ConfigurationError,
    EntityResolutionError,
    GenerationRunError,
)
from dto_auto_generator.scheduler import GenerationScheduler


def make_entities(count):
    return [EntityDeclaration(name=f"E{index}") for index in range(count)]


class TrackingGenerator:
    """Async generator recording how many calls are in flight."""

    def __init__(self, tracker, fail_for=()):
        self.tracker = tracker
        self.fail_for = set(fail_for)
        self.seen = []

    async def generate(self, entity):
        self.tracker["in_flight"] += 1
        self.tracker["max"] = max(self.tracker["max"], self.tracker["in_flight"])
        try:
            await asyncio.sleep(0)
            self.seen.append(entity.name)
            if entity.name in self.fail_for:
                raise EntityResolutionError(
                    f"Cannot map relation in entity '{entity.name}'",
                    entity_name=entity.name,
                )
            return f"{entity.name}-artifact"
        finally:
            self.tracker["in_flight"] -= 1


class TestGenerationScheduler(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.tracker = {"in_flight": 0, "max": 0}
        self.entities = make_entities(10)

    async def test_all_entities_and_kinds_generated(self):
        dto = TrackingGenerator(self.tracker)
        create = TrackingGenerator(self.tracker)
        scheduler = GenerationScheduler(
            {GeneratorKind.DTO: dto, GeneratorKind.CREATE_DTO: create},
            concurrency_limit=4,
        )

        report = await scheduler.run(self.entities)

        self.assertTrue(report.succeeded)
        self.assertEqual([r.entity_name for r in report.results], [e.name for e in self.entities])
        self.assertEqual(report.artifact_count, 20)
        self.assertEqual(report.get("E3").artifacts[GeneratorKind.CREATE_DTO], "E3-artifact")
        self.assertEqual(sorted(dto.seen), sorted(e.name for e in self.entities))

    async def test_outstanding_work_is_bounded(self):
        """At most limit * kinds sub-tasks run at once."""
        scheduler = GenerationScheduler(
            {GeneratorKind.DTO: TrackingGenerator(self.tracker),
             GeneratorKind.CREATE_DTO: TrackingGenerator(self.tracker)},
            concurrency_limit=4,
        )

        await scheduler.run(self.entities)

        self.assertLessEqual(self.tracker["max"], 8)
        self.assertGreater(self.tracker["max"], 2)

    async def test_limit_of_one_is_sequential_per_entity(self):
        scheduler = GenerationScheduler({GeneratorKind.DTO: TrackingGenerator(self.tracker)}, concurrency_limit=1)

        await scheduler.run(self.entities)

        self.assertEqual(self.tracker["max"], 1)

    async def test_failures_are_collected_and_others_complete(self):
        dto = TrackingGenerator(self.tracker)
        create = TrackingGenerator(self.tracker, fail_for={"E3"})
        scheduler = GenerationScheduler(
            {GeneratorKind.DTO: dto, GeneratorKind.CREATE_DTO: create},
            concurrency_limit=4,
        )

        with self.assertLogs("dto_auto_generator", level="ERROR"):
            with self.assertRaises(GenerationRunError) as ctx:
                await scheduler.run(self.entities)

        error = ctx.exception
        self.assertEqual(len(error.failures), 1)
        failure = error.failures[0]
        self.assertEqual(failure.entity_name, "E3")
        self.assertIs(failure.kind, GeneratorKind.CREATE_DTO)
        self.assertEqual(failure.code, "ENTITY_RESOLUTION_ERROR")
        self.assertIn("E3", failure.message)

        report = error.report
        self.assertEqual(len(report.results), 10)
        self.assertEqual(report.failed_entities, ["E3"])
        self.assertIn(GeneratorKind.DTO, report.get("E3").artifacts)
        self.assertFalse(report.get("E3").success)
        self.assertTrue(report.get("E4").success)
        self.assertEqual(report.artifact_count, 19)

    async def test_failures_are_reported_in_entity_then_kind_order(self):
        dto = TrackingGenerator(self.tracker, fail_for={"E1", "E6"})
        update = TrackingGenerator(self.tracker, fail_for={"E1", "E6"})
        scheduler = GenerationScheduler(
            {GeneratorKind.UPDATE_DTO: update, GeneratorKind.DTO: dto},
            concurrency_limit=3,
        )

        with self.assertLogs("dto_auto_generator", level="ERROR"):
            with self.assertRaises(GenerationRunError) as ctx:
                await scheduler.run(self.entities)

        order = [(f.entity_name, f.kind) for f in ctx.exception.failures]
        self.assertEqual(order, [
            ("E1", GeneratorKind.DTO),
            ("E1", GeneratorKind.UPDATE_DTO),
            ("E6", GeneratorKind.DTO),
            ("E6", GeneratorKind.UPDATE_DTO),
        ])

    async def test_unexpected_errors_are_wrapped(self):
        def explode(entity):
            raise RuntimeError("template blew up")

        scheduler = GenerationScheduler({GeneratorKind.DTO: explode}, concurrency_limit=2)

        with self.assertLogs("dto_auto_generator", level="ERROR"):
            with self.assertRaises(GenerationRunError) as ctx:
                await scheduler.run(make_entities(1))

        failure = ctx.exception.failures[0]
        self.assertEqual(failure.code, "UNEXPECTED_ERROR")
        self.assertIsInstance(failure.error.__cause__, RuntimeError)
        self.assertEqual(failure.error.context["generator_type"], "dto")

    async def test_sync_generators_run_in_threads(self):
        calls = []

        def generate(entity):
            calls.append(entity.name)
            return entity.name

        scheduler = GenerationScheduler({"dto": generate}, concurrency_limit=4)

        report = await scheduler.run(make_entities(5))

        self.assertEqual(sorted(calls), ["E0", "E1", "E2", "E3", "E4"])
        self.assertEqual(report.get("E2").artifacts[GeneratorKind.DTO], "E2")

    async def test_requested_kinds_subset(self):
        dto = TrackingGenerator(self.tracker)
        create = TrackingGenerator(self.tracker)
        scheduler = GenerationScheduler({GeneratorKind.DTO: dto, GeneratorKind.CREATE_DTO: create})

        report = await scheduler.run(make_entities(2), kinds=["create-dto", "create-dto"])

        self.assertEqual(dto.seen, [])
        self.assertEqual(report.artifact_count, 2)

    async def test_unregistered_kind_fails_before_work(self):
        dto = TrackingGenerator(self.tracker)
        scheduler = GenerationScheduler({GeneratorKind.DTO: dto})

        with self.assertRaises(ConfigurationError):
            await scheduler.run(self.entities, kinds=[GeneratorKind.UPDATE_DTO])
        with self.assertRaises(ConfigurationError):
            await scheduler.run(self.entities, kinds=["bogus"])

        self.assertEqual(dto.seen, [])


class TestSchedulerConfiguration(unittest.TestCase):

    def test_invalid_concurrency_limit(self):
        for limit in (0, -1):
            with self.subTest(limit=limit):
                with self.assertRaises(ConfigurationError):
                    GenerationScheduler({}, concurrency_limit=limit)

    def test_unknown_generator_kind(self):
        with self.assertRaises(ConfigurationError):
            GenerationScheduler({"bogus": lambda entity: None})

    def test_run_sync(self):
        scheduler = GenerationScheduler({GeneratorKind.DTO: lambda entity: entity.name}, concurrency_limit=2)

        report = scheduler.run_sync(make_entities(3))

        self.assertEqual(report.artifact_count, 3)
        self.assertGreaterEqual(report.duration_ms, 0)


if __name__ == '__main__':
    unittest.main()
