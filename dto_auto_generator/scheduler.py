"""
Concurrency-bounded multi-artifact generation.

Entities are processed in consecutive batches of ``concurrency_limit``. Inside
a batch every entity runs as its own task, and every entity fans out one
sub-task per requested generator kind. A batch fully settles before the next
one starts, so at most ``concurrency_limit * len(kinds)`` sub-tasks are
outstanding at any time.

Failures are caught per (entity, kind), recorded, and raised once as a
``GenerationRunError`` after every batch has run.
"""

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from .constants import DefaultConfig, GeneratorKind
from .domain.models import EntityDeclaration, GenerationResult
from .exceptions import (
    ConfigurationError,
    DtoGeneratorError,
    GenerationRunError,
    format_error,
    wrap_unexpected,
)

logger = logging.getLogger(__name__)

# Anything with generate(entity) (sync or async), or a plain callable
Generator = Any


@dataclass
class GenerationFailure:
    """One failed (entity, kind) sub-task."""

    entity_name: str
    kind: GeneratorKind
    error: DtoGeneratorError

    @property
    def message(self) -> str:
        return self.error.message

    @property
    def code(self) -> str:
        return self.error.error_code


@dataclass
class EntityResult:
    """Outcome of every requested kind for one entity."""

    entity_name: str
    artifacts: Dict[GeneratorKind, GenerationResult] = field(default_factory=dict)
    failures: List[GenerationFailure] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.failures


@dataclass
class GenerationReport:
    """Per-entity results of a run, in entity order."""

    results: List[EntityResult] = field(default_factory=list)
    failures: List[GenerationFailure] = field(default_factory=list)
    duration_ms: float = 0.0

    @property
    def failed_entities(self) -> List[str]:
        names: List[str] = []
        for failure in self.failures:
            if failure.entity_name not in names:
                names.append(failure.entity_name)
        return names

    @property
    def succeeded(self) -> bool:
        return not self.failures

    @property
    def artifact_count(self) -> int:
        return sum(len(result.artifacts) for result in self.results)

    def get(self, entity_name: str) -> Optional[EntityResult]:
        for result in self.results:
            if result.entity_name == entity_name:
                return result
        return None


class GenerationScheduler:
    """
    Runs generators over entities in fixed-size batches.

    Args:
        generators: Generator per kind. A generator is an object with a
            ``generate(entity)`` method or a callable taking the entity; either
            may be a coroutine function. Synchronous generators run on worker
            threads via ``asyncio.to_thread``.
        concurrency_limit: Number of entities processed per batch
    """

    def __init__(
        self,
        generators: Mapping[Union[GeneratorKind, str], Generator],
        concurrency_limit: int = DefaultConfig.CONCURRENCY_LIMIT,
    ):
        if not isinstance(concurrency_limit, int) or concurrency_limit < 1:
            raise ConfigurationError(
                f"concurrency_limit must be a positive integer, got {concurrency_limit!r}"
            )

        self.generators: Dict[GeneratorKind, Generator] = {}
        for kind, generator in generators.items():
            self.generators[self._to_kind(kind)] = generator
        self.concurrency_limit = concurrency_limit

    @staticmethod
    def _to_kind(kind: Union[GeneratorKind, str]) -> GeneratorKind:
        try:
            return GeneratorKind(kind)
        except ValueError:
            raise ConfigurationError(
                f"Unknown generator kind '{kind}'. Valid kinds: {', '.join(GeneratorKind.values())}"
            )

    def _resolve_kinds(self, kinds: Optional[Iterable[Union[GeneratorKind, str]]]) -> List[GeneratorKind]:
        if kinds is None:
            return list(self.generators)

        resolved: List[GeneratorKind] = []
        for kind in kinds:
            kind = self._to_kind(kind)
            if kind not in self.generators:
                raise ConfigurationError(f"No generator registered for kind '{kind.value}'")
            if kind not in resolved:
                resolved.append(kind)
        return resolved

    async def run(
        self,
        entities: Sequence[EntityDeclaration],
        kinds: Optional[Iterable[Union[GeneratorKind, str]]] = None,
    ) -> GenerationReport:
        """
        Generate every requested kind for every entity.

        Returns:
            The report, when no sub-task failed

        Raises:
            ConfigurationError: unknown kinds (before any work starts)
            GenerationRunError: at least one sub-task failed; carries the report
        """
        requested = self._resolve_kinds(kinds)
        entities = list(entities)
        start_time = time.perf_counter()

        report = GenerationReport()
        batch_size = self.concurrency_limit
        total_batches = (len(entities) + batch_size - 1) // batch_size

        for batch_index, offset in enumerate(range(0, len(entities), batch_size), start=1):
            batch = entities[offset:offset + batch_size]
            logger.debug(f"Processing batch {batch_index}/{total_batches} ({len(batch)} entities)")
            results = await asyncio.gather(*(self._run_entity(entity, requested) for entity in batch))
            report.results.extend(results)

        report.duration_ms = (time.perf_counter() - start_time) * 1000

        # Deterministic order regardless of completion timing
        kind_order = {kind: index for index, kind in enumerate(GeneratorKind)}
        for result in report.results:
            report.failures.extend(sorted(result.failures, key=lambda f: kind_order[f.kind]))

        if report.failures:
            logger.error(
                f"Generation finished with {len(report.failures)} failure(s) "
                f"across {len(report.failed_entities)} entities"
            )
            raise GenerationRunError(list(report.failures), report)

        logger.debug(f"Generated {report.artifact_count} artifacts in {report.duration_ms:.1f}ms")
        return report

    def run_sync(
        self,
        entities: Sequence[EntityDeclaration],
        kinds: Optional[Iterable[Union[GeneratorKind, str]]] = None,
    ) -> GenerationReport:
        """Blocking wrapper around ``run``."""
        return asyncio.run(self.run(entities, kinds))

    async def _run_entity(self, entity: EntityDeclaration, kinds: List[GeneratorKind]) -> EntityResult:
        outcomes = await asyncio.gather(*(self._run_one(entity, kind) for kind in kinds))

        result = EntityResult(entity_name=entity.name)
        for kind, outcome in zip(kinds, outcomes):
            if isinstance(outcome, GenerationFailure):
                result.failures.append(outcome)
            else:
                result.artifacts[kind] = outcome
        return result

    async def _run_one(self, entity: EntityDeclaration, kind: GeneratorKind):
        """Run one generator; never raises, failures are returned."""
        generator = self.generators[kind]
        call: Callable = getattr(generator, "generate", generator)

        try:
            if inspect.iscoroutinefunction(call):
                return await call(entity)
            outcome = await asyncio.to_thread(call, entity)
            if inspect.isawaitable(outcome):
                outcome = await outcome
            return outcome
        except Exception as e:
            error = wrap_unexpected(e, {"entity_name": entity.name, "generator_type": kind.value})
            logger.error(f"Failed to generate {kind.value} for {entity.name}: {format_error(error)}")
            return GenerationFailure(entity_name=entity.name, kind=kind, error=error)
