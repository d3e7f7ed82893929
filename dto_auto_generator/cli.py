import argparse
import logging
import sys
from typing import List, Optional

from dto_auto_generator.codegen import TemplateRenderer
from dto_auto_generator.config_validation import ToolConfigSchema, load_config
from dto_auto_generator.constants import GeneratorKind
from dto_auto_generator.declarations import load_declarations
from dto_auto_generator.domain.cache import ResolutionCache
from dto_auto_generator.domain.field_mapping import FieldMapper
from dto_auto_generator.domain.registry import EntityRegistry
from dto_auto_generator.exceptions import (
    DtoGeneratorError,
    GenerationRunError,
    format_error,
)
from dto_auto_generator.generators import build_generators
from dto_auto_generator.scheduler import GenerationReport, GenerationScheduler

# Import colored logging
from dto_auto_generator.colored_logging import (
    setup_colored_logging,
    log_success,
    log_progress,
    log_highlight,
    log_section
)

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dto-auto-generator",
        description="Generate DTO classes, mapping functions and filter builders from entity declarations.",
    )
    parser.add_argument(
        "-c",
        "--config",
        help="Path to the YAML configuration file.",
    )
    parser.add_argument(
        "-e",
        "--entities",
        nargs="+",
        metavar="MANIFEST",
        help="Entity manifest paths or glob patterns. Overrides config file setting.",
    )
    parser.add_argument(
        "-o",
        "--output-dir",
        help="Root output directory. Overrides config file setting.",
    )
    parser.add_argument(
        "-g",
        "--generators",
        nargs="+",
        metavar="KIND",
        choices=GeneratorKind.values(),
        help="Artifact kinds to generate. Overrides config file setting.",
    )
    parser.add_argument(
        "-w",
        "--worker-count",
        type=int,
        help="Entities processed concurrently per batch (enables batching).",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Render every artifact without writing files.",
    )
    parser.add_argument(
        "--validate",
        action="store_true",
        help="Only validate the configuration and entity manifests; generate nothing.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose DEBUG logging.",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable colored output (useful for CI/CD environments).",
    )
    return parser


def validate_configuration(config: ToolConfigSchema) -> EntityRegistry:
    """
    Load and link every manifest named by ``config`` without generating.

    Raises:
        DeclarationError: manifests cannot be loaded
    """
    log_section(logger, "Validation")
    log_progress(logger, "Loading entity manifests...")
    registry = EntityRegistry.build(load_declarations(config.entities))
    log_highlight(logger, f"Found {len(registry.entities())} entities in {len(registry)} declarations")
    return registry


def run_generation(config: ToolConfigSchema) -> GenerationReport:
    """
    Load declarations and generate every requested artifact.

    Raises:
        DeclarationError: manifests cannot be loaded
        GenerationRunError: some artifacts failed; all others were generated
    """
    log_section(logger, "Entity Declarations")
    log_progress(logger, "Loading entity manifests...")
    declarations = load_declarations(config.entities)

    cache = ResolutionCache(
        max_entries=config.cache.max_entries,
        ttl_seconds=config.cache.ttl_seconds,
        sweep_interval=config.cache.sweep_interval,
    )
    registry = EntityRegistry.build(declarations, cache=cache)
    entities = registry.entities()
    log_highlight(logger, f"Found {len(entities)} entities in {len(registry)} declarations")
    if not entities:
        logger.warning("No declaration is decorated with @Entity; nothing to generate.")

    try:
        mapper = FieldMapper(registry, cache)
        generators = build_generators(
            config.generators,
            mapper,
            TemplateRenderer(),
            output_dir=config.output_dir,
            dry_run=config.dry_run,
        )
        scheduler = GenerationScheduler(generators, concurrency_limit=config.concurrency_limit)

        log_section(logger, "Artifact Generation")
        log_progress(
            logger,
            f"Generating {len(generators)} artifact kinds for {len(entities)} entities "
            f"({config.concurrency_limit} at a time)...",
        )
        return scheduler.run_sync(entities, list(generators))
    finally:
        # Entries must not leak into a later run
        cache.clear()
        registry.discard()


def main(argv: Optional[List[str]] = None):
    args = build_parser().parse_args(argv)

    # --- Logging Setup ---
    log_level = logging.DEBUG if args.verbose else logging.INFO
    setup_colored_logging(level=log_level, use_colors=not args.no_color)

    if args.verbose:
        logger.debug("Verbose mode enabled. DEBUG level logging activated.")

    # --- Main Execution Pipeline ---
    try:
        log_progress(logger, "Loading configuration...")
        config = load_config(args.config, args)
        logger.debug(f"Effective configuration loaded: {config}")

        if args.validate:
            validate_configuration(config)
            log_success(logger, "Configuration is valid")
            return

        report = run_generation(config)

        log_section(logger, "Completion")
        action = "Rendered" if config.dry_run else "Generated"
        log_success(
            logger,
            f"{action} {report.artifact_count} artifacts for {len(report.results)} entities "
            f"in {report.duration_ms:.0f}ms",
        )
        if not config.dry_run:
            logger.info(f"Output written to {config.output_dir}")

    # --- Error Handling ---
    except GenerationRunError as e:
        succeeded = len(e.report.results) - len(e.report.failed_entities)
        logger.error(
            f"{len(e.failures)} artifact(s) failed for {len(e.report.failed_entities)} entities; "
            f"{succeeded} entities generated completely"
        )
        for failure in e.failures:
            logger.error(f"  {failure.entity_name} [{failure.kind.value}]: {format_error(failure.error)}")
        sys.exit(1)
    except DtoGeneratorError as e:
        logger.error(str(e), exc_info=args.verbose)
        sys.exit(1)
    except Exception as e:
        logger.error(f"An unexpected error occurred during generation: {e}", exc_info=True)
        sys.exit(1)


# --- Script Entry Point ---
if __name__ == "__main__":
    main()
