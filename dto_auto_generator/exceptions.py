"""
Custom exception hierarchy for DTO Auto Generator.

This module provides an exception system with rich context and recovery
guidance. Every error raised by the resolvers, generators and I/O layer is a
``DtoGeneratorError`` so the scheduler can aggregate failures with a
consistent shape.
"""

from typing import Dict, Any, Optional, List, TYPE_CHECKING

if TYPE_CHECKING:
    from .scheduler import GenerationFailure, GenerationReport


class DtoGeneratorError(Exception):
    """
    Base exception for all DTO Auto Generator errors.

    Provides rich context and error recovery guidance.
    """

    default_code = "DTO_GENERATOR_ERROR"

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
        error_code: Optional[str] = None
    ):
        """
        Initialize the exception with context and recovery suggestions.

        Args:
            message: Human-readable error message
            context: Additional context about where/why the error occurred
            suggestions: List of potential solutions or next steps
            error_code: Unique error code for programmatic handling
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.suggestions = suggestions or []
        self.error_code = error_code or self.default_code

    def __str__(self) -> str:
        """Return formatted error message with context."""
        lines = [self.message]

        if self.error_code:
            lines.append(f"Error Code: {self.error_code}")

        if self.context:
            lines.append("Context:")
            for key, value in self.context.items():
                lines.append(f"  {key}: {value}")

        if self.suggestions:
            lines.append("Suggestions:")
            for suggestion in self.suggestions:
                lines.append(f"  • {suggestion}")

        return "\n".join(lines)


def _merge_context(kwargs: Dict[str, Any], **fields: Any) -> Dict[str, Any]:
    """Combine an explicit ``context`` kwarg with the non-empty named fields."""
    context = dict(kwargs.get('context') or {})
    for key, value in fields.items():
        if value is not None:
            context[key] = value
    return context


class ConfigurationError(DtoGeneratorError):
    """Raised when configuration is invalid or missing."""

    default_code = "CONFIG_ERROR"

    def __init__(self, message: str, config_file: str = None, **kwargs):
        context = _merge_context(kwargs, config_file=config_file)

        suggestions = kwargs.get('suggestions') or [
            "Check the configuration file syntax",
            "Verify generator kinds are spelled as documented",
            "Check that performance.worker_count is between 1 and 16",
        ]

        super().__init__(message, context=context, suggestions=suggestions)


class DeclarationError(DtoGeneratorError):
    """Raised when entity manifests cannot be loaded or linked."""

    default_code = "DECLARATION_ERROR"

    def __init__(self, message: str, manifest: str = None, entity_name: str = None, **kwargs):
        context = _merge_context(kwargs, manifest=manifest, entity_name=entity_name)

        suggestions = kwargs.get('suggestions') or [
            "Check the manifest is valid YAML or JSON",
            "Verify every 'extends' names a declared class",
            "Remove cycles from the inheritance chain",
        ]

        super().__init__(message, context=context, suggestions=suggestions)


class EntityResolutionError(DtoGeneratorError):
    """Raised when a structural requirement of an entity cannot be satisfied."""

    default_code = "ENTITY_RESOLUTION_ERROR"

    def __init__(
        self,
        message: str,
        entity_name: str = None,
        property_name: str = None,
        operation: str = None,
        target_type: str = None,
        generator_type: str = None,
        **kwargs
    ):
        context = _merge_context(
            kwargs,
            entity_name=entity_name,
            property_name=property_name,
            operation=operation,
            target_type=target_type,
            generator_type=generator_type,
        )

        suggestions = kwargs.get('suggestions') or [
            "Make sure the relation target declares a @PrimaryKey property",
            "Check the relation target is included in the loaded manifests",
            "Use an explicit '() => Target' argument on the relation decorator",
        ]

        super().__init__(message, context=context, suggestions=suggestions)


class FileSystemError(DtoGeneratorError):
    """Raised when an output directory or file cannot be created or written."""

    default_code = "FILE_SYSTEM_ERROR"

    def __init__(self, message: str, file_path: str = None, operation: str = None, **kwargs):
        context = _merge_context(kwargs, file_path=file_path, operation=operation)

        suggestions = kwargs.get('suggestions') or [
            "Check the output directory exists and is writable",
            "Verify the output path is valid on this platform",
        ]

        super().__init__(message, context=context, suggestions=suggestions)


class GenerationError(DtoGeneratorError):
    """Raised when an artifact template cannot be rendered."""

    default_code = "GENERATION_ERROR"

    def __init__(self, message: str, generator_type: str = None, entity_name: str = None, **kwargs):
        context = _merge_context(kwargs, generator_type=generator_type, entity_name=entity_name)

        suggestions = kwargs.get('suggestions') or [
            "Check the template exists in the templates directory",
            "Try generating one artifact kind at a time",
        ]

        super().__init__(message, context=context, suggestions=suggestions)


class GenerationRunError(DtoGeneratorError):
    """
    Aggregate error raised once at the end of a run that had failures.

    Carries every recorded failure and the full report, so callers can still
    reach the artifacts of the entities that succeeded.
    """

    default_code = "GENERATION_RUN_FAILED"

    def __init__(self, failures: List["GenerationFailure"], report: "GenerationReport"):
        self.failures = failures
        self.report = report
        lines = [f"Failed to generate {len(failures)} artifact(s) for {len(report.failed_entities)} entities:"]
        for failure in failures:
            lines.append(f"  - {failure.entity_name} [{failure.kind.value}]: {failure.message}")
        super().__init__("\n".join(lines), context={"failed_entities": report.failed_entities})

    def __str__(self) -> str:
        return self.message


def wrap_unexpected(error: BaseException, context: Optional[Dict[str, Any]] = None) -> DtoGeneratorError:
    """Return ``error`` unchanged if it is ours, else wrap it with a generic code."""
    if isinstance(error, DtoGeneratorError):
        return error
    wrapped = DtoGeneratorError(
        str(error) or type(error).__name__,
        context=context,
        error_code="UNEXPECTED_ERROR",
    )
    wrapped.__cause__ = error
    return wrapped


def format_error(error: BaseException) -> str:
    """Format an error on a single line: ``[CODE] message (key: value, ...)``."""
    if not isinstance(error, DtoGeneratorError):
        return str(error)

    message = f"[{error.error_code}] {error.message}"
    parts = [f"{key}: {value}" for key, value in error.context.items()]
    if parts:
        message += f" ({', '.join(parts)})"
    return message
