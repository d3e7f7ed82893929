import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

from jinja2 import (
    Environment,
    FileSystemLoader,
    StrictUndefined,
    TemplateError,
    ext as jinja2_extensions,
)

from .domain.naming import pluralize, to_camel_case
from .exceptions import FileSystemError, GenerationError


logger = logging.getLogger(__name__)

# Define the path to the templates directory relative to this file
TEMPLATE_DIR = Path(__file__).parent / "templates"

SOURCE_SUFFIXES = (".ts", ".tsx", ".mts", ".cts")


def jinja2_pluralize_filter(word):
    """
    Custom Jinja filter to pluralize a word using inflect.
    """
    if not isinstance(word, str) or not word:
        return ""
    return pluralize(word)


def jinja2_quote_filter(value: Any) -> str:
    """Render a value as a double-quoted, escaped string literal."""
    return json.dumps("" if value is None else str(value), ensure_ascii=False)


SWAGGER_TYPES = {
    "string": "String",
    "number": "Number",
    "bigint": "Number",
    "boolean": "Boolean",
    "Date": "Date",
}


def jinja2_swagger_type_filter(base_type: Optional[str]) -> str:
    """Swagger ``type`` constructor for a primitive base type, '' otherwise."""
    return SWAGGER_TYPES.get((base_type or "").strip(), "")


def relative_import(from_dir: Union[str, Path], target: Union[str, Path]) -> str:
    """
    Module specifier for ``target`` as seen from a file inside ``from_dir``.

    The source suffix is dropped and the result always starts with ``.``.

    Example:
        >>> relative_import("src/generated/user", "src/entities/User.ts")
        '../../entities/User'
    """
    target = str(target)
    for suffix in SOURCE_SUFFIXES:
        if target.endswith(suffix):
            target = target[: -len(suffix)]
            break

    relative = os.path.relpath(target, str(from_dir)).replace(os.sep, "/")
    return relative if relative.startswith(".") else f"./{relative}"


def resolve_module(specifier: str, source_path: Optional[str], from_dir: Union[str, Path]) -> str:
    """
    Re-express a module specifier written in ``source_path`` for a file in ``from_dir``.

    Package specifiers (``@mikro-orm/core``) are returned unchanged.
    """
    if not specifier.startswith(".") or not source_path:
        return specifier
    absolute = os.path.normpath(os.path.join(os.path.dirname(source_path), specifier))
    return relative_import(from_dir, absolute)


def setup_jinja_env(template_dir: Union[str, Path] = TEMPLATE_DIR) -> Environment:
    """Sets up and returns the Jinja2 environment."""
    env = Environment(
        loader=FileSystemLoader(str(template_dir)),
        autoescape=False,  # output is TypeScript, not markup
        trim_blocks=True,  # Remove first newline after a block tag
        lstrip_blocks=True,  # Strip leading whitespace from lines with block tags
        keep_trailing_newline=True,
        undefined=StrictUndefined,
        extensions=[
            jinja2_extensions.do,
            jinja2_extensions.loopcontrols,
        ],
    )
    env.filters["pluralize"] = jinja2_pluralize_filter
    env.filters["quote"] = jinja2_quote_filter
    env.filters["camel"] = to_camel_case
    env.filters["swagger_type"] = jinja2_swagger_type_filter
    return env


class TemplateRenderer:
    """Renders artifact templates from the packaged templates directory."""

    def __init__(self, template_dir: Union[str, Path] = TEMPLATE_DIR):
        self.template_dir = Path(template_dir)
        self.env = setup_jinja_env(self.template_dir)

    def render(self, template_name: str, context: Dict[str, Any]) -> str:
        """
        Render ``template_name`` with ``context``.

        Raises:
            GenerationError: the template is missing or fails to render
        """
        try:
            template = self.env.get_template(template_name)
            return template.render(context)
        except TemplateError as e:
            raise GenerationError(
                f"Error rendering template '{template_name}': {e}",
                context={"template": template_name},
            ) from e


def write_generated_file(output_path: Union[str, Path], content: str) -> Path:
    """
    Write ``content`` to ``output_path``, creating parent directories.

    Raises:
        FileSystemError: the directory or file cannot be created or written
    """
    output_path = Path(output_path)
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FileSystemError(
            f"Cannot create output directory: {e}",
            file_path=str(output_path.parent),
            operation="create-directory",
        ) from e

    try:
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(content)
    except OSError as e:
        raise FileSystemError(
            f"Cannot write generated file: {e}",
            file_path=str(output_path),
            operation="write-file",
        ) from e

    logger.debug(f"Generated file: {output_path}")
    return output_path
