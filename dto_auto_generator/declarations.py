"""
Declaration front end: load pre-parsed entity declarations from manifests.

A manifest is a YAML or JSON file holding the already-parsed form of one or
more entity classes:

    entities:
      - name: Post
        extends: BaseEntity
        source: src/entities/Post.ts
        decorators: ["@Entity()"]
        imports: {PostStatus: "./post-status.enum"}
        properties:
          - name: id
            type: number
            decorators: ["@PrimaryKey()"]
          - name: author
            type: Ref<User> | null
            optional: true
            decorators:
              - name: ManyToOne
                arguments: ["() => User", "{ nullable: true }"]

Decorators are given either as call text (``"@ManyToOne(() => User)"``) or as
a mapping with ``name``, raw ``arguments`` and optional structured
``options``. Every decorator is parsed into a ``DecoratorInvocation`` here,
once.
"""

import glob
import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from .domain.decorators import parse_decorator
from .domain.models import (
    DecoratorInvocation,
    EntityDeclaration,
    PropertyDeclaration,
    SourceLocation,
)
from .domain.type_expressions import split_top_level
from .exceptions import DeclarationError

logger = logging.getLogger(__name__)

MANIFEST_SUFFIXES = (".yaml", ".yml", ".json")

_DECORATOR_CALL = re.compile(r"^@?\s*(?P<name>[A-Za-z_$][\w$]*)\s*(?:\((?P<args>.*)\))?\s*$", re.DOTALL)
_GLOB_CHARS = re.compile(r"[*?\[]")


# --- Pydantic Models for the Manifest Schema ---

class DecoratorSchema(BaseModel):
    """One decorator call on a class or property."""

    name: str = Field(..., min_length=1, description="Decorator name without '@'.")
    arguments: List[str] = Field(default_factory=list, description="Raw argument expressions.")
    options: Dict[str, Any] = Field(
        default_factory=dict, description="Structured options, merged over parsed object literals."
    )

    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def parse_call_text(cls, value: Any) -> Any:
        """Accept ``"@Name(arg, ...)"`` strings as well as mappings."""
        if not isinstance(value, str):
            return value
        match = _DECORATOR_CALL.match(value.strip())
        if not match:
            raise ValueError(f"'{value}' is not a decorator call")
        args = match.group("args") or ""
        return {
            "name": match.group("name"),
            "arguments": [arg for arg in split_top_level(args, ",", angle_brackets=False) if arg],
        }

    @field_validator("arguments", mode="before")
    @classmethod
    def stringify_arguments(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return [str(item) for item in value]

    def to_invocation(self) -> DecoratorInvocation:
        return parse_decorator(self.name, self.arguments, self.options or None)


class PropertySchema(BaseModel):
    """One property declared directly on an entity."""

    name: str = Field(..., min_length=1)
    type_text: str = Field(..., alias="type", min_length=1, description="Declared type expression.")
    optional: bool = Field(default=False, description="Declared with a '?' marker.")
    comment: Optional[str] = Field(default=None, description="Leading doc comment.")
    line: Optional[int] = Field(default=None, ge=1)
    decorators: List[DecoratorSchema] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class EntitySchema(BaseModel):
    """One class declaration."""

    name: str = Field(..., min_length=1)
    extends: Optional[str] = Field(default=None, description="Name of the base class.")
    source: Optional[str] = Field(default=None, description="Path of the declaring source file.")
    line: Optional[int] = Field(default=None, ge=1)
    imports: Dict[str, str] = Field(
        default_factory=dict, description="Imported name -> module specifier of the source file."
    )
    decorators: List[DecoratorSchema] = Field(default_factory=list)
    properties: List[PropertySchema] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")

    @field_validator("name", "extends")
    @classmethod
    def check_identifier(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not re.match(r"^[A-Za-z_$][\w$]*$", v):
            raise ValueError(f"'{v}' is not a valid class name")
        return v

    @model_validator(mode="after")
    def check_unique_properties(self) -> "EntitySchema":
        seen = set()
        for prop in self.properties:
            if prop.name in seen:
                raise ValueError(f"Property '{prop.name}' is declared twice on '{self.name}'")
            seen.add(prop.name)
        return self


class ManifestSchema(BaseModel):
    """Top-level manifest document."""

    entities: List[EntitySchema] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")


# --- Loading ---

def expand_manifest_paths(patterns: Iterable[str]) -> List[Path]:
    """
    Expand paths and glob patterns into an ordered, de-duplicated file list.

    Raises:
        DeclarationError: a plain path does not exist or nothing matched
    """
    files: List[Path] = []
    seen = set()

    for pattern in patterns:
        if _GLOB_CHARS.search(pattern):
            matches = sorted(
                Path(match) for match in glob.glob(pattern, recursive=True)
                if match.endswith(MANIFEST_SUFFIXES)
            )
            if not matches:
                logger.warning(f"No manifests matched pattern: {pattern}")
        else:
            path = Path(pattern)
            if not path.is_file():
                raise DeclarationError(f"Manifest not found: {pattern}", manifest=pattern)
            matches = [path]

        for match in matches:
            key = match.resolve()
            if key not in seen:
                seen.add(key)
                files.append(match)

    if not files:
        raise DeclarationError(
            "No entity manifests found",
            context={"patterns": list(patterns)},
        )
    return files


def read_manifest(path: Path) -> Dict[str, Any]:
    """Read a manifest file into a raw dictionary."""
    suffix = path.suffix.lower()
    if suffix not in MANIFEST_SUFFIXES:
        raise DeclarationError(
            f"Unsupported manifest type '{suffix}'; expected one of {', '.join(MANIFEST_SUFFIXES)}",
            manifest=str(path),
        )

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f) if suffix == ".json" else yaml.safe_load(f)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise DeclarationError(f"Cannot parse manifest: {e}", manifest=str(path)) from e
    except OSError as e:
        raise DeclarationError(f"Cannot read manifest: {e}", manifest=str(path)) from e

    if data is None:
        return {"entities": []}
    if not isinstance(data, dict):
        raise DeclarationError("Manifest content must be a mapping with an 'entities' list", manifest=str(path))
    return data


def _resolve_source(manifest: Path, source: Optional[str]) -> Optional[str]:
    if not source:
        return None
    return os.path.normpath(os.path.join(manifest.parent, source))


def _to_declaration(schema: EntitySchema, manifest: Path) -> EntityDeclaration:
    source = _resolve_source(manifest, schema.source)
    properties = [
        PropertyDeclaration(
            name=prop.name,
            type_text=prop.type_text,
            optional=prop.optional,
            decorators=[decorator.to_invocation() for decorator in prop.decorators],
            entity_name=schema.name,
            location=SourceLocation(file=source or str(manifest), line=prop.line),
            comment=prop.comment,
        )
        for prop in schema.properties
    ]
    return EntityDeclaration(
        name=schema.name,
        properties=properties,
        decorators=[decorator.to_invocation() for decorator in schema.decorators],
        source_path=source,
        imports=dict(schema.imports),
        location=SourceLocation(file=source or str(manifest), line=schema.line),
    )


def load_manifest(path: Path) -> List[tuple]:
    """
    Load one manifest.

    Returns:
        ``(declaration, base_name)`` pairs in manifest order; bases are linked
        later, across every loaded manifest
    """
    raw = read_manifest(path)
    try:
        manifest = ManifestSchema.model_validate(raw)
    except ValidationError as e:
        problems = []
        for error in e.errors():
            loc = " -> ".join(str(part) for part in error.get("loc", ())) or "Model Level"
            problems.append(f"{loc}: {error.get('msg', 'Unknown validation error')}")
        raise DeclarationError(
            f"Invalid manifest: {'; '.join(problems)}",
            manifest=str(path),
        ) from e

    loaded = [(_to_declaration(entity, path), entity.extends) for entity in manifest.entities]
    logger.debug(f"Loaded {len(loaded)} declarations from {path}")
    return loaded


def link_bases(pairs: List[tuple]) -> None:
    """
    Point every declaration's ``base`` at the declaration named by its ``extends``.

    Raises:
        DeclarationError: the inheritance chain contains a cycle
    """
    by_name: Dict[str, EntityDeclaration] = {}
    for declaration, _ in pairs:
        by_name.setdefault(declaration.name, declaration)

    for declaration, base_name in pairs:
        if not base_name:
            continue
        base = by_name.get(base_name)
        if base is None:
            logger.warning(
                f"Base class '{base_name}' of '{declaration.name}' is not declared in any manifest; "
                "inherited properties will be missing"
            )
            continue
        declaration.base = base

    for declaration, _ in pairs:
        seen = set()
        current = declaration
        while current is not None:
            if id(current) in seen:
                raise DeclarationError(
                    f"Inheritance cycle detected starting at '{declaration.name}'",
                    entity_name=declaration.name,
                )
            seen.add(id(current))
            current = current.base


def load_declarations(paths: Iterable[str]) -> List[EntityDeclaration]:
    """
    Load, validate and link every declaration from the given manifests.

    Args:
        paths: Manifest file paths or glob patterns

    Returns:
        Declarations in manifest order, then declaration order
    """
    pairs: List[tuple] = []
    for manifest in expand_manifest_paths(list(paths)):
        pairs.extend(load_manifest(manifest))

    link_bases(pairs)

    declarations = [declaration for declaration, _ in pairs]
    entity_count = sum(1 for declaration in declarations if declaration.is_entity)
    logger.info(f"Loaded {len(declarations)} declarations ({entity_count} entities)")
    return declarations
