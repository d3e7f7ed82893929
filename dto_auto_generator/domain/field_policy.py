"""
Per-property inclusion and nullability rules.

Exclusion comes from the ``DtoOptions`` decorator:

    @DtoOptions({ exclude: true })                  # excluded everywhere
    @DtoOptions({ exclude: false })                 # included everywhere
    @DtoOptions({ exclude: ['create', 'update'] })  # excluded from those operations

Nullability is the union of three independent signals: the optional marker,
``null``/``undefined`` in the declared type, and ``nullable: true`` on a
non-relation decorator.
"""

import logging
import re
from typing import Any, FrozenSet, Optional, Union

from ..constants import DecoratorNames, Operation, OptionNames
from .cache import ResolutionCache
from .decorators import parse_boolean_literal, parse_reference, parse_string_list, strip_quotes
from .models import FieldPolicy, PropertyDeclaration
from .type_expressions import contains_nullish

logger = logging.getLogger(__name__)

Exclusion = Union[bool, FrozenSet[str]]

_EXCLUSION = "exclusion"
_NULLABLE = "nullable"
_DETAILS = "details"

OPERATION_NAMES = frozenset(op.value for op in Operation)

_LINE_COMMENT_PREFIX = re.compile(r"^\s*\*\s?")


def parse_exclusion(value: Any) -> Optional[Exclusion]:
    """
    Interpret an ``exclude`` option value.

    Returns:
        ``True``/``False``, the frozenset of excluded operation names, or None
        when the value is neither a boolean nor a list
    """
    flag = parse_boolean_literal(value)
    if flag is not None:
        return flag

    names = parse_string_list(value)
    if names is None:
        return None
    return frozenset(name for name in names if name)


def normalize_comment(text: Optional[str]) -> Optional[str]:
    """
    Reduce a doc comment to one line of prose.

    Accepts ``/** ... */`` blocks, ``/* ... */`` blocks, ``//`` lines, or
    already-clean text.
    """
    if not text:
        return None
    text = text.strip()

    if text.startswith("/**") and text.endswith("*/"):
        lines = [_LINE_COMMENT_PREFIX.sub("", line).strip() for line in text[3:-2].splitlines()]
        text = " ".join(line for line in lines if line)
    elif text.startswith("/*") and text.endswith("*/"):
        text = text[2:-2].strip()
    elif text.startswith("//"):
        text = text[2:].strip()

    return text or None


class FieldPolicyResolver:
    """Answers exclusion and nullability questions, memoized per property."""

    def __init__(self, cache: ResolutionCache):
        self.cache = cache

    def exclusion(self, prop: PropertyDeclaration) -> Exclusion:
        """The parsed ``exclude`` option of the property (False when absent)."""
        scope = self.cache.scope(prop, _EXCLUSION)
        if "value" in scope:
            return scope["value"]

        result: Exclusion = False
        options = prop.decorator(DecoratorNames.DTO_OPTIONS)
        if options is not None and options.has_option(OptionNames.EXCLUDE):
            raw = options.option(OptionNames.EXCLUDE)
            parsed = parse_exclusion(raw)
            if parsed is None:
                logger.warning(
                    f"Ignoring unparseable exclude option on {prop.qualified_name}: {raw!r}"
                )
            else:
                result = parsed
                if isinstance(parsed, frozenset):
                    for name in sorted(parsed - OPERATION_NAMES):
                        logger.warning(f"Unknown operation {name!r} in exclude option of {prop.qualified_name}")

        scope["value"] = result
        return result

    def is_excluded(self, prop: PropertyDeclaration, operation: Union[Operation, str]) -> bool:
        operation = Operation(operation)
        scope = self.cache.scope(prop, _EXCLUSION)
        key = ("operation", operation)
        if key in scope:
            return scope[key]

        exclusion = self.exclusion(prop)
        if isinstance(exclusion, bool):
            excluded = exclusion
        else:
            excluded = operation.value in exclusion

        scope[key] = excluded
        return excluded

    def is_nullable(self, prop: PropertyDeclaration) -> bool:
        scope = self.cache.scope(prop, _NULLABLE)
        if "value" in scope:
            return scope["value"]

        nullable = (
            prop.optional
            or contains_nullish(prop.type_text)
            or self._has_nullable_option(prop)
        )
        scope["value"] = nullable
        return nullable

    def policy(self, prop: PropertyDeclaration, operation: Union[Operation, str]) -> FieldPolicy:
        return FieldPolicy(
            excluded=self.is_excluded(prop, operation),
            nullable=self.is_nullable(prop),
        )

    @staticmethod
    def _has_nullable_option(prop: PropertyDeclaration) -> bool:
        for decorator in prop.decorators:
            if decorator.is_relation:
                continue
            if parse_boolean_literal(decorator.option(OptionNames.NULLABLE)):
                return True
        return False

    def enum_type(self, prop: PropertyDeclaration) -> Optional[str]:
        """
        Enum name declared via ``@Enum``.

        Supported shapes: ``Enum(() => E)``, ``Enum(E)``,
        ``Enum({ items: () => E })`` and ``Enum({ items: E })``.
        """
        details = self.cache.scope(prop, _DETAILS)
        if "enum" in details:
            return details["enum"]

        decorator = prop.decorator(DecoratorNames.ENUM)
        result = None
        if decorator is not None:
            result = decorator.target or parse_reference(decorator.option(OptionNames.ITEMS))

        details["enum"] = result
        return result

    def description(self, prop: PropertyDeclaration) -> Optional[str]:
        """The first decorator ``comment`` option, else the property's doc comment."""
        details = self.cache.scope(prop, _DETAILS)
        if "description" in details:
            return details["description"]

        result = None
        for decorator in prop.decorators:
            comment = decorator.option(OptionNames.COMMENT)
            if comment is not None:
                result = strip_quotes(str(comment))
                break
        if result is None:
            result = normalize_comment(prop.comment)

        details["description"] = result
        return result
