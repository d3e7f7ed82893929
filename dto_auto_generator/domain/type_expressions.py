"""
Helpers for reading declared type expressions.

Type expressions arrive from the front end as text, e.g.
``Collection<Post>``, ``Ref<User> | null`` or
``import("./entities/user").User``. These helpers implement the narrow rules
relation inference needs; they are not a type checker.
"""

import re
from typing import List, Optional, Tuple

from ..constants import TypeNames


IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_$][\w$]*$")
QUALIFIED_IMPORT_PATTERN = re.compile(r"import\([^)]+\)\.([A-Za-z_$][\w$]*)")
NULLISH_WORD_PATTERN = re.compile(r"(?<![\w$])(null|undefined)(?![\w$])")
GENERIC_PATTERN = re.compile(r"^(?P<head>.+?)<(?P<args>.*)>$", re.DOTALL)

_QUOTES = ("'", '"', "`")


def split_top_level(text: str, separator: str, angle_brackets: bool = True) -> List[str]:
    """
    Split ``text`` on ``separator`` ignoring separators nested in brackets or
    string literals.

    Args:
        text: Expression text
        separator: Single separator character, e.g. ``|`` or ``,``
        angle_brackets: Treat ``<``/``>`` as brackets (type expressions)

    Returns:
        Stripped parts; empty parts are kept so callers can detect them
    """
    parts: List[str] = []
    depth = 0
    quote: Optional[str] = None
    start = 0
    previous = ""

    for index, char in enumerate(text):
        if quote:
            if char == quote and previous != "\\":
                quote = None
        elif char in _QUOTES:
            quote = char
        elif char in "([{" or (angle_brackets and char == "<"):
            depth += 1
        elif char in ")]}" or (angle_brackets and char == ">" and previous != "="):
            depth = max(depth - 1, 0)
        elif char == separator and depth == 0:
            parts.append(text[start:index].strip())
            start = index + 1
        previous = char

    parts.append(text[start:].strip())
    return parts


def union_members(type_text: str) -> List[str]:
    """Return the top-level members of a union type (a single member otherwise)."""
    return [member for member in split_top_level(type_text.strip(), "|") if member]


def non_nullable_member(type_text: str) -> str:
    """
    Drop ``null``/``undefined`` members of a union and keep the first remaining one.

    A type that is entirely nullish is returned unchanged.
    """
    members = union_members(type_text)
    remaining = [m for m in members if m not in TypeNames.NULLISH]
    if not remaining:
        return type_text.strip()
    return remaining[0]


def contains_nullish(type_text: str) -> bool:
    """Whether ``null`` or ``undefined`` appears as a word anywhere in the type text."""
    return bool(NULLISH_WORD_PATTERN.search(type_text or ""))


def strip_nullish(type_text: str) -> str:
    """Remove nullish union members, keeping every other member."""
    members = union_members(type_text)
    remaining = [m for m in members if m not in TypeNames.NULLISH]
    return " | ".join(remaining) if remaining else type_text.strip()


def parse_generic(type_text: str) -> Optional[Tuple[str, List[str]]]:
    """
    Split ``Head<A, B>`` into ``("Head", ["A", "B"])``.

    Returns None when the text is not a single generic application.
    """
    text = type_text.strip()
    match = GENERIC_PATTERN.match(text)
    if not match:
        return None

    head = match.group("head").strip()
    # "A<B> | C<D>" is a union, not a generic application
    if len(union_members(text)) != 1 or "<" in head:
        return None

    arguments = [arg for arg in split_top_level(match.group("args"), ",") if arg]
    return head, arguments


def simple_name(type_text: str) -> Optional[str]:
    """
    Reduce a type reference to its simple identifier.

    ``import("./user").User`` and ``models.User`` both give ``User``; a bare
    identifier is returned as-is; anything else gives None.
    """
    text = type_text.strip().rstrip("!").strip()
    qualified = last_qualified_name(text)
    if qualified:
        return qualified
    candidate = text.rsplit(".", 1)[-1] if "." in text and "(" not in text else text
    return candidate if IDENTIFIER_PATTERN.match(candidate) else None


def last_qualified_name(type_text: str) -> Optional[str]:
    """
    Return the identifier of the last ``import("...").Name`` occurrence.

    In complex type expressions the entity reference is conventionally the
    final qualified name.
    """
    matches = QUALIFIED_IMPORT_PATTERN.findall(type_text or "")
    return matches[-1] if matches else None


def wrapper_argument(type_text: str, wrappers=TypeNames.WRAPPERS) -> Optional[Tuple[str, str]]:
    """
    Detect a single-argument wrapper such as ``Collection<Post>`` or ``Ref<User>``.

    Returns:
        ``(wrapper_name, argument_text)`` or None
    """
    generic = parse_generic(type_text)
    if not generic:
        return None
    head, arguments = generic
    head_name = simple_name(head)
    if head_name in wrappers and len(arguments) == 1:
        return head_name, arguments[0]
    return None


def is_collection_type(type_text: str) -> bool:
    """Whether the non-nullable part of the type is a collection wrapper."""
    return wrapper_argument(non_nullable_member(type_text), TypeNames.COLLECTION_WRAPPERS) is not None


def infer_entity_name(type_text: str) -> Optional[str]:
    """
    Infer the referenced entity name from a declared property type.

    Steps: drop nullish union members and keep the first remaining one;
    unwrap a single-argument collection/reference wrapper; otherwise take the
    last import-qualified name; otherwise the bare identifier.
    """
    if not type_text:
        return None

    actual = non_nullable_member(type_text)

    wrapped = wrapper_argument(actual)
    if wrapped:
        _, argument = wrapped
        return simple_name(non_nullable_member(argument))

    qualified = last_qualified_name(actual)
    if qualified:
        return qualified

    return simple_name(actual)
