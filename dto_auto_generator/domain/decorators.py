"""
Decorator argument parsing.

The declaration front end turns the raw argument text of every decorator into
a ``DecoratorInvocation`` exactly once. Resolvers downstream branch on
``DecoratorInvocation.shape`` and never look at argument text again.
"""

import logging
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from .models import DecoratorInvocation, DecoratorShape
from .type_expressions import split_top_level

logger = logging.getLogger(__name__)

# () => Target, optionally parenthesised: () => (Target)
THUNK_PATTERN = re.compile(r"^\(\s*\)\s*=>\s*\(?\s*([A-Za-z_$][\w$]*)\s*\)?\s*$")
REFERENCE_PATTERN = re.compile(r"^[A-Za-z_$][\w$]*$")

LITERAL_KEYWORDS = frozenset({"true", "false", "null", "undefined"})


def parse_reference(text: Any) -> Optional[str]:
    """
    Return the identifier referenced by ``() => Name`` or a bare ``Name``.

    Used for decorator first arguments and for options such as ``items``.
    """
    if not isinstance(text, str):
        return None
    text = text.strip()
    match = THUNK_PATTERN.match(text)
    if match:
        return match.group(1)
    if REFERENCE_PATTERN.match(text) and text not in LITERAL_KEYWORDS:
        return text
    return None


def is_object_literal(text: str) -> bool:
    text = text.strip()
    return text.startswith("{") and text.endswith("}")


def strip_quotes(text: str) -> str:
    text = text.strip()
    if len(text) >= 2 and text[0] == text[-1] and text[0] in ("'", '"', "`"):
        return text[1:-1]
    return text


def parse_object_literal(text: str) -> Dict[str, str]:
    """
    Parse a flat object literal into ``{key: raw value text}``.

    Nested objects, arrays and arrow functions are kept as raw text. Shorthand
    properties (``{ items }``) map to their own name. Spread elements are
    ignored.

    Example:
        >>> parse_object_literal("{ nullable: true, exclude: ['create'] }")
        {'nullable': 'true', 'exclude': "['create']"}
    """
    body = text.strip()
    if not is_object_literal(body):
        return {}

    result: Dict[str, str] = {}
    for entry in split_top_level(body[1:-1], ",", angle_brackets=False):
        if not entry or entry.startswith("..."):
            continue
        if ":" not in entry:
            result[strip_quotes(entry)] = entry
            continue
        # Keys never hold a colon, so the first one separates key from value
        key, _, value = entry.partition(":")
        result[strip_quotes(key)] = value.strip()
    return result


def parse_decorator(
    name: str,
    arguments: Sequence[str] = (),
    options: Optional[Mapping[str, Any]] = None,
) -> DecoratorInvocation:
    """
    Classify a decorator call by the shape of its first argument.

    Args:
        name: Decorator name without the ``@``
        arguments: Raw argument expressions, in call order
        options: Structured options supplied alongside the raw arguments;
            these win over options parsed from object-literal arguments

    Returns:
        The parsed ``DecoratorInvocation``
    """
    raw = tuple(arg.strip() for arg in arguments if arg is not None and str(arg).strip())

    merged: Dict[str, Any] = {}
    for argument in raw:
        if is_object_literal(argument):
            merged.update(parse_object_literal(argument))
    if options:
        merged.update(options)

    if not raw:
        shape, target = DecoratorShape.NO_ARGUMENTS, None
    else:
        first = raw[0]
        thunk = THUNK_PATTERN.match(first)
        if thunk:
            shape, target = DecoratorShape.THUNK, thunk.group(1)
        elif REFERENCE_PATTERN.match(first) and first not in LITERAL_KEYWORDS:
            shape, target = DecoratorShape.REFERENCE, first
        elif is_object_literal(first):
            shape, target = DecoratorShape.OPTIONS, None
        else:
            logger.debug(f"Unrecognized first argument for @{name}: {first!r}")
            shape, target = DecoratorShape.EXPRESSION, None

    # Options given only in structured form still make an options call
    if shape is DecoratorShape.NO_ARGUMENTS and options:
        shape = DecoratorShape.OPTIONS

    return DecoratorInvocation(
        name=name,
        shape=shape,
        target=target,
        options=merged,
        arguments=raw,
    )


def parse_boolean_literal(value: Any) -> Optional[bool]:
    """Interpret ``True``/``"true"``; None when the value is not a boolean literal."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text == "true":
            return True
        if text == "false":
            return False
    return None


def parse_string_list(value: Union[str, Iterable[Any], None]) -> Optional[List[str]]:
    """
    Interpret an array literal of strings.

    Accepts Python sequences as well as text such as ``"[ 'create',\\n 'update' ]"``.
    Returns None when the value is not an array.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (list, tuple, set, frozenset)):
        return [str(item).strip() for item in value]
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not (text.startswith("[") and text.endswith("]")):
        return None
    items = split_top_level(text[1:-1], ",", angle_brackets=False)
    return [strip_quotes(item) for item in items if item.strip()]
