"""
Naming convention utilities for DTO Auto Generator.

Conversions between entity names, generated class/function names and output
file names.
"""

import re

import inflect


# Initialize inflect engine for pluralization
p = inflect.engine()

_WORD_BOUNDARY = re.compile(r"[^A-Za-z0-9]+")


def file_stem(entity_name: str) -> str:
    """
    Output file stem for an entity: its name lower-cased.

    Example:
        >>> file_stem("BlogPost")
        'blogpost'
    """
    if not isinstance(entity_name, str):
        raise TypeError(f"Expected string, got {type(entity_name).__name__}")
    return entity_name.lower()


def to_camel_case(name: str) -> str:
    """
    Convert PascalCase, snake_case or kebab-case to camelCase.

    Example:
        >>> to_camel_case("BlogPost")
        'blogPost'
        >>> to_camel_case("find_many")
        'findMany'
    """
    parts = [part for part in _WORD_BOUNDARY.split(name) if part]
    if not parts:
        return name
    head, *rest = parts
    return head[0].lower() + head[1:] + "".join(part[0].upper() + part[1:] for part in rest)


def pluralize(word: str) -> str:
    """
    Pluralize an English word, leaving already-plural words alone.

    Example:
        >>> pluralize("category")
        'categories'
    """
    if not word:
        return word
    # singular_noun returns False when the word is already singular
    if p.singular_noun(word) is not False:
        return word
    return p.plural(word)


def dto_class_name(entity_name: str, suffix: str = "") -> str:
    """``User`` + ``Create`` gives ``UserCreateDto``."""
    return f"{entity_name}{suffix}Dto"
