"""Naming conventions for inferring types and mutations from file names."""

from __future__ import annotations

import re


def capitalize(word: str) -> str:
    """Upper-case the first letter only (``fooBar`` -> ``FooBar``)."""
    return word[:1].upper() + word[1:]


def to_type_name(stem: str) -> str:
    """Strip characters that cannot appear in a GraphQL name."""
    return re.sub(r"[^_0-9A-Za-z]", "", stem)


def default_mutation_name(stem: str) -> str:
    """Mutation inferred from a file's base name: ``person.csv`` -> ``addPersons``."""
    return f"add{capitalize(to_type_name(stem))}s"
