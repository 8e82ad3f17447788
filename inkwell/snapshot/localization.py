"""
Localization - ``@key`` lookup and ``{variable}`` interpolation.

Content text is either inline or a ``@key`` into the active locale's flat
string table. Missing keys fall back to the raw ``@key`` so an untranslated
string is visible rather than blank.
"""

from __future__ import annotations

import re
from typing import Callable, Mapping, Optional

from inkwell.core.state import VariableValue


PLACEHOLDER_PATTERN = re.compile(r'\{(\w+)\}')


def format_value(value: VariableValue) -> str:
    """Stringify a variable. Whole floats print without a trailing ``.0``."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def resolve_text(
    text: str,
    strings: Mapping[str, str],
    variables: Optional[Mapping[str, VariableValue]] = None,
) -> str:
    """
    Resolve a piece of content text.

    Examples:
        resolve_text("@location.tavern", {"location.tavern": "The Salty Dog"})
            -> "The Salty Dog"
        resolve_text("@missing.key", {}) -> "@missing.key"
        resolve_text("You rolled {roll}.", {}, {"roll": 7}) -> "You rolled 7."

    Unknown placeholders are left verbatim. A leading ``@@`` marks literal
    text that starts with ``@``: one ``@`` is dropped and no lookup happens.
    """
    if text.startswith('@@'):
        resolved = text[1:]
    elif text.startswith('@'):
        resolved = strings.get(text[1:], text)
    else:
        resolved = text

    if variables is not None and '{' in resolved:
        def substitute(match: re.Match) -> str:
            name = match.group(1)
            if name in variables:
                return format_value(variables[name])
            return match.group(0)

        resolved = PLACEHOLDER_PATTERN.sub(substitute, resolved)

    return resolved


def create_resolver(
    strings: Mapping[str, str],
    variables: Optional[Mapping[str, VariableValue]] = None,
) -> Callable[[str], str]:
    """Bind resolve_text to one locale table and variable set."""
    return lambda text: resolve_text(text, strings, variables)
