"""Prompt template interpolation.

Templates reference run variables with ``${name}`` placeholders::

    Describe the image. Extra context: ${imageAdditionalContext}
    Write five captions based on: ${step1Output}

This is literal substitution, not a template language: there are no
conditionals, loops, filters or escapes. Every occurrence of every known
placeholder is replaced; placeholders with no matching variable are left
exactly as written.
"""

from __future__ import annotations

from collections.abc import Mapping


def placeholder(name: str) -> str:
    """Return the literal placeholder text for a variable name."""
    return "${" + name + "}"


def interpolate_prompt(template: str | None, variables: Mapping[str, str]) -> str:
    """Substitute run variables into a prompt template.

    Variables are applied in the mapping's iteration order, each one replacing
    all of its occurrences.

    Args:
        template: Prompt template, or None for an unset prompt
        variables: Variable name to value mapping

    Returns:
        The interpolated prompt ("" when the template is None)
    """
    result = template or ""
    for name, value in variables.items():
        result = result.replace(placeholder(name), value)
    return result
