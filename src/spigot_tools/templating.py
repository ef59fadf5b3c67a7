"""One-line command templates with positional ``{N}`` placeholders."""

from __future__ import annotations

from collections.abc import Sequence

from spigot_tools.errors import MissingCommandError


def split_command(template: str) -> tuple[str, list[str]]:
    """Split *template* on whitespace into the executable and its arguments.

    There is no quoting support. Raises MissingCommandError if the template
    is empty or whitespace only.
    """
    parts = template.split()
    if not parts:
        raise MissingCommandError(template)
    return parts[0], parts[1:]


def placeholder_index(token: str) -> int | None:
    """Return the index named by a ``{N}`` placeholder inside *token*.

    The text between the first ``{`` and the first ``}`` is parsed as a
    non-negative integer, optionally prefixed with ``+``. Returns None if
    the token is not a placeholder.
    """
    start = token.find("{")
    end = token.find("}")
    if start == -1 or end <= start:
        return None
    inner = token[start + 1 : end]
    if inner.startswith("+"):
        inner = inner[1:]
    if not (inner.isascii() and inner.isdigit()):
        return None
    return int(inner)


def transform_args(args: Sequence[str], substitutions: Sequence[str]) -> list[str]:
    """Resolve placeholder tokens in *args* against *substitutions*.

    A recognised placeholder replaces the whole token, so ``pre{0}post``
    becomes ``substitutions[0]``. Tokens with an unparsable or out of range
    index are passed through unchanged.
    """
    out: list[str] = []
    for arg in args:
        index = placeholder_index(arg)
        if index is not None and index < len(substitutions):
            out.append(substitutions[index])
        else:
            out.append(arg)
    return out


def render_command(template: str, substitutions: Sequence[str]) -> tuple[str, list[str]]:
    """Parse *template* and substitute its arguments in one step."""
    executable, args = split_command(template)
    return executable, transform_args(args, substitutions)
