"""Identifier quoting and string escaping helpers shared by the dialects."""
from __future__ import annotations


def double_quote(name: str) -> str:
    """Quote an identifier ANSI-style: ``"name"``, doubling embedded quotes."""
    escaped = name.replace('"', '""')
    return f'"{escaped}"'


def backtick(name: str) -> str:
    """Quote an identifier MySQL-style: `` `name` ``, doubling embedded backticks."""
    escaped = name.replace("`", "``")
    return f"`{escaped}`"


def escape_string(value: str) -> str:
    """Escape a value for use inside a single-quoted SQL string literal."""
    return value.replace("'", "''")


def escape_like_pattern(value: str) -> str:
    """Escape LIKE metacharacters so ``value`` matches literally.

    The backslash is escaped first so the escapes added for ``%`` and ``_``
    are not doubled.

    Example::

        escape_like_pattern("50%_off")  # -> '50\\%\\_off'
    """
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
